"""Batch registry and batch-admin assignment."""

from guild.batches.service import BatchDetails, BatchService

__all__ = ["BatchDetails", "BatchService"]
