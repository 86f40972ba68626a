"""Input validation for the verification workflow.

Runs before any state is read or written.
"""

from datetime import UTC, datetime

from guild.config.settings import VerificationConfig
from guild.core.exceptions import ValidationError


def batch_year_bounds(config: VerificationConfig, now: datetime | None = None) -> tuple[int, int]:
    """Inclusive (earliest, latest) batch years accepted right now."""
    current_year = (now or datetime.now(UTC)).year
    return config.min_batch_year, current_year + config.max_batch_years_ahead


def validate_batch_year(
    year: int | None, config: VerificationConfig, now: datetime | None = None
) -> int:
    """Return ``year`` if it lies within the accepted range.

    Raises:
        ValidationError: If the year is missing or out of range
    """
    if year is None:
        raise ValidationError("Batch year is required", field="batch_year")
    earliest, latest = batch_year_bounds(config, now)
    if not earliest <= year <= latest:
        raise ValidationError(
            f"Batch year must be between {earliest} and {latest}", field="batch_year"
        )
    return year


def validate_rejection_reason(reason: str | None, config: VerificationConfig) -> str:
    """Return the stripped rejection reason.

    Raises:
        ValidationError: If the reason is blank or too long
    """
    cleaned = (reason or "").strip()
    if not cleaned:
        raise ValidationError("Rejection reason is required", field="reason")
    if len(cleaned) > config.rejection_reason_max_length:
        raise ValidationError(
            f"Rejection reason must be at most {config.rejection_reason_max_length} characters",
            field="reason",
        )
    return cleaned


def validate_approval_notes(notes: str | None, config: VerificationConfig) -> str | None:
    cleaned = (notes or "").strip() or None
    if cleaned is not None and len(cleaned) > config.approval_notes_max_length:
        raise ValidationError(
            f"Notes must be at most {config.approval_notes_max_length} characters",
            field="notes",
        )
    return cleaned


def validate_bulk_ids(ids: list, config: VerificationConfig, field: str) -> list:
    """Deduplicate ids, preserving order, and enforce the bulk cap."""
    if not ids:
        raise ValidationError("At least one id is required", field=field)
    unique = list(dict.fromkeys(ids))
    if len(unique) > config.bulk_operation_max_items:
        raise ValidationError(
            f"At most {config.bulk_operation_max_items} ids per request", field=field
        )
    return unique
