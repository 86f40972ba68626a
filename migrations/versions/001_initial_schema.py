"""Initial database schema

Revision ID: 001
Revises: None
Create Date: 2026-10-18
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers
revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    ]


def _organization_fk() -> sa.Column:
    return sa.Column(
        "organization_id",
        postgresql.UUID(as_uuid=True),
        sa.ForeignKey("organizations.organization_id", ondelete="CASCADE"),
        nullable=False,
    )


def upgrade() -> None:
    # Feature catalog
    op.create_table(
        "features",
        sa.Column("feature_id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("code", sa.String(50), nullable=False, unique=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("category", sa.String(30), nullable=False, server_default="GENERAL"),
        sa.Column("is_core", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("is_premium", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("default_limit", sa.Integer, nullable=True),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        *_timestamps(),
    )

    op.create_table(
        "subscription_plans",
        sa.Column("plan_id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("code", sa.String(30), nullable=False, unique=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("price_monthly", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("price_yearly", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("max_users", sa.Integer, nullable=False, server_default="100"),
        sa.Column("max_storage_mb", sa.Integer, nullable=False, server_default="1024"),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("sort_order", sa.Integer, nullable=False, server_default="0"),
        *_timestamps(),
    )

    op.create_table(
        "plan_features",
        sa.Column(
            "plan_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("subscription_plans.plan_id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column(
            "feature_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("features.feature_id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column("limit_override", sa.Integer, nullable=True),
    )

    # Tenants
    op.create_table(
        "organizations",
        sa.Column("organization_id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("tenant_code", sa.String(50), nullable=False, unique=True),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("is_maintenance_mode", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("maintenance_message", sa.Text, nullable=True),
        sa.Column(
            "plan_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("subscription_plans.plan_id"),
            nullable=True,
        ),
        sa.Column("subscription_status", sa.String(20), nullable=False, server_default="TRIAL"),
        sa.Column("subscription_started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("suspended_reason", sa.Text, nullable=True),
        sa.Column("max_users", sa.Integer, nullable=False, server_default="500"),
        sa.Column("storage_quota_mb", sa.Integer, nullable=False, server_default="5120"),
        *_timestamps(),
    )

    op.create_table(
        "organization_features",
        sa.Column("organization_feature_id", postgresql.UUID(as_uuid=True), primary_key=True),
        _organization_fk(),
        sa.Column(
            "feature_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("features.feature_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("is_enabled", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("custom_limit", sa.Integer, nullable=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("enabled_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.UniqueConstraint("organization_id", "feature_id", name="uq_org_feature"),
    )
    op.create_index(
        "ix_organization_features_organization_id", "organization_features", ["organization_id"]
    )

    # Cohorts
    op.create_table(
        "batches",
        sa.Column("batch_id", postgresql.UUID(as_uuid=True), primary_key=True),
        _organization_fk(),
        sa.Column("year", sa.Integer, nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("total_members", sa.Integer, nullable=False, server_default="0"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.UniqueConstraint("organization_id", "year", name="uq_batches_org_year"),
    )
    op.create_index("ix_batches_organization_id", "batches", ["organization_id"])

    op.create_table(
        "users",
        sa.Column("user_id", postgresql.UUID(as_uuid=True), primary_key=True),
        _organization_fk(),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("full_name", sa.String(255), nullable=False),
        sa.Column("role", sa.String(20), nullable=False, server_default="USER"),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("batch_year", sa.Integer, nullable=False),
        sa.Column(
            "batch_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("batches.batch_id"),
            nullable=True,
        ),
        sa.Column("verification_status", sa.String(20), nullable=False, server_default="PENDING"),
        sa.Column("is_alumni_verified", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("pending_verification", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("rejection_reason", sa.Text, nullable=True),
        sa.Column("verification_notes", sa.Text, nullable=True),
        sa.Column("verified_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("verified_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("rejected_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rejected_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("organization_id", "email", name="uq_users_org_email"),
    )
    op.create_index("ix_users_organization_id", "users", ["organization_id"])
    op.create_index("idx_users_org_status", "users", ["organization_id", "verification_status"])
    op.create_index("idx_users_org_batch", "users", ["organization_id", "batch_year"])

    op.create_table(
        "batch_admin_assignments",
        sa.Column("assignment_id", postgresql.UUID(as_uuid=True), primary_key=True),
        _organization_fk(),
        sa.Column(
            "user_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.user_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("batch_year", sa.Integer, nullable=False),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("assigned_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column(
            "assigned_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column("revoked_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("revoked_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index(
        "ix_batch_admin_assignments_organization_id",
        "batch_admin_assignments",
        ["organization_id"],
    )
    op.create_index(
        "uq_batch_admin_active",
        "batch_admin_assignments",
        ["organization_id", "user_id", "batch_year"],
        unique=True,
        postgresql_where=sa.text("is_active"),
    )
    op.create_index(
        "idx_batch_admin_year", "batch_admin_assignments", ["organization_id", "batch_year"]
    )

    # Blacklist
    op.create_table(
        "blacklist_entries",
        sa.Column("entry_id", postgresql.UUID(as_uuid=True), primary_key=True),
        _organization_fk(),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("reason", sa.Text, nullable=False),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("blacklisted_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column(
            "blacklisted_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column("removed_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("removed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("removed_reason", sa.Text, nullable=True),
    )
    op.create_index(
        "ix_blacklist_entries_organization_id", "blacklist_entries", ["organization_id"]
    )
    # One active entry per email; removed entries are kept as history
    op.create_index(
        "uq_blacklist_active_email",
        "blacklist_entries",
        ["organization_id", "email"],
        unique=True,
        postgresql_where=sa.text("is_active"),
    )
    op.create_index("idx_blacklist_email", "blacklist_entries", ["organization_id", "email"])

    # Audit trail (no tenant FK so events outlive their organization)
    op.create_table(
        "audit_events",
        sa.Column("audit_id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("event_type", sa.String(100), nullable=False),
        sa.Column("severity", sa.String(20), nullable=False, server_default="info"),
        sa.Column("tenant_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("correlation_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("resource_type", sa.String(50), nullable=True),
        sa.Column("resource_id", sa.String(255), nullable=True),
        sa.Column("event_data", postgresql.JSONB, nullable=False),
        sa.Column("ip_address", sa.String(45), nullable=True),
        sa.Column("user_agent", sa.Text, nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )
    op.create_index("idx_audit_tenant", "audit_events", ["tenant_id"])
    op.create_index("idx_audit_correlation", "audit_events", ["correlation_id"])
    op.create_index("idx_audit_event_type", "audit_events", ["event_type"])
    op.create_index("idx_audit_created", "audit_events", ["created_at"])
    op.create_index("idx_audit_resource", "audit_events", ["resource_type", "resource_id"])


def downgrade() -> None:
    op.drop_table("audit_events")
    op.drop_table("blacklist_entries")
    op.drop_table("batch_admin_assignments")
    op.drop_table("users")
    op.drop_table("batches")
    op.drop_table("organization_features")
    op.drop_table("organizations")
    op.drop_table("plan_features")
    op.drop_table("subscription_plans")
    op.drop_table("features")
