"""Create access gate tables: access_tokens, access_logs, access_requests.

Revision ID: 001_access_gate_tables
Revises:
Create Date: 2026-10-17

- access_tokens: single-use join tokens (active → used | expired)
- access_logs: append-only successful joins (duplicate lookback source)
- access_requests: manual requests awaiting committee review
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

revision: str = "001_access_gate_tables"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # =========================================================================
    # access_tokens
    # =========================================================================
    op.create_table(
        "access_tokens",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("token", sa.String(64), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(32), nullable=True),
        sa.Column("verification_method", sa.String(20), nullable=False),
        sa.Column(
            "status",
            sa.String(10),
            server_default="active",
            nullable=False,
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("used_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("ip_hash", sa.String(64), nullable=True),
        sa.UniqueConstraint("token", name="uq_access_tokens_token"),
        sa.CheckConstraint(
            "status IN ('active', 'used', 'expired')",
            name="ck_access_tokens_status",
        ),
        sa.CheckConstraint(
            "verification_method IN ('ac_uk_email', 'manual_approval')",
            name="ck_access_tokens_verification_method",
        ),
    )
    op.create_index(
        "ix_access_tokens_status_expires_at",
        "access_tokens",
        ["status", "expires_at"],
    )

    # =========================================================================
    # access_logs
    # =========================================================================
    op.create_table(
        "access_logs",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(32), nullable=True),
        sa.Column("verification_method", sa.String(20), nullable=False),
        sa.Column("token", sa.String(64), nullable=False),
        sa.Column(
            "status",
            sa.String(30),
            server_default="successful_join",
            nullable=False,
        ),
        sa.Column("ip_hash", sa.String(64), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )
    op.create_index(
        "ix_access_logs_email_created_at", "access_logs", ["email", "created_at"]
    )
    op.create_index(
        "ix_access_logs_phone_created_at", "access_logs", ["phone", "created_at"]
    )

    # =========================================================================
    # access_requests
    # =========================================================================
    op.create_table(
        "access_requests",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("first_name", sa.String(50), nullable=False),
        sa.Column("surname", sa.String(50), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(32), nullable=False),
        sa.Column("user_type", sa.String(20), nullable=False),
        sa.Column("trips", sa.Text(), nullable=True),
        sa.Column(
            "status",
            sa.String(10),
            server_default="pending",
            nullable=False,
        ),
        sa.Column("reviewed_by", sa.String(100), nullable=True),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.CheckConstraint(
            "status IN ('pending', 'approved', 'rejected')",
            name="ck_access_requests_status",
        ),
        sa.CheckConstraint(
            "user_type IN ('student', 'alumni', 'staff', 'other')",
            name="ck_access_requests_user_type",
        ),
    )
    op.create_index(
        "ix_access_requests_phone_created_at",
        "access_requests",
        ["phone", "created_at"],
    )


def downgrade() -> None:
    op.drop_index("ix_access_requests_phone_created_at", table_name="access_requests")
    op.drop_table("access_requests")
    op.drop_index("ix_access_logs_phone_created_at", table_name="access_logs")
    op.drop_index("ix_access_logs_email_created_at", table_name="access_logs")
    op.drop_table("access_logs")
    op.drop_index("ix_access_tokens_status_expires_at", table_name="access_tokens")
    op.drop_table("access_tokens")
