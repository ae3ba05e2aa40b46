"""add wallets and job invocations

Revision ID: 5c1f0e7a9b21
Revises: 
Create Date: 2026-10-19 09:30:00.000000
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "5c1f0e7a9b21"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "wallets",
        sa.Column("wallet_id", sa.String(length=64), primary_key=True),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("wallet_name", sa.String(length=100), nullable=False),
        sa.Column("network", sa.String(length=20), nullable=False),
        sa.Column("credentials_blob", sa.Text(), nullable=False),
        sa.Column("initial_address", sa.String(length=128), nullable=False),
        sa.Column("is_default", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("currency", sa.String(length=10)),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_wallets_user_id", "wallets", ["user_id"])
    op.create_index(
        "uq_wallets_default_per_user",
        "wallets",
        ["user_id"],
        unique=True,
        sqlite_where=sa.text("is_default = 1"),
        postgresql_where=sa.text("is_default"),
    )

    op.create_table(
        "job_invocations",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("job_name", sa.String(length=100), nullable=False),
        sa.Column("payload", sa.Text()),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
        sa.Column("attempts", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("claim_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_error", sa.Text()),
        sa.Column("result", sa.Text()),
        sa.Column("worker_id", sa.String(length=64)),
        sa.Column("retry_of", sa.String(length=36)),
        sa.Column("claimed_at", sa.DateTime(timezone=True)),
        sa.Column("finished_at", sa.DateTime(timezone=True)),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True)),
    )
    op.create_index("ix_job_invocations_job_name", "job_invocations", ["job_name"])
    op.create_index("ix_job_invocations_status_created_at", "job_invocations", ["status", "created_at"])


def downgrade() -> None:
    op.drop_index("ix_job_invocations_status_created_at", table_name="job_invocations")
    op.drop_index("ix_job_invocations_job_name", table_name="job_invocations")
    op.drop_table("job_invocations")

    op.drop_index("uq_wallets_default_per_user", table_name="wallets")
    op.drop_index("ix_wallets_user_id", table_name="wallets")
    op.drop_table("wallets")
