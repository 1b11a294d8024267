"""Initial schema — persona_sessions, escrow_transactions, resource_locations.

Revision ID: 001_initial
Revises: None
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "persona_sessions",
        sa.Column("storage_key", sa.String(200), primary_key=True),
        sa.Column("identity_id", sa.String(100), nullable=False),
        sa.Column("active_role", sa.String(20), nullable=False),
        sa.Column("unlocked_roles", sa.JSON, nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_persona_sessions_identity_id", "persona_sessions", ["identity_id"])

    op.create_table(
        "escrow_transactions",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("transaction_ref", sa.String(64), nullable=True),
        sa.Column("amount", sa.BigInteger, nullable=False),
        sa.Column("platform_fee_bps", sa.Integer, nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="none"),
        sa.Column("payer_ref", sa.String(100), nullable=True),
        sa.Column("counterparty_ref", sa.String(100), nullable=False),
        sa.Column("resource_ref", sa.String(100), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("release_deadline", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("amount >= 0", name="ck_escrow_amount_non_negative"),
        sa.CheckConstraint(
            "platform_fee_bps >= 0 AND platform_fee_bps <= 10000",
            name="ck_escrow_fee_bps_range",
        ),
    )
    op.create_index("ix_escrow_transactions_resource_ref", "escrow_transactions", ["resource_ref"])

    op.create_table(
        "resource_locations",
        sa.Column("resource_id", sa.String(100), primary_key=True),
        sa.Column("lat", sa.Float, nullable=False),
        sa.Column("lng", sa.Float, nullable=False),
    )


def downgrade() -> None:
    op.drop_table("resource_locations")
    op.drop_index("ix_escrow_transactions_resource_ref", table_name="escrow_transactions")
    op.drop_table("escrow_transactions")
    op.drop_index("ix_persona_sessions_identity_id", table_name="persona_sessions")
    op.drop_table("persona_sessions")
