"""create agents, topup requests and wallet ledger tables

Revision ID: 3f9d2c71b8a4
Revises: 
Create Date: 2026-10-18 09:30:00.000000
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "3f9d2c71b8a4"
down_revision = None
branch_labels = None
depends_on = None

MONEY = sa.Numeric(14, 2)


def upgrade() -> None:
    op.create_table(
        "agents",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("full_name", sa.String(length=150)),
        sa.Column("wallet_balance", MONEY, nullable=False, server_default="0"),
        sa.Column("balance_synced_at", sa.DateTime(timezone=True)),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True)),
    )

    op.create_table(
        "topup_requests",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("agent_id", sa.String(length=36), sa.ForeignKey("agents.id"), nullable=False),
        sa.Column("amount", MONEY, nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
        sa.Column("notes", sa.Text()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("approved_at", sa.DateTime(timezone=True)),
        sa.Column("approved_by", sa.String(length=36)),
        sa.Column("resolved_at", sa.DateTime(timezone=True)),
        sa.Column("resolved_by", sa.String(length=36)),
        sa.CheckConstraint("amount > 0", name="ck_topup_requests_amount_positive"),
    )
    op.create_index("ix_topup_requests_agent_id", "topup_requests", ["agent_id"])

    op.create_table(
        "wallet_transactions",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("agent_id", sa.String(length=36), sa.ForeignKey("agents.id"), nullable=False),
        sa.Column(
            "topup_request_id",
            sa.String(length=36),
            sa.ForeignKey("topup_requests.id", ondelete="SET NULL"),
            unique=True,
        ),
        sa.Column("amount", MONEY, nullable=False),
        sa.Column("kind", sa.String(length=30), nullable=False),
        sa.Column("direction", sa.String(length=10)),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
        sa.Column("description", sa.String(length=255), nullable=False),
        sa.Column("reference_code", sa.String(length=64), nullable=False, unique=True),
        sa.Column("payment_method", sa.String(length=20)),
        sa.Column("admin_notes", sa.Text()),
        sa.Column("admin_id", sa.String(length=36)),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("processed_at", sa.DateTime(timezone=True)),
        sa.CheckConstraint("amount > 0", name="ck_wallet_transactions_amount_positive"),
    )
    op.create_index("ix_wallet_transactions_agent_id", "wallet_transactions", ["agent_id"])
    op.create_index("ix_wallet_transactions_status", "wallet_transactions", ["status"])
    op.create_index("ix_wallet_transactions_created_at", "wallet_transactions", ["created_at"])


def downgrade() -> None:
    op.drop_index("ix_wallet_transactions_created_at", table_name="wallet_transactions")
    op.drop_index("ix_wallet_transactions_status", table_name="wallet_transactions")
    op.drop_index("ix_wallet_transactions_agent_id", table_name="wallet_transactions")
    op.drop_table("wallet_transactions")

    op.drop_index("ix_topup_requests_agent_id", table_name="topup_requests")
    op.drop_table("topup_requests")

    op.drop_table("agents")
