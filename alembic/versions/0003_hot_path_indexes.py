"""add hot-path indexes for pending-order lookup and outbox claims

Revision ID: 0003_hot_path_indexes
Revises: 0002_append_only_logs
Create Date: 2026-10-17
"""

from alembic import op


revision = "0003_hot_path_indexes"
down_revision = "0002_append_only_logs"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_index(
        "ix_orders_customer_id_status_created_at",
        "orders",
        ["customer_id", "status", "created_at"],
    )
    op.create_index(
        "ix_outbox_events_status_created_at",
        "outbox_events",
        ["status", "created_at"],
    )


def downgrade() -> None:
    op.drop_index("ix_outbox_events_status_created_at", table_name="outbox_events")
    op.drop_index("ix_orders_customer_id_status_created_at", table_name="orders")
