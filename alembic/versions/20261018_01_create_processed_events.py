from __future__ import annotations

from alembic import op
import sqlalchemy as sa

from notification_service.models.types import GUID

revision = "20261018_01"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "processed_events",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("message_id", sa.String(length=255), nullable=False),
        sa.Column("product_id", sa.String(length=255), nullable=False),
    )
    op.create_index(op.f("ix_processed_events_message_id"), "processed_events", ["message_id"], unique=True)


def downgrade() -> None:
    op.drop_index(op.f("ix_processed_events_message_id"), table_name="processed_events")
    op.drop_table("processed_events")
