"""order store, history, snapshots and learned aliases

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19 00:00:01
"""

from collections.abc import Sequence

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "20261019_0001"
down_revision: str | None = None
branch_labels: Sequence[str] | None = None
depends_on: Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "order_entries",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("group_key", sa.String(length=255), nullable=False),
        sa.Column("member_id", sa.String(length=255), nullable=False),
        sa.Column("member_key", sa.String(length=255), nullable=False),
        sa.Column("display_name", sa.String(length=255), nullable=False),
        sa.Column("position", sa.Integer(), nullable=True),
        sa.Column("first_seen_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("first_seen_month", sa.String(length=7), nullable=False),
        sa.Column("last_updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("group_key", "member_key", name="uq_order_entries_group_member"),
    )
    op.create_index("ix_order_entries_group_key", "order_entries", ["group_key"], unique=False)
    op.create_index("ix_order_entries_first_seen_month", "order_entries", ["first_seen_month"], unique=False)
    op.create_index(
        "ix_order_entries_group_active_position",
        "order_entries",
        ["group_key", "is_active", "position"],
        unique=False,
    )

    op.create_table(
        "order_groups",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("group_key", sa.String(length=255), nullable=False),
        sa.Column("total_members", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("last_synced_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("roster_hash", sa.String(length=64), nullable=False, server_default=""),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("group_key"),
    )

    op.create_table(
        "order_history",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("entry_id", sa.String(length=64), nullable=False),
        sa.Column("group_key", sa.String(length=255), nullable=False),
        sa.Column("action", sa.String(length=32), nullable=False),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.Column("description", sa.String(length=512), nullable=False),
        sa.Column("affected_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("entry_id"),
    )
    op.create_index("ix_order_history_group_key", "order_history", ["group_key"], unique=False)

    op.create_table(
        "order_snapshots",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("snapshot_id", sa.String(length=64), nullable=False),
        sa.Column("group_key", sa.String(length=255), nullable=False),
        sa.Column("history_entry_id", sa.String(length=64), nullable=False),
        sa.Column("member_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("entries_json", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("snapshot_id"),
    )
    op.create_index("ix_order_snapshots_group_key", "order_snapshots", ["group_key"], unique=False)
    op.create_index("ix_order_snapshots_history_entry_id", "order_snapshots", ["history_entry_id"], unique=False)

    op.create_table(
        "learned_aliases",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("group_key", sa.String(length=255), nullable=False),
        sa.Column("normalized_text", sa.String(length=255), nullable=False),
        sa.Column("member_id", sa.String(length=255), nullable=False),
        sa.Column("display_name", sa.String(length=255), nullable=False),
        sa.Column("usage_count", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("last_used_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("group_key", "normalized_text", name="uq_learned_aliases_group_text"),
    )
    op.create_index("ix_learned_aliases_group_key", "learned_aliases", ["group_key"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_learned_aliases_group_key", table_name="learned_aliases")
    op.drop_table("learned_aliases")

    op.drop_index("ix_order_snapshots_history_entry_id", table_name="order_snapshots")
    op.drop_index("ix_order_snapshots_group_key", table_name="order_snapshots")
    op.drop_table("order_snapshots")

    op.drop_index("ix_order_history_group_key", table_name="order_history")
    op.drop_table("order_history")

    op.drop_table("order_groups")

    op.drop_index("ix_order_entries_group_active_position", table_name="order_entries")
    op.drop_index("ix_order_entries_first_seen_month", table_name="order_entries")
    op.drop_index("ix_order_entries_group_key", table_name="order_entries")
    op.drop_table("order_entries")
