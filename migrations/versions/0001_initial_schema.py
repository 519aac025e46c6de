"""initial schema: products, votes, price_snapshots, settings

Revision ID: 0001
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # --- products ---
    op.create_table(
        "products",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(256), nullable=False),
        sa.Column("average_safety", sa.Float(), nullable=False, server_default="50"),
        sa.Column("average_taste", sa.Float(), nullable=False, server_default="50"),
        sa.Column("avg_price", sa.Float(), nullable=True),
        sa.Column("vote_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("registered_votes", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("anonymous_votes", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_updated", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_by", sa.String(128), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(
            "vote_count = registered_votes + anonymous_votes",
            name="ck_products_vote_counters",
        ),
    )
    op.create_index("ix_products_id", "products", ["id"])
    op.create_index("ix_products_name", "products", ["name"], unique=True)

    # --- votes ---
    op.create_table(
        "votes",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("product_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.String(128), nullable=True),
        sa.Column("anonymous_id", sa.String(128), nullable=True),
        sa.Column("is_anonymous", sa.Boolean(), nullable=False),
        sa.Column("safety", sa.Float(), nullable=False),
        sa.Column("taste", sa.Float(), nullable=False),
        sa.Column("price", sa.Float(), nullable=True),
        sa.Column("store_name", sa.String(256), nullable=True),
        sa.Column("latitude", sa.Float(), nullable=True),
        sa.Column("longitude", sa.Float(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["product_id"], ["products.id"], ondelete="CASCADE"),
        sa.CheckConstraint(
            "(is_anonymous AND anonymous_id IS NOT NULL AND user_id IS NULL) OR "
            "(NOT is_anonymous AND user_id IS NOT NULL AND anonymous_id IS NULL)",
            name="ck_votes_single_identity",
        ),
        sa.CheckConstraint("safety >= 0 AND safety <= 100", name="ck_votes_safety_range"),
        sa.CheckConstraint("taste >= 0 AND taste <= 100", name="ck_votes_taste_range"),
        sa.CheckConstraint("price IS NULL OR (price >= 1 AND price <= 5)", name="ck_votes_price_range"),
        sa.CheckConstraint("(latitude IS NULL) = (longitude IS NULL)", name="ck_votes_geo_point_pair"),
        sa.UniqueConstraint("product_id", "user_id", name="uq_votes_product_user"),
        sa.UniqueConstraint("product_id", "anonymous_id", name="uq_votes_product_anonymous"),
    )
    op.create_index("ix_votes_id", "votes", ["id"])
    op.create_index("ix_votes_product_id", "votes", ["product_id"])
    op.create_index("ix_votes_user_id", "votes", ["user_id"])
    op.create_index("ix_votes_anonymous_id", "votes", ["anonymous_id"])
    op.create_index("ix_votes_anonymous_open", "votes", ["anonymous_id", "is_anonymous"])

    # --- price_snapshots ---
    op.create_table(
        "price_snapshots",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("product_id", sa.Integer(), nullable=False),
        sa.Column("snapshot_date", sa.Date(), nullable=False),
        sa.Column("price", sa.Float(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["product_id"], ["products.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("product_id", "snapshot_date", name="uq_price_snapshot_product_date"),
    )
    op.create_index("ix_price_snapshots_id", "price_snapshots", ["id"])
    op.create_index("ix_price_snapshots_product_id", "price_snapshots", ["product_id"])
    op.create_index("ix_price_snapshots_snapshot_date", "price_snapshots", ["snapshot_date"])

    # --- settings ---
    op.create_table(
        "settings",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("key", sa.String(64), nullable=False),
        sa.Column("value", sa.Text(), nullable=False),
        sa.Column("updated_by", sa.String(128), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_settings_id", "settings", ["id"])
    op.create_index("ix_settings_key", "settings", ["key"], unique=True)


def downgrade() -> None:
    op.drop_table("settings")
    op.drop_table("price_snapshots")
    op.drop_table("votes")
    op.drop_table("products")
