"""
PriceSnapshot — daily record of a product's average price.

Append-only. One row per (product_id, snapshot_date); the unique
constraint is the final guard against a second capture on the same day.
"""
from datetime import datetime, date
from sqlalchemy import Integer, Float, DateTime, Date, ForeignKey, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from gfscore.db.base import Base


class PriceSnapshot(Base):
    __tablename__ = "price_snapshots"
    __table_args__ = (
        UniqueConstraint("product_id", "snapshot_date", name="uq_price_snapshot_product_date"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    product_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True
    )
    snapshot_date: Mapped[date] = mapped_column(
        Date, nullable=False, index=True, comment="UTC calendar day of capture"
    )
    price: Mapped[float] = mapped_column(
        Float, nullable=False, comment="products.avg_price at capture time (1-5 scale)"
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
