"""
Product — the rated item plus its cached vote aggregate.

The aggregate columns are a denormalised cache written only by
gfscore/services/recompute.py; the `votes` table is the source of truth.
"""
from datetime import datetime
from sqlalchemy import Integer, String, Float, DateTime, CheckConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from gfscore.db.base import Base


class Product(Base):
    __tablename__ = "products"
    __table_args__ = (
        CheckConstraint(
            "vote_count = registered_votes + anonymous_votes",
            name="ck_products_vote_counters",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(256), nullable=False, unique=True, index=True)

    average_safety: Mapped[float] = mapped_column(Float, nullable=False, default=50.0)
    average_taste: Mapped[float] = mapped_column(Float, nullable=False, default=50.0)
    avg_price: Mapped[float | None] = mapped_column(Float, nullable=True)
    vote_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    registered_votes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    anonymous_votes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_updated: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    created_by: Mapped[str | None] = mapped_column(String(128), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
