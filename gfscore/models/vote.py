"""
Vote — one voter's {safety, taste, price?} rating of one product.

Identity is exactly one of a registered user id or an anonymous client
token. The three identity columns (user_id, anonymous_id, is_anonymous)
are only ever written together through `Vote.assign_voter`, and the
CHECK constraint rejects any row where they disagree.

At most one vote per (product, user) and per (product, anonymous token).
NULLs do not collide in either unique constraint.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Union

from sqlalchemy import (
    Integer, String, Float, Boolean, DateTime, ForeignKey,
    CheckConstraint, UniqueConstraint, Index,
)
from sqlalchemy.orm import Mapped, mapped_column

from gfscore.db.base import Base


# ---------------------------------------------------------------------------
# Voter identity (two variants, never both)
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RegisteredVoter:
    user_id: str


@dataclass(frozen=True)
class AnonymousVoter:
    token: str


VoterIdentity = Union[RegisteredVoter, AnonymousVoter]


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


class Vote(Base):
    __tablename__ = "votes"
    __table_args__ = (
        CheckConstraint(
            "(is_anonymous AND anonymous_id IS NOT NULL AND user_id IS NULL) OR "
            "(NOT is_anonymous AND user_id IS NOT NULL AND anonymous_id IS NULL)",
            name="ck_votes_single_identity",
        ),
        CheckConstraint("safety >= 0 AND safety <= 100", name="ck_votes_safety_range"),
        CheckConstraint("taste >= 0 AND taste <= 100", name="ck_votes_taste_range"),
        CheckConstraint("price IS NULL OR (price >= 1 AND price <= 5)", name="ck_votes_price_range"),
        CheckConstraint(
            "(latitude IS NULL) = (longitude IS NULL)",
            name="ck_votes_geo_point_pair",
        ),
        UniqueConstraint("product_id", "user_id", name="uq_votes_product_user"),
        UniqueConstraint("product_id", "anonymous_id", name="uq_votes_product_anonymous"),
        Index("ix_votes_anonymous_open", "anonymous_id", "is_anonymous"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    product_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True
    )

    user_id: Mapped[str | None] = mapped_column(String(128), nullable=True, index=True)
    anonymous_id: Mapped[str | None] = mapped_column(String(128), nullable=True, index=True)
    is_anonymous: Mapped[bool] = mapped_column(Boolean, nullable=False)

    safety: Mapped[float] = mapped_column(Float, nullable=False)
    taste: Mapped[float] = mapped_column(Float, nullable=False)
    price: Mapped[float | None] = mapped_column(Float, nullable=True)

    store_name: Mapped[str | None] = mapped_column(String(256), nullable=True)
    latitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    longitude: Mapped[float | None] = mapped_column(Float, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    @property
    def voter(self) -> VoterIdentity:
        if self.is_anonymous:
            return AnonymousVoter(token=self.anonymous_id)
        return RegisteredVoter(user_id=self.user_id)

    def assign_voter(self, voter: VoterIdentity) -> None:
        """Set all three identity columns from a single identity variant."""
        if isinstance(voter, RegisteredVoter):
            self.user_id = voter.user_id
            self.anonymous_id = None
            self.is_anonymous = False
        else:
            self.user_id = None
            self.anonymous_id = voter.token
            self.is_anonymous = True
