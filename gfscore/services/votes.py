"""
Vote store: validate, write and correct votes, then refresh the product.

Public API
----------
cast_vote(db, product_id, voter, safety, taste, ...)           -> CastResult
create_product_with_vote(db, name, voter, safety, taste, ...)  -> CastResult
delete_vote(db, vote_id, voter)                                -> int (product_id)
list_votes_by_product(db, product_id)                          -> list[Vote]
list_votes_by_user(db, user_id)                                -> list[Vote]
list_votes_by_anonymous(db, anonymous_id)                      -> list[Vote]

Each voter holds at most one vote per product. Casting again on the same
product is a soft correction: scores and context are replaced in place,
created_at is kept.

Every write and the recompute it triggers share one transaction, with the
product row locked first so concurrent votes on one product serialise.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from gfscore.core.errors import (
    ProductAlreadyExistsError,
    ProductNotFoundError,
    VoteNotFoundError,
    VoteOwnershipError,
    VoteValidationError,
)
from gfscore.models.product import Product
from gfscore.models.vote import AnonymousVoter, RegisteredVoter, Vote, VoterIdentity
from gfscore.services.recompute import recompute_one
from gfscore.services.scoring import PRICE_MAX, PRICE_MIN, SCORE_MAX, SCORE_MIN

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class GeoPoint:
    latitude: float
    longitude: float


@dataclass
class CastResult:
    vote: Vote
    product: Product
    is_edit: bool


def _now() -> datetime:
    return datetime.now(tz=timezone.utc)


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

def _check_range(name: str, value: float, low: float, high: float) -> None:
    if value is None or not math.isfinite(value) or not low <= value <= high:
        raise VoteValidationError(
            f"{name.capitalize()} must be between {low:g} and {high:g}", field=name
        )


def validate_voter(voter: VoterIdentity) -> None:
    if isinstance(voter, RegisteredVoter):
        if not voter.user_id or not voter.user_id.strip():
            raise VoteValidationError("user_id must not be empty", field="user_id")
    elif isinstance(voter, AnonymousVoter):
        if not voter.token or not voter.token.strip():
            raise VoteValidationError("anonymous_id must not be empty", field="anonymous_id")
    else:
        raise VoteValidationError("A vote needs exactly one voter identity", field="voter")


def validate_vote(
    voter: VoterIdentity,
    safety: float,
    taste: float,
    price: Optional[float] = None,
    geo_point: Optional[GeoPoint] = None,
) -> None:
    """Reject a vote before anything is written."""
    validate_voter(voter)
    _check_range("safety", safety, SCORE_MIN, SCORE_MAX)
    _check_range("taste", taste, SCORE_MIN, SCORE_MAX)
    if price is not None:
        _check_range("price", price, PRICE_MIN, PRICE_MAX)
    if geo_point is not None:
        _check_range("latitude", geo_point.latitude, -90.0, 90.0)
        _check_range("longitude", geo_point.longitude, -180.0, 180.0)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _lock_product(db: Session, product_id: int) -> Product:
    product = (
        db.query(Product)
        .filter(Product.id == product_id)
        .with_for_update()
        .first()
    )
    if product is None:
        raise ProductNotFoundError(product_id)
    return product


def _find_vote(db: Session, product_id: int, voter: VoterIdentity) -> Optional[Vote]:
    q = db.query(Vote).filter(Vote.product_id == product_id)
    if isinstance(voter, RegisteredVoter):
        q = q.filter(Vote.user_id == voter.user_id)
    else:
        q = q.filter(Vote.anonymous_id == voter.token, Vote.is_anonymous == True)  # noqa: E712
    return q.first()


def _name_taken(db: Session, name: str) -> bool:
    return db.query(Product.id).filter(Product.name == name).first() is not None


def _write_scores(
    vote: Vote,
    safety: float,
    taste: float,
    price: Optional[float],
    store_name: Optional[str],
    geo_point: Optional[GeoPoint],
) -> None:
    vote.safety = float(safety)
    vote.taste = float(taste)
    vote.price = float(price) if price is not None else None
    vote.store_name = store_name.strip() if store_name and store_name.strip() else None
    vote.latitude = geo_point.latitude if geo_point else None
    vote.longitude = geo_point.longitude if geo_point else None


def _upsert_vote(
    db: Session,
    product: Product,
    voter: VoterIdentity,
    safety: float,
    taste: float,
    price: Optional[float],
    store_name: Optional[str],
    geo_point: Optional[GeoPoint],
    now: datetime,
) -> tuple[Vote, bool]:
    vote = _find_vote(db, product.id, voter)
    is_edit = vote is not None
    if vote is None:
        vote = Vote(product_id=product.id, created_at=now)
        vote.assign_voter(voter)
        db.add(vote)
    else:
        vote.updated_at = now
    _write_scores(vote, safety, taste, price, store_name, geo_point)
    db.flush()
    return vote, is_edit


# ---------------------------------------------------------------------------
# Public — writes
# ---------------------------------------------------------------------------

def cast_vote(
    db: Session,
    product_id: int,
    voter: VoterIdentity,
    safety: float,
    taste: float,
    price: Optional[float] = None,
    store_name: Optional[str] = None,
    geo_point: Optional[GeoPoint] = None,
    now: Optional[datetime] = None,
) -> CastResult:
    """Record (or correct) a vote and refresh the product aggregate. Commits."""
    validate_vote(voter, safety, taste, price, geo_point)
    now = now or _now()

    product = _lock_product(db, product_id)
    vote, is_edit = _upsert_vote(
        db, product, voter, safety, taste, price, store_name, geo_point, now
    )
    recompute_one(db, product.id, now=now, commit=False)
    db.commit()
    db.refresh(vote)
    db.refresh(product)

    logger.info(
        "Vote %s %s on product %s (%s)",
        vote.id, "corrected" if is_edit else "cast", product.id,
        "anonymous" if vote.is_anonymous else "registered",
    )
    return CastResult(vote=vote, product=product, is_edit=is_edit)


def create_product_with_vote(
    db: Session,
    name: str,
    voter: VoterIdentity,
    safety: float,
    taste: float,
    price: Optional[float] = None,
    store_name: Optional[str] = None,
    geo_point: Optional[GeoPoint] = None,
    now: Optional[datetime] = None,
) -> CastResult:
    """Create a product together with its first vote. Commits."""
    clean_name = (name or "").strip()
    if not clean_name:
        raise VoteValidationError("Product name must not be empty", field="name")
    validate_vote(voter, safety, taste, price, geo_point)
    now = now or _now()

    if _name_taken(db, clean_name):
        raise ProductAlreadyExistsError(clean_name)

    product = Product(
        name=clean_name,
        created_by=voter.user_id if isinstance(voter, RegisteredVoter) else None,
        created_at=now,
    )
    db.add(product)
    try:
        db.flush()  # get product.id before the vote references it
    except IntegrityError:
        # A concurrent request created the same name after the check above.
        db.rollback()
        raise ProductAlreadyExistsError(clean_name)

    vote, _ = _upsert_vote(
        db, product, voter, safety, taste, price, store_name, geo_point, now
    )
    recompute_one(db, product.id, now=now, commit=False)
    db.commit()
    db.refresh(vote)
    db.refresh(product)

    logger.info("Product %s (%r) created with vote %s", product.id, product.name, vote.id)
    return CastResult(vote=vote, product=product, is_edit=False)


def delete_vote(db: Session, vote_id: int, voter: VoterIdentity) -> int:
    """Delete the caller's own vote and refresh the product. Returns product_id."""
    vote = db.get(Vote, vote_id)
    if vote is None:
        raise VoteNotFoundError(vote_id)
    if vote.voter != voter:
        raise VoteOwnershipError(vote_id)

    product_id = vote.product_id
    _lock_product(db, product_id)
    db.delete(vote)
    db.flush()
    recompute_one(db, product_id, commit=False)
    db.commit()

    logger.info("Vote %s deleted from product %s", vote_id, product_id)
    return product_id


# ---------------------------------------------------------------------------
# Public — reads
# ---------------------------------------------------------------------------

def list_votes_by_product(db: Session, product_id: int) -> list[Vote]:
    return (
        db.query(Vote)
        .filter(Vote.product_id == product_id)
        .order_by(Vote.created_at.desc(), Vote.id.desc())
        .all()
    )


def list_votes_by_user(db: Session, user_id: str) -> list[Vote]:
    return (
        db.query(Vote)
        .filter(Vote.user_id == user_id)
        .order_by(Vote.created_at.desc(), Vote.id.desc())
        .all()
    )


def list_votes_by_anonymous(db: Session, anonymous_id: str) -> list[Vote]:
    return (
        db.query(Vote)
        .filter(Vote.anonymous_id == anonymous_id)
        .order_by(Vote.created_at.desc(), Vote.id.desc())
        .all()
    )
