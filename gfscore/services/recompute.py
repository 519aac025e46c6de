"""
Aggregate recomputation: re-derive a product's cached scores from its votes.

Public API
----------
recompute_one(db, product_id, now, commit)  -> RecomputeResult | None
recompute_all(db, now)                      -> BatchRecomputeResult

recompute_one locks the product row, reads every vote and the current
settings, runs the scoring function and writes the result back, all in one
transaction. A product that no longer exists is a logged no-op.

recompute_all walks the whole catalog with one transaction per product.
A failure on one product is recorded and the batch moves on.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.orm import Session

from gfscore.models.product import Product
from gfscore.models.vote import Vote
from gfscore.services.runtime_settings import load_scoring_config
from gfscore.services.scoring import Aggregate, compute_aggregate

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass
class RecomputeResult:
    product_id: int
    aggregate: Aggregate
    computed_at: datetime


@dataclass
class RecomputeFailure:
    product_id: int
    error: str


@dataclass
class BatchRecomputeResult:
    succeeded: int = 0
    failed: int = 0
    failures: list[RecomputeFailure] = field(default_factory=list)


def _now() -> datetime:
    return datetime.now(tz=timezone.utc)


def _apply(product: Product, aggregate: Aggregate, now: datetime) -> None:
    product.average_safety = aggregate.average_safety
    product.average_taste = aggregate.average_taste
    product.avg_price = aggregate.avg_price
    product.vote_count = aggregate.vote_count
    product.registered_votes = aggregate.registered_votes
    product.anonymous_votes = aggregate.anonymous_votes
    product.last_updated = now


# ---------------------------------------------------------------------------
# Public — single product
# ---------------------------------------------------------------------------

def recompute_one(
    db: Session,
    product_id: int,
    now: Optional[datetime] = None,
    commit: bool = True,
) -> Optional[RecomputeResult]:
    """
    Recompute and store one product's aggregate.
    With commit=False the caller owns the transaction (and the row lock).
    """
    now = now or _now()

    # Serialises concurrent recomputes of the same product (no-op on SQLite).
    product = (
        db.query(Product)
        .filter(Product.id == product_id)
        .with_for_update()
        .first()
    )
    if product is None:
        logger.info("Recompute skipped: product %s not found", product_id)
        return None

    votes = (
        db.query(Vote)
        .filter(Vote.product_id == product_id)
        .order_by(Vote.id)
        .all()
    )
    aggregate = compute_aggregate(votes, now, load_scoring_config(db))
    _apply(product, aggregate, now)
    db.flush()

    if commit:
        db.commit()

    logger.debug(
        "Recomputed product %s: safety=%.2f taste=%.2f votes=%d",
        product_id, aggregate.average_safety, aggregate.average_taste, aggregate.vote_count,
    )
    return RecomputeResult(product_id=product_id, aggregate=aggregate, computed_at=now)


# ---------------------------------------------------------------------------
# Public — whole catalog
# ---------------------------------------------------------------------------

def recompute_all(db: Session, now: Optional[datetime] = None) -> BatchRecomputeResult:
    """
    Recompute every product against a single reference time.
    Never raises for a per-product failure; see BatchRecomputeResult.failures.
    """
    now = now or _now()
    product_ids = [pid for (pid,) in db.query(Product.id).order_by(Product.id).all()]
    result = BatchRecomputeResult()

    for product_id in product_ids:
        try:
            recompute_one(db, product_id, now=now, commit=False)
            db.commit()
            result.succeeded += 1
        except Exception as exc:
            db.rollback()
            logger.exception("Recompute failed for product %s", product_id)
            result.failed += 1
            result.failures.append(RecomputeFailure(product_id=product_id, error=str(exc)))

    logger.info(
        "Recompute-all finished: %d succeeded, %d failed (of %d products)",
        result.succeeded, result.failed, len(product_ids),
    )
    return result
