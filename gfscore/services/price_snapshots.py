"""
Price snapshot capture — daily diff of products.avg_price.

Rules
-----
  * Skipped entirely when PRICE_SNAPSHOT_ENABLED is false.
  * Only products with an avg_price are considered.
  * A snapshot is written when the product has none yet, or when
    |avg_price - latest snapshot price| >= PRICE_CHANGE_THRESHOLD.
  * Never a second snapshot for the same (product, UTC day): if the latest
    one is already dated today the product is skipped. The unique
    constraint on (product_id, snapshot_date) backs this up: each insert
    runs in its own savepoint, so a row a concurrent run already wrote
    is counted in skipped_conflicts and the rest of the batch commits.

Public API
----------
capture_price_snapshots(db, now)               -> CaptureResult
get_price_history(db, product_id, days, today) -> list[PriceSnapshot]
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from gfscore.core.errors import ProductNotFoundError
from gfscore.models.price_snapshot import PriceSnapshot
from gfscore.models.product import Product
from gfscore.services.runtime_settings import snapshots_enabled

logger = logging.getLogger(__name__)

PRICE_CHANGE_THRESHOLD = 0.2
DEFAULT_HISTORY_DAYS = 90

# Absorbs float noise so a change of exactly 0.2 (e.g. 3.0 -> 3.2) counts.
_EPSILON = 1e-9


@dataclass
class CaptureResult:
    snapshot_date: date
    snapshots_written: int = 0
    products_considered: int = 0
    skipped_disabled: bool = False
    skipped_conflicts: int = 0


def _today(now: Optional[datetime] = None) -> date:
    now = now or datetime.now(tz=timezone.utc)
    if now.tzinfo is not None:
        now = now.astimezone(timezone.utc)
    return now.date()


def price_changed(previous: float, current: float) -> bool:
    return abs(current - previous) + _EPSILON >= PRICE_CHANGE_THRESHOLD


def _latest_snapshot(db: Session, product_id: int) -> Optional[PriceSnapshot]:
    return (
        db.query(PriceSnapshot)
        .filter(PriceSnapshot.product_id == product_id)
        .order_by(PriceSnapshot.snapshot_date.desc(), PriceSnapshot.id.desc())
        .first()
    )


# ---------------------------------------------------------------------------
# Public — capture job
# ---------------------------------------------------------------------------

def capture_price_snapshots(db: Session, now: Optional[datetime] = None) -> CaptureResult:
    """Write today's snapshots for products whose price moved. Commits once."""
    today = _today(now)
    result = CaptureResult(snapshot_date=today)

    if not snapshots_enabled(db):
        logger.info("Price snapshots are disabled, skipping")
        result.skipped_disabled = True
        return result

    products: list[tuple[int, float]] = (
        db.query(Product.id, Product.avg_price)
        .filter(Product.avg_price.isnot(None))
        .order_by(Product.id)
        .all()
    )

    for product_id, avg_price in products:
        result.products_considered += 1
        last = _latest_snapshot(db, product_id)
        if last is not None:
            if last.snapshot_date >= today:
                continue
            if not price_changed(last.price, avg_price):
                continue

        savepoint = db.begin_nested()
        try:
            db.add(PriceSnapshot(product_id=product_id, snapshot_date=today, price=avg_price))
            savepoint.commit()
            result.snapshots_written += 1
        except IntegrityError:
            savepoint.rollback()
            result.skipped_conflicts += 1
            logger.warning(
                "Price snapshot for product %s on %s already exists; skipped", product_id, today
            )

    db.commit()

    logger.info(
        "Captured %d price snapshots out of %d priced products",
        result.snapshots_written, result.products_considered,
    )
    return result


# ---------------------------------------------------------------------------
# Public — query helpers
# ---------------------------------------------------------------------------

def get_price_history(
    db: Session,
    product_id: int,
    days: int = DEFAULT_HISTORY_DAYS,
    today: Optional[date] = None,
) -> list[PriceSnapshot]:
    """Snapshots from the last `days` days, newest first."""
    if db.get(Product, product_id) is None:
        raise ProductNotFoundError(product_id)
    cutoff = (today or _today()) - timedelta(days=days)
    return (
        db.query(PriceSnapshot)
        .filter(
            PriceSnapshot.product_id == product_id,
            PriceSnapshot.snapshot_date >= cutoff,
        )
        .order_by(PriceSnapshot.snapshot_date.desc())
        .all()
    )
