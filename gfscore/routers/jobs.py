"""
Scheduled jobs router — called by the external daily scheduler.

POST /jobs/recompute-all     — re-apply time decay to every product (default 00:00 UTC)
POST /jobs/price-snapshots   — capture changed average prices (default 02:00 UTC)

The trigger hours live in the DECAY_HOUR / PRICE_SNAPSHOT_HOUR settings;
the scheduler reads them from GET /settings.
"""
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from gfscore.db.base import get_db
from gfscore.schemas.jobs import (
    CaptureSnapshotsResponse,
    RecomputeAllResponse,
    RecomputeFailureOut,
)
from gfscore.services.price_snapshots import capture_price_snapshots
from gfscore.services.recompute import recompute_all

router = APIRouter(prefix="/jobs", tags=["jobs"])


@router.post(
    "/recompute-all",
    response_model=RecomputeAllResponse,
    summary="Recompute every product's aggregate",
    responses={
        200: {"description": "Batch finished; per-product failures are listed, not raised."},
    },
)
def recompute_all_products(db: Session = Depends(get_db)):
    """
    Walk the whole catalog and recompute each product against one reference
    time, so time decay applies even to products with no new votes.

    A failure on one product is isolated: the batch continues and the
    failure is reported in `failures`.
    """
    result = recompute_all(db)
    return RecomputeAllResponse(
        succeeded=result.succeeded,
        failed=result.failed,
        failures=[
            RecomputeFailureOut(product_id=f.product_id, error=f.error)
            for f in result.failures
        ],
    )


@router.post(
    "/price-snapshots",
    response_model=CaptureSnapshotsResponse,
    summary="Capture today's price snapshots",
)
def capture_snapshots(db: Session = Depends(get_db)):
    """
    Write a snapshot for each priced product whose average moved by at
    least 0.2 since its last snapshot (or that has none yet).
    Running it twice on the same UTC day writes nothing the second time.
    """
    result = capture_price_snapshots(db)
    return CaptureSnapshotsResponse(
        snapshot_date=str(result.snapshot_date),
        snapshots_written=result.snapshots_written,
        products_considered=result.products_considered,
        skipped_disabled=result.skipped_disabled,
        skipped_conflicts=result.skipped_conflicts,
    )
