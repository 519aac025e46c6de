"""
Scheduled job response schemas.

POST /jobs/recompute-all    → RecomputeAllResponse
POST /jobs/price-snapshots  → CaptureSnapshotsResponse
"""
from pydantic import BaseModel, Field


class RecomputeFailureOut(BaseModel):
    product_id: int
    error: str


class RecomputeAllResponse(BaseModel):
    succeeded: int = Field(description="Products recomputed successfully.")
    failed: int = Field(description="Products whose recompute raised.")
    failures: list[RecomputeFailureOut] = Field(default_factory=list)


class CaptureSnapshotsResponse(BaseModel):
    snapshot_date: str = Field(description="UTC calendar day the snapshots are dated.")
    snapshots_written: int
    products_considered: int = Field(description="Products that had an average price.")
    skipped_disabled: bool = Field(description="True when PRICE_SNAPSHOT_ENABLED is false.")
    skipped_conflicts: int = Field(
        default=0, description="Products whose snapshot for today was written by a concurrent run."
    )
