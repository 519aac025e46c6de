"""
Product request / response schemas.

Read:           GET  /products/{id}                 → ProductOut
Price history:  GET  /products/{id}/price-history   → PriceHistoryResponse
"""
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class ProductOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    average_safety: float = Field(description="Decay-weighted safety score, 0–100.")
    average_taste: float = Field(description="Decay-weighted taste score, 0–100.")
    avg_price: Optional[float] = Field(default=None, description="Weighted price level, 1–5.")
    vote_count: int
    registered_votes: int
    anonymous_votes: int
    last_updated: Optional[str] = Field(default=None, description="UTC time of the last recompute.")
    created_by: Optional[str] = None
    created_at: str


class ProductListResponse(BaseModel):
    total: int
    items: list[ProductOut]


class PriceSnapshotOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    product_id: int
    snapshot_date: str
    price: float


class PriceHistoryResponse(BaseModel):
    product_id: int
    days: int
    items: list[PriceSnapshotOut]
