"""
Products router.

POST /products                        — create a product with its first vote
GET  /products                        — list products (paginated, safest first)
GET  /products/{id}                   — product with cached aggregate
GET  /products/{id}/price-history     — daily price snapshots, newest first
POST /products/{id}/recompute         — force a recompute of one product
"""
from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from gfscore.db.base import get_db
from gfscore.models.price_snapshot import PriceSnapshot
from gfscore.models.product import Product
from gfscore.schemas.common import ErrorResponse, ValidationErrorResponse
from gfscore.schemas.product import (
    PriceHistoryResponse,
    PriceSnapshotOut,
    ProductListResponse,
    ProductOut,
)
from gfscore.schemas.vote import CastVoteResponse, CreateProductRequest
from gfscore.services.price_snapshots import DEFAULT_HISTORY_DAYS, get_price_history
from gfscore.services.products import get_product, list_products
from gfscore.services.recompute import recompute_one
from gfscore.services.votes import create_product_with_vote

router = APIRouter(prefix="/products", tags=["products"])


# ---------------------------------------------------------------------------
# Serialization helpers
# ---------------------------------------------------------------------------

def product_to_response(p: Product) -> ProductOut:
    return ProductOut(
        id=p.id,
        name=p.name,
        average_safety=p.average_safety,
        average_taste=p.average_taste,
        avg_price=p.avg_price,
        vote_count=p.vote_count,
        registered_votes=p.registered_votes,
        anonymous_votes=p.anonymous_votes,
        last_updated=p.last_updated.isoformat() if p.last_updated else None,
        created_by=p.created_by,
        created_at=p.created_at.isoformat() if p.created_at else "",
    )


def _snapshot_to_response(s: PriceSnapshot) -> PriceSnapshotOut:
    return PriceSnapshotOut(
        id=s.id,
        product_id=s.product_id,
        snapshot_date=str(s.snapshot_date),
        price=s.price,
    )


# ---------------------------------------------------------------------------
# POST /products
# ---------------------------------------------------------------------------

@router.post(
    "",
    response_model=CastVoteResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a product together with its first vote",
    responses={
        409: {"model": ErrorResponse, "description": "A product with this name exists."},
        422: {"model": ValidationErrorResponse, "description": "Validation error."},
    },
)
def create_product(payload: CreateProductRequest, db: Session = Depends(get_db)):
    """
    Create the product and record the creator's vote in one transaction.
    The returned aggregate already reflects that first vote.
    """
    result = create_product_with_vote(
        db=db,
        name=payload.name,
        voter=payload.to_voter(),
        safety=payload.safety,
        taste=payload.taste,
        price=payload.price,
        store_name=payload.store_name,
        geo_point=payload.to_geo_point(),
    )
    return CastVoteResponse(
        vote_id=result.vote.id,
        product_id=result.product.id,
        is_edit=False,
        product=product_to_response(result.product),
    )


# ---------------------------------------------------------------------------
# GET /products
# ---------------------------------------------------------------------------

@router.get("", response_model=ProductListResponse, summary="List products")
def list_products_endpoint(
    limit: int = Query(default=50, ge=1, le=200, description="Page size."),
    offset: int = Query(default=0, ge=0, description="Skip N items."),
    db: Session = Depends(get_db),
):
    total, items = list_products(db=db, limit=limit, offset=offset)
    return ProductListResponse(total=total, items=[product_to_response(p) for p in items])


# ---------------------------------------------------------------------------
# GET /products/{id}
# ---------------------------------------------------------------------------

@router.get(
    "/{product_id}",
    response_model=ProductOut,
    summary="Product with its cached aggregate",
    responses={404: {"model": ErrorResponse}},
)
def read_product(product_id: int, db: Session = Depends(get_db)):
    return product_to_response(get_product(db, product_id))


# ---------------------------------------------------------------------------
# GET /products/{id}/price-history
# ---------------------------------------------------------------------------

@router.get(
    "/{product_id}/price-history",
    response_model=PriceHistoryResponse,
    summary="Daily price snapshots for a product",
    responses={404: {"model": ErrorResponse}},
)
def price_history(
    product_id: int,
    days: int = Query(
        default=DEFAULT_HISTORY_DAYS, ge=1, le=3650,
        description="Look-back window in days.",
    ),
    db: Session = Depends(get_db),
):
    items = get_price_history(db, product_id, days=days)
    return PriceHistoryResponse(
        product_id=product_id,
        days=days,
        items=[_snapshot_to_response(s) for s in items],
    )


# ---------------------------------------------------------------------------
# POST /products/{id}/recompute
# ---------------------------------------------------------------------------

@router.post(
    "/{product_id}/recompute",
    response_model=ProductOut,
    summary="Recompute one product's aggregate now",
    responses={404: {"model": ErrorResponse}},
)
def recompute_product(product_id: int, db: Session = Depends(get_db)):
    """
    Re-derive the cached scores from the product's votes using the current
    settings and the current time.
    """
    recompute_one(db, product_id)
    return product_to_response(get_product(db, product_id))
