"""
Votes router.

POST   /votes                          — cast (or correct) a vote
POST   /votes/migrate                  — move anonymous votes to a signed-in user
DELETE /votes/{vote_id}                — delete the caller's own vote
GET    /votes/by-product/{product_id}  — all votes of a product
GET    /votes/by-user/{user_id}        — all votes of a registered user
GET    /votes/by-anonymous/{token}     — all votes of an anonymous token
"""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from gfscore.core.errors import VoteValidationError
from gfscore.db.base import get_db
from gfscore.models.vote import AnonymousVoter, RegisteredVoter, Vote, VoterIdentity
from gfscore.routers.products import product_to_response
from gfscore.schemas.common import ErrorResponse, ValidationErrorResponse
from gfscore.schemas.vote import (
    CastVoteRequest,
    CastVoteResponse,
    MigrateVotesRequest,
    MigrateVotesResponse,
    VoteListResponse,
    VoteOut,
)
from gfscore.services.migration import migrate_anonymous_votes
from gfscore.services.votes import (
    cast_vote,
    delete_vote,
    list_votes_by_anonymous,
    list_votes_by_product,
    list_votes_by_user,
)

router = APIRouter(prefix="/votes", tags=["votes"])


# ---------------------------------------------------------------------------
# Serialization helpers
# ---------------------------------------------------------------------------

def _vote_to_response(v: Vote) -> VoteOut:
    return VoteOut(
        id=v.id,
        product_id=v.product_id,
        user_id=v.user_id,
        anonymous_id=v.anonymous_id,
        is_anonymous=v.is_anonymous,
        safety=v.safety,
        taste=v.taste,
        price=v.price,
        store_name=v.store_name,
        latitude=v.latitude,
        longitude=v.longitude,
        created_at=v.created_at.isoformat() if v.created_at else "",
        updated_at=v.updated_at.isoformat() if v.updated_at else None,
    )


def _list_response(votes: list[Vote]) -> VoteListResponse:
    return VoteListResponse(total=len(votes), items=[_vote_to_response(v) for v in votes])


def _voter_from_query(user_id: Optional[str], anonymous_id: Optional[str]) -> VoterIdentity:
    if (user_id is None) == (anonymous_id is None):
        raise VoteValidationError(
            "exactly one of user_id or anonymous_id is required", field="voter"
        )
    if user_id is not None:
        return RegisteredVoter(user_id=user_id)
    return AnonymousVoter(token=anonymous_id)


# ---------------------------------------------------------------------------
# POST /votes
# ---------------------------------------------------------------------------

@router.post(
    "",
    response_model=CastVoteResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Cast a vote for a product",
    responses={
        404: {"model": ErrorResponse, "description": "Product does not exist."},
        422: {"model": ValidationErrorResponse, "description": "Score out of range, bad identity or half a geo point."},
    },
)
def cast(payload: CastVoteRequest, db: Session = Depends(get_db)):
    """
    Record the vote and recompute the product's cached aggregate before
    returning.

    Each voter holds one vote per product: voting again on the same product
    replaces the earlier scores (`is_edit=true`) and keeps its original
    timestamp.
    """
    result = cast_vote(
        db=db,
        product_id=payload.product_id,
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
        is_edit=result.is_edit,
        product=product_to_response(result.product),
    )


# ---------------------------------------------------------------------------
# POST /votes/migrate
# ---------------------------------------------------------------------------

@router.post(
    "/migrate",
    response_model=MigrateVotesResponse,
    summary="Reassign an anonymous token's votes to a registered user",
)
def migrate(payload: MigrateVotesRequest, db: Session = Depends(get_db)):
    """
    Called once after sign-in. The caller vouches that `anonymous_id`
    belongs to `user_id`.

    Safe to retry: a repeat call finds nothing left to migrate and returns
    `migrated_count: 0`.
    """
    result = migrate_anonymous_votes(
        db=db, user_id=payload.user_id, anonymous_id=payload.anonymous_id
    )
    return MigrateVotesResponse(
        migrated_count=result.migrated_count,
        merged_count=result.merged_count,
        products_recomputed=result.product_ids,
    )


# ---------------------------------------------------------------------------
# DELETE /votes/{vote_id}
# ---------------------------------------------------------------------------

@router.delete(
    "/{vote_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete your own vote",
    responses={
        403: {"model": ErrorResponse, "description": "Vote belongs to someone else."},
        404: {"model": ErrorResponse, "description": "Vote does not exist."},
    },
)
def remove_vote(
    vote_id: int,
    user_id: Optional[str] = Query(default=None, min_length=1, max_length=128),
    anonymous_id: Optional[str] = Query(default=None, min_length=1, max_length=128),
    db: Session = Depends(get_db),
):
    delete_vote(db, vote_id, _voter_from_query(user_id, anonymous_id))


# ---------------------------------------------------------------------------
# GET /votes/by-*
# ---------------------------------------------------------------------------

@router.get("/by-product/{product_id}", response_model=VoteListResponse)
def votes_for_product(product_id: int, db: Session = Depends(get_db)):
    return _list_response(list_votes_by_product(db, product_id))


@router.get("/by-user/{user_id}", response_model=VoteListResponse)
def votes_for_user(user_id: str, db: Session = Depends(get_db)):
    return _list_response(list_votes_by_user(db, user_id))


@router.get("/by-anonymous/{anonymous_id}", response_model=VoteListResponse)
def votes_for_anonymous(anonymous_id: str, db: Session = Depends(get_db)):
    return _list_response(list_votes_by_anonymous(db, anonymous_id))
