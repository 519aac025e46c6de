"""
Vote request / response schemas.

Cast:      POST /votes          → CastVoteRequest      → CastVoteResponse
Create:    POST /products       → CreateProductRequest → CastVoteResponse
Migrate:   POST /votes/migrate  → MigrateVotesRequest  → MigrateVotesResponse
List:      GET  /votes/by-*     → VoteListResponse
"""
from __future__ import annotations

from typing import Annotated, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from gfscore.models.vote import AnonymousVoter, RegisteredVoter, VoterIdentity
from gfscore.schemas.product import ProductOut
from gfscore.services.votes import GeoPoint

IdentityStr = Annotated[str, Field(min_length=1, max_length=128)]


# ---------------------------------------------------------------------------
# Shared request blocks
# ---------------------------------------------------------------------------

class VoterFields(BaseModel):
    """Exactly one of `user_id` / `anonymous_id` must be set."""
    user_id: Optional[IdentityStr] = Field(
        default=None,
        description="Registered user id, as resolved by the auth layer.",
    )
    anonymous_id: Optional[IdentityStr] = Field(
        default=None,
        description="Client-generated anonymous token (before sign-in).",
        examples=["anon-7f3c2e"],
    )

    @model_validator(mode="after")
    def check_single_identity(self):
        if (self.user_id is None) == (self.anonymous_id is None):
            raise ValueError("exactly one of user_id or anonymous_id is required")
        return self

    def to_voter(self) -> VoterIdentity:
        if self.user_id is not None:
            return RegisteredVoter(user_id=self.user_id)
        return AnonymousVoter(token=self.anonymous_id)


class VoteScoresFields(VoterFields):
    safety: float = Field(ge=0, le=100, description="Gluten safety rating, 0–100.", examples=[85])
    taste: float = Field(ge=0, le=100, description="Taste rating, 0–100.", examples=[70])
    price: Optional[float] = Field(default=None, ge=1, le=5, description="Price level, 1–5.")
    store_name: Optional[str] = Field(default=None, max_length=256, examples=["Mercadona"])
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)

    @field_validator("store_name", mode="before")
    @classmethod
    def strip_store_name(cls, v):
        if isinstance(v, str):
            return v.strip() or None
        return v

    @model_validator(mode="after")
    def check_geo_pair(self):
        if (self.latitude is None) != (self.longitude is None):
            raise ValueError("latitude and longitude must be given together")
        return self

    def to_geo_point(self) -> Optional[GeoPoint]:
        if self.latitude is None:
            return None
        return GeoPoint(latitude=self.latitude, longitude=self.longitude)


# ---------------------------------------------------------------------------
# Cast
# ---------------------------------------------------------------------------

class CastVoteRequest(VoteScoresFields):
    """A single vote for an existing product."""
    product_id: int = Field(gt=0)


class CreateProductRequest(VoteScoresFields):
    """A new product plus the creator's first vote."""
    name: str = Field(
        min_length=1,
        max_length=256,
        description="Unique product name.",
        examples=["Schär Pan Rústico"],
    )

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, v):
        return v.strip() if isinstance(v, str) else v


class CastVoteResponse(BaseModel):
    vote_id: int
    product_id: int
    is_edit: bool = Field(description="True when this corrected the voter's earlier vote.")
    product: ProductOut = Field(description="Product with its freshly recomputed aggregate.")


# ---------------------------------------------------------------------------
# Migrate
# ---------------------------------------------------------------------------

class MigrateVotesRequest(BaseModel):
    user_id: IdentityStr
    anonymous_id: IdentityStr


class MigrateVotesResponse(BaseModel):
    migrated_count: int = Field(description="Anonymous votes processed (0 on a repeat call).")
    merged_count: int = Field(description="Anonymous duplicates dropped in favour of an existing registered vote.")
    products_recomputed: list[int]


# ---------------------------------------------------------------------------
# Read
# ---------------------------------------------------------------------------

class VoteOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    product_id: int
    user_id: Optional[str] = None
    anonymous_id: Optional[str] = None
    is_anonymous: bool
    safety: float
    taste: float
    price: Optional[float] = None
    store_name: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    created_at: str
    updated_at: Optional[str] = None


class VoteListResponse(BaseModel):
    total: int
    items: list[VoteOut]
