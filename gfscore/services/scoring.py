"""
Scoring function — time-decayed, identity-weighted vote aggregate.

Definition
----------
For every vote i, with reference time `now` and decay rate r ∈ (0, 1]:

  age_days_i = max(0, (now - created_at_i) / 1 day)    (future votes clamp to 0)
  w_decay_i  = r ** age_days_i   (1 when decay is disabled)
  w_ident_i  = 2 for registered voters, 1 for anonymous voters
  w_i        = w_decay_i * w_ident_i

  average_safety = Σ w_i * safety_i / Σ w_i           (same for taste)
  avg_price      = same weights, over votes that carry a price; None if none

vote_count / registered_votes / anonymous_votes are plain, undecayed counts.

An empty vote set (or one whose total weight underflows to zero) resets
safety and taste to NEUTRAL_SCORE.

Pure: no DB, no clock, no settings lookup. Callers pass `now` and a
ScoringConfig explicitly.

Public API
----------
compute_aggregate(votes, now, config)  -> Aggregate
decay_weight(created_at, now, config)  -> float
vote_weight(vote, now, config)         -> float
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, Optional, Protocol


SECONDS_PER_DAY = 86_400

REGISTERED_WEIGHT = 2.0
ANONYMOUS_WEIGHT = 1.0

DEFAULT_DECAY_RATE = 0.995
NEUTRAL_SCORE = 50.0

SCORE_MIN, SCORE_MAX = 0.0, 100.0
PRICE_MIN, PRICE_MAX = 1.0, 5.0


# ---------------------------------------------------------------------------
# Inputs / outputs
# ---------------------------------------------------------------------------

class ScoredVote(Protocol):
    """Anything vote-shaped: the ORM Vote or a plain test double."""
    is_anonymous: bool
    safety: float
    taste: float
    price: Optional[float]
    created_at: datetime


@dataclass(frozen=True)
class ScoringConfig:
    decay_rate: float = DEFAULT_DECAY_RATE
    decay_enabled: bool = True

    def __post_init__(self) -> None:
        if not (0.0 < self.decay_rate <= 1.0):
            raise ValueError(f"decay_rate must be in (0, 1], got {self.decay_rate}")


@dataclass(frozen=True)
class Aggregate:
    average_safety: float
    average_taste: float
    avg_price: Optional[float]
    vote_count: int
    registered_votes: int
    anonymous_votes: int


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _as_utc(ts: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored as UTC.
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def age_in_days(created_at: datetime, now: datetime) -> float:
    seconds = (_as_utc(now) - _as_utc(created_at)).total_seconds()
    return max(0.0, seconds / SECONDS_PER_DAY)


def decay_weight(created_at: datetime, now: datetime, config: ScoringConfig) -> float:
    if not config.decay_enabled:
        return 1.0
    return config.decay_rate ** age_in_days(created_at, now)


def vote_weight(vote: ScoredVote, now: datetime, config: ScoringConfig) -> float:
    identity = ANONYMOUS_WEIGHT if vote.is_anonymous else REGISTERED_WEIGHT
    return decay_weight(vote.created_at, now, config) * identity


# ---------------------------------------------------------------------------
# Public
# ---------------------------------------------------------------------------

def compute_aggregate(
    votes: Iterable[ScoredVote],
    now: datetime,
    config: ScoringConfig,
) -> Aggregate:
    """Fold a product's votes into its cached aggregate."""
    weight_sum = 0.0
    safety_sum = 0.0
    taste_sum = 0.0
    price_weight_sum = 0.0
    price_sum = 0.0
    registered = 0
    anonymous = 0

    for vote in votes:
        if vote.is_anonymous:
            anonymous += 1
        else:
            registered += 1

        w = vote_weight(vote, now, config)
        weight_sum += w
        safety_sum += w * _clamp(vote.safety, SCORE_MIN, SCORE_MAX)
        taste_sum += w * _clamp(vote.taste, SCORE_MIN, SCORE_MAX)
        if vote.price is not None:
            price_weight_sum += w
            price_sum += w * _clamp(vote.price, PRICE_MIN, PRICE_MAX)

    if weight_sum > 0:
        average_safety = safety_sum / weight_sum
        average_taste = taste_sum / weight_sum
    else:
        average_safety = average_taste = NEUTRAL_SCORE

    return Aggregate(
        average_safety=average_safety,
        average_taste=average_taste,
        avg_price=price_sum / price_weight_sum if price_weight_sum > 0 else None,
        vote_count=registered + anonymous,
        registered_votes=registered,
        anonymous_votes=anonymous,
    )
