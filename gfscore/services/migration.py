"""
Anonymous vote migration: hand an anonymous token's votes to a signed-in user.

Public API
----------
migrate_anonymous_votes(db, user_id, anonymous_id) -> MigrationResult

Lookup key is the token alone (`anonymous_id == token AND is_anonymous`).
The caller vouches that the token belongs to `user_id`.

Each matched vote flips to RegisteredVoter(user_id) in place. If the user
already holds a registered vote on the same product, that vote wins and
the anonymous duplicate is deleted (counted in merged_count).
migrated_count counts every anonymous vote processed, so a second run
with the same token returns 0.

Every touched product is recomputed inside the same transaction, since a
registered vote weighs double.

Lock order: the rows of every product the token voted on are locked with
SELECT ... FOR UPDATE, lowest id first, before any vote is changed. This is
the same product-then-vote order cast_vote and delete_vote use, so a
migration never deadlocks against them or against another migration.

Known race: a vote cast under the same token while a migration is running
may be left anonymous. It converges on the next migration call for that
token; the daily recompute keeps the product aggregate consistent with
whatever identity the vote ends up with.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.orm import Session

from gfscore.models.product import Product
from gfscore.models.vote import AnonymousVoter, RegisteredVoter, Vote
from gfscore.services.recompute import recompute_one
from gfscore.services.votes import validate_voter

logger = logging.getLogger(__name__)


@dataclass
class MigrationResult:
    migrated_count: int = 0
    merged_count: int = 0
    product_ids: list[int] = field(default_factory=list)


def _lock_products(db: Session, product_ids: list[int]) -> None:
    """Take the product row locks, lowest id first."""
    for product_id in sorted(product_ids):
        db.query(Product).filter(Product.id == product_id).with_for_update().first()


def migrate_anonymous_votes(
    db: Session,
    user_id: str,
    anonymous_id: str,
    now: Optional[datetime] = None,
) -> MigrationResult:
    """Reassign all open votes of `anonymous_id` to `user_id`. Commits."""
    user = RegisteredVoter(user_id=user_id)
    validate_voter(user)
    validate_voter(AnonymousVoter(token=anonymous_id))
    now = now or datetime.now(tz=timezone.utc)

    open_votes = (
        Vote.anonymous_id == anonymous_id,
        Vote.is_anonymous == True,  # noqa: E712
    )
    product_ids = sorted(
        pid for (pid,) in db.query(Vote.product_id).filter(*open_votes).distinct().all()
    )
    result = MigrationResult()
    if not product_ids:
        return result

    _lock_products(db, product_ids)

    # Re-read under the locks; a vote may have changed since the lookup above.
    anon_votes: list[Vote] = (
        db.query(Vote)
        .filter(*open_votes, Vote.product_id.in_(product_ids))
        .order_by(Vote.product_id, Vote.id)
        .all()
    )

    touched: list[int] = []
    for vote in anon_votes:
        already_voted = (
            db.query(Vote.id)
            .filter(Vote.product_id == vote.product_id, Vote.user_id == user_id)
            .first()
            is not None
        )
        if already_voted:
            db.delete(vote)
            result.merged_count += 1
        else:
            vote.assign_voter(user)
        result.migrated_count += 1
        if vote.product_id not in touched:
            touched.append(vote.product_id)
        # Flush per vote so the unique (product_id, user_id) check sees it.
        db.flush()

    for product_id in touched:
        recompute_one(db, product_id, now=now, commit=False)
    db.commit()

    result.product_ids = touched
    logger.info(
        "Migrated %d anonymous votes to user %s (%d merged, %d products recomputed)",
        result.migrated_count, user_id, result.merged_count, len(touched),
    )
    return result
