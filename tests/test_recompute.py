"""
Service-level tests for aggregate recomputation (uses db fixture).

Covers:
- recompute_one writes the scoring function's output onto the product
- idempotence for a fixed reference time
- settings are re-read on every call
- missing product is a no-op
- recompute_all: counts, decay applied without new votes, failure isolation
- counter invariant after every path
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from gfscore.models.product import Product
from gfscore.models.vote import AnonymousVoter, RegisteredVoter, Vote
from gfscore.services import recompute as recompute_module
from gfscore.services.recompute import recompute_all, recompute_one
from gfscore.services.runtime_settings import SettingKey, update_setting
from gfscore.services.votes import cast_vote, create_product_with_vote

T0 = datetime(2026, 3, 1, tzinfo=timezone.utc)


def _product_with_votes(db, name: str) -> int:
    """Registered 80/80 voted at T0, anonymous 20/20 voted ten days later."""
    created = create_product_with_vote(
        db, name, RegisteredVoter("alice"), safety=80, taste=80, price=4, now=T0,
    )
    cast_vote(
        db, created.product.id, AnonymousVoter("anon-1"), safety=20, taste=20,
        price=2, now=T0 + timedelta(days=10),
    )
    return created.product.id


def _assert_counters(db, product_id: int) -> None:
    db.expire_all()
    product = db.get(Product, product_id)
    actual = db.query(Vote).filter(Vote.product_id == product_id).count()
    assert product.vote_count == product.registered_votes + product.anonymous_votes == actual


class TestRecomputeOne:
    def test_writes_weighted_aggregate(self, db):
        update_setting(db, SettingKey.TIME_DECAY_ENABLED, False)
        pid = _product_with_votes(db, "Pan sin gluten")

        result = recompute_one(db, pid, now=T0 + timedelta(days=20))

        assert result is not None
        product = db.get(Product, pid)
        assert product.average_safety == pytest.approx(60.0)
        assert product.average_taste == pytest.approx(60.0)
        assert product.avg_price == pytest.approx((2 * 4 + 2) / 3)
        assert product.vote_count == 2
        assert product.registered_votes == 1
        assert product.anonymous_votes == 1
        assert product.last_updated is not None

    def test_idempotent_for_fixed_now(self, db):
        pid = _product_with_votes(db, "Galletas maría")
        now = T0 + timedelta(days=40)

        first = recompute_one(db, pid, now=now)
        second = recompute_one(db, pid, now=now)

        assert first.aggregate == second.aggregate

    def test_single_vote_score_is_unaffected_by_age(self, db):
        created = create_product_with_vote(
            db, "Solo un voto", RegisteredVoter("bob"), safety=70, taste=30, now=T0,
        )
        later = recompute_one(db, created.product.id, now=T0 + timedelta(days=365))
        assert later.aggregate.average_safety == pytest.approx(70.0)

    def test_reads_current_decay_rate_each_call(self, db):
        pid = _product_with_votes(db, "Pasta de arroz")
        now = T0 + timedelta(days=30)

        update_setting(db, SettingKey.DECAY_RATE, 1.0)
        flat = recompute_one(db, pid, now=now).aggregate.average_safety
        update_setting(db, SettingKey.DECAY_RATE, 0.9)
        steep = recompute_one(db, pid, now=now).aggregate.average_safety

        assert flat == pytest.approx(60.0)
        # The older registered 80 loses weight faster under 0.9/day.
        assert steep < flat

    def test_missing_product_is_noop(self, db):
        assert recompute_one(db, 999_999) is None

    def test_counter_invariant_after_insert(self, db):
        pid = _product_with_votes(db, "Cerveza sin gluten")
        _assert_counters(db, pid)


class TestRecomputeAll:
    def test_counts_every_product(self, db):
        ids = [_product_with_votes(db, f"Producto {i}") for i in range(3)]
        result = recompute_all(db, now=T0 + timedelta(days=50))
        assert result.succeeded == 3
        assert result.failed == 0
        for pid in ids:
            _assert_counters(db, pid)

    def test_applies_decay_without_new_votes(self, db):
        update_setting(db, SettingKey.TIME_DECAY_ENABLED, False)
        pid = _product_with_votes(db, "Bizcocho")
        db.expire_all()
        assert db.get(Product, pid).average_safety == pytest.approx(60.0)

        update_setting(db, SettingKey.TIME_DECAY_ENABLED, True)
        update_setting(db, SettingKey.DECAY_RATE, 0.9)
        recompute_all(db, now=T0 + timedelta(days=60))

        db.expire_all()
        assert db.get(Product, pid).average_safety < 60.0

    def test_empty_catalog(self, db):
        result = recompute_all(db)
        assert (result.succeeded, result.failed) == (0, 0)

    def test_failure_on_one_product_does_not_abort_batch(self, db, monkeypatch):
        ids = [_product_with_votes(db, f"Lote {i}") for i in range(3)]
        broken = ids[1]
        real = recompute_module.compute_aggregate

        def flaky(votes, now, config):
            votes = list(votes)
            if votes and votes[0].product_id == broken:
                raise RuntimeError("corrupt vote row")
            return real(votes, now, config)

        monkeypatch.setattr(recompute_module, "compute_aggregate", flaky)
        result = recompute_all(db, now=T0 + timedelta(days=70))

        assert result.succeeded == 2
        assert result.failed == 1
        assert result.failures[0].product_id == broken
        assert "corrupt" in result.failures[0].error

        db.expire_all()
        healthy = db.get(Product, ids[0])
        untouched = db.get(Product, broken)
        assert healthy.last_updated.replace(tzinfo=None) == (T0 + timedelta(days=70)).replace(tzinfo=None)
        assert untouched.last_updated.replace(tzinfo=None) == (T0 + timedelta(days=10)).replace(tzinfo=None)
