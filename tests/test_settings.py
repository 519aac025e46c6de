"""
Runtime settings: service coercion rules plus the /settings endpoints.
"""
from __future__ import annotations

from datetime import datetime, timezone

import pytest

from gfscore.core.errors import InvalidSettingError
from gfscore.models.setting import Setting
from gfscore.services.runtime_settings import (
    DEFAULTS,
    SettingKey,
    coerce_setting,
    get_all_settings,
    get_setting,
    load_scoring_config,
    update_setting,
)


EPOCH = datetime(2026, 1, 1, tzinfo=timezone.utc)


class TestDefaults:
    def test_unset_keys_return_defaults(self, db):
        values = get_all_settings(db)
        assert values == DEFAULTS
        assert values[SettingKey.TIME_DECAY_ENABLED] is True
        assert values[SettingKey.DECAY_RATE] == pytest.approx(0.995)
        assert values[SettingKey.DECAY_HOUR] == 0
        assert values[SettingKey.PRICE_SNAPSHOT_ENABLED] is True

    def test_default_scoring_config(self, db):
        cfg = load_scoring_config(db)
        assert cfg.decay_enabled is True
        assert cfg.decay_rate == pytest.approx(0.995)


class TestCoercion:
    @pytest.mark.parametrize("raw, expected", [(True, True), ("false", False), (" TRUE ", True)])
    def test_bool(self, raw, expected):
        assert coerce_setting(SettingKey.TIME_DECAY_ENABLED, raw) is expected

    @pytest.mark.parametrize("raw", ["yes", 1, 0.0])
    def test_bool_rejects_non_boolean(self, raw):
        with pytest.raises(InvalidSettingError):
            coerce_setting(SettingKey.PRICE_SNAPSHOT_ENABLED, raw)

    @pytest.mark.parametrize("raw", [0, -0.5, 1.5, True, "0.9"])
    def test_rate_rejects_out_of_range_or_wrong_type(self, raw):
        with pytest.raises(InvalidSettingError):
            coerce_setting(SettingKey.DECAY_RATE, raw)

    def test_rate_accepts_one(self):
        assert coerce_setting(SettingKey.DECAY_RATE, 1) == 1.0

    @pytest.mark.parametrize("raw", [-1, 24, 3.5, "3"])
    def test_hour_rejects(self, raw):
        with pytest.raises(InvalidSettingError):
            coerce_setting(SettingKey.DECAY_HOUR, raw)

    def test_hour_accepts_whole_float(self):
        assert coerce_setting(SettingKey.PRICE_SNAPSHOT_HOUR, 4.0) == 4

    def test_unknown_key(self):
        with pytest.raises(InvalidSettingError):
            coerce_setting("NOT_A_SETTING", 1)


class TestStorage:
    def test_update_then_read(self, db):
        update_setting(db, SettingKey.DECAY_RATE, 0.98, updated_by="admin")
        assert get_setting(db, SettingKey.DECAY_RATE) == pytest.approx(0.98)
        assert load_scoring_config(db).decay_rate == pytest.approx(0.98)

    def test_update_overwrites_single_row(self, db):
        update_setting(db, SettingKey.DECAY_HOUR, 3)
        update_setting(db, SettingKey.DECAY_HOUR, 5)
        assert db.query(Setting).filter(Setting.key == SettingKey.DECAY_HOUR).count() == 1
        assert get_setting(db, SettingKey.DECAY_HOUR) == 5

    def test_invalid_update_leaves_value(self, db):
        update_setting(db, SettingKey.DECAY_RATE, 0.97)
        with pytest.raises(InvalidSettingError):
            update_setting(db, SettingKey.DECAY_RATE, 2.0)
        assert get_setting(db, SettingKey.DECAY_RATE) == pytest.approx(0.97)

    def test_malformed_stored_value_falls_back_to_default(self, db):
        db.add(Setting(key=SettingKey.DECAY_RATE, value="not json", updated_at=EPOCH))
        db.commit()
        assert get_setting(db, SettingKey.DECAY_RATE) == pytest.approx(0.995)

    def test_get_unknown_key(self, db):
        with pytest.raises(InvalidSettingError):
            get_setting(db, "NOPE")


class TestSettingsEndpoints:
    def test_get_defaults(self, client):
        r = client.get("/settings")
        assert r.status_code == 200
        body = r.json()["settings"]
        assert body["TIME_DECAY_ENABLED"] is True
        assert body["DECAY_RATE"] == pytest.approx(0.995)
        assert body["PRICE_SNAPSHOT_HOUR"] == 2

    def test_put_and_read_back(self, client):
        r = client.put("/settings/DECAY_RATE", json={"value": 0.99, "updated_by": "admin"})
        assert r.status_code == 200
        assert r.json()["value"] == pytest.approx(0.99)
        assert r.json()["updated_by"] == "admin"

        assert client.get("/settings").json()["settings"]["DECAY_RATE"] == pytest.approx(0.99)

    def test_put_disables_decay(self, client):
        r = client.put("/settings/TIME_DECAY_ENABLED", json={"value": False})
        assert r.status_code == 200
        assert r.json()["value"] is False

    def test_put_invalid_value(self, client):
        r = client.put("/settings/DECAY_HOUR", json={"value": 30})
        assert r.status_code == 422
        assert r.json()["code"] == "INVALID_SETTING"

    def test_put_unknown_key(self, client):
        r = client.put("/settings/SOMETHING_ELSE", json={"value": 1})
        assert r.status_code == 422
        assert r.json()["details"]["key"] == "SOMETHING_ELSE"
