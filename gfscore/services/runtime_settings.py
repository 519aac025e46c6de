"""
Runtime settings: key/value rows in `settings`, merged over fixed defaults.

Every job reads these at the start of its run. Nothing here is cached
across calls, so an admin change takes effect on the next invocation.

Public API
----------
get_all_settings(db)                        -> dict[str, bool | float | int | str]
get_setting(db, key)                        -> bool | float | int | str
update_setting(db, key, value, updated_by)  -> Setting
load_scoring_config(db)                     -> ScoringConfig
snapshots_enabled(db)                       -> bool
"""
from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Optional, Union

from sqlalchemy.orm import Session

from gfscore.core.errors import InvalidSettingError
from gfscore.models.setting import Setting
from gfscore.services.scoring import DEFAULT_DECAY_RATE, ScoringConfig

logger = logging.getLogger(__name__)

SettingValue = Union[bool, float, int, str]


class SettingKey:
    TIME_DECAY_ENABLED     = "TIME_DECAY_ENABLED"
    DECAY_RATE             = "DECAY_RATE"
    DECAY_HOUR             = "DECAY_HOUR"
    PRICE_SNAPSHOT_ENABLED = "PRICE_SNAPSHOT_ENABLED"
    PRICE_SNAPSHOT_HOUR    = "PRICE_SNAPSHOT_HOUR"


DEFAULTS: dict[str, SettingValue] = {
    SettingKey.TIME_DECAY_ENABLED: True,
    SettingKey.DECAY_RATE: DEFAULT_DECAY_RATE,
    SettingKey.DECAY_HOUR: 0,
    SettingKey.PRICE_SNAPSHOT_ENABLED: True,
    SettingKey.PRICE_SNAPSHOT_HOUR: 2,
}


# ---------------------------------------------------------------------------
# Coercion
# ---------------------------------------------------------------------------

def _coerce_bool(key: str, value: SettingValue) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "false"):
        return value.strip().lower() == "true"
    raise InvalidSettingError(key, "expected a boolean")


def _coerce_hour(key: str, value: SettingValue) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidSettingError(key, "expected a whole hour")
    if not 0 <= value <= 23:
        raise InvalidSettingError(key, "hour must be between 0 and 23")
    if int(value) != value:
        raise InvalidSettingError(key, "expected a whole hour")
    return int(value)


def _coerce_rate(key: str, value: SettingValue) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidSettingError(key, "expected a number")
    if not 0 < value <= 1:
        raise InvalidSettingError(key, "decay rate must be in (0, 1]")
    return float(value)


_COERCERS = {
    SettingKey.TIME_DECAY_ENABLED: _coerce_bool,
    SettingKey.PRICE_SNAPSHOT_ENABLED: _coerce_bool,
    SettingKey.DECAY_RATE: _coerce_rate,
    SettingKey.DECAY_HOUR: _coerce_hour,
    SettingKey.PRICE_SNAPSHOT_HOUR: _coerce_hour,
}


def coerce_setting(key: str, value: SettingValue) -> SettingValue:
    """Validate a value for a known key. Unknown keys are rejected."""
    coercer = _COERCERS.get(key)
    if coercer is None:
        raise InvalidSettingError(key, "unknown setting")
    return coercer(key, value)


def _decode(row: Setting) -> SettingValue:
    """Stored value, or the default if the row no longer validates."""
    try:
        return coerce_setting(row.key, json.loads(row.value))
    except (ValueError, TypeError, InvalidSettingError):
        logger.warning("Ignoring malformed setting %s=%r; using default", row.key, row.value)
        return DEFAULTS[row.key]


# ---------------------------------------------------------------------------
# Public — reads
# ---------------------------------------------------------------------------

def get_all_settings(db: Session) -> dict[str, SettingValue]:
    values = dict(DEFAULTS)
    for row in db.query(Setting).filter(Setting.key.in_(DEFAULTS.keys())).all():
        values[row.key] = _decode(row)
    return values


def get_setting(db: Session, key: str) -> SettingValue:
    if key not in DEFAULTS:
        raise InvalidSettingError(key, "unknown setting")
    row = db.query(Setting).filter(Setting.key == key).first()
    if row is None:
        return DEFAULTS[key]
    return _decode(row)


def load_scoring_config(db: Session) -> ScoringConfig:
    values = get_all_settings(db)
    return ScoringConfig(
        decay_rate=float(values[SettingKey.DECAY_RATE]),
        decay_enabled=bool(values[SettingKey.TIME_DECAY_ENABLED]),
    )


def snapshots_enabled(db: Session) -> bool:
    return bool(get_setting(db, SettingKey.PRICE_SNAPSHOT_ENABLED))


# ---------------------------------------------------------------------------
# Public — writes
# ---------------------------------------------------------------------------

def update_setting(
    db: Session,
    key: str,
    value: SettingValue,
    updated_by: Optional[str] = None,
) -> Setting:
    """Validate and upsert one setting. Commits."""
    coerced = coerce_setting(key, value)
    now = datetime.now(tz=timezone.utc)

    row = db.query(Setting).filter(Setting.key == key).first()
    if row is None:
        row = Setting(key=key)
        db.add(row)
    row.value = json.dumps(coerced)
    row.updated_by = updated_by
    row.updated_at = now
    db.commit()
    db.refresh(row)

    logger.info("Setting %s updated to %r by %s", key, coerced, updated_by or "unknown")
    return row
