"""
Runtime settings router.

GET /settings        — every known setting (stored value or default)
PUT /settings/{key}  — validate and store one setting
"""
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from gfscore.db.base import get_db
from gfscore.schemas.common import ErrorResponse
from gfscore.schemas.settings import SettingOut, SettingsResponse, UpdateSettingRequest
from gfscore.services.runtime_settings import get_all_settings, get_setting, update_setting

router = APIRouter(prefix="/settings", tags=["settings"])


@router.get("", response_model=SettingsResponse, summary="Current runtime settings")
def read_settings(db: Session = Depends(get_db)):
    return SettingsResponse(settings=get_all_settings(db))


@router.put(
    "/{key}",
    response_model=SettingOut,
    summary="Update one runtime setting",
    responses={422: {"model": ErrorResponse, "description": "Unknown key or invalid value."}},
)
def write_setting(key: str, payload: UpdateSettingRequest, db: Session = Depends(get_db)):
    """
    | Key | Type | Default |
    |---|---|---|
    | `TIME_DECAY_ENABLED` | bool | `true` |
    | `DECAY_RATE` | number in (0, 1] | `0.995` |
    | `DECAY_HOUR` | hour 0–23 (UTC) | `0` |
    | `PRICE_SNAPSHOT_ENABLED` | bool | `true` |
    | `PRICE_SNAPSHOT_HOUR` | hour 0–23 (UTC) | `2` |

    Jobs read settings at the start of each run, so a change applies from
    the next run on.
    """
    row = update_setting(db, key, payload.value, updated_by=payload.updated_by)
    return SettingOut(
        key=row.key,
        value=get_setting(db, row.key),
        updated_by=row.updated_by,
        updated_at=row.updated_at.isoformat(),
    )
