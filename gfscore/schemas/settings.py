"""
Runtime settings schemas.

GET /settings        → SettingsResponse
PUT /settings/{key}  → UpdateSettingRequest → SettingOut
"""
from typing import Optional, Union
from pydantic import BaseModel, Field

SettingValueField = Union[bool, int, float, str]


class SettingsResponse(BaseModel):
    settings: dict[str, SettingValueField] = Field(
        description="Every known key, stored value or default.",
    )


class UpdateSettingRequest(BaseModel):
    value: SettingValueField = Field(examples=[0.99, True, 3])
    updated_by: Optional[str] = Field(default=None, max_length=128)


class SettingOut(BaseModel):
    key: str
    value: SettingValueField
    updated_by: Optional[str] = None
    updated_at: str
