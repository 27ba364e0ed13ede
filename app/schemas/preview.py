from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from app.schemas.validation import ValidationError


class PreviewSessionOut(BaseModel):
    id: str
    created_at: datetime
    previewed_routes: list[str]


class SettingSubmit(BaseModel):
    setting_id: str = Field(min_length=1, description="e.g. rest_resource[widgets/5]")
    value: Any = Field(description="Raw JSON string, or an object that is encoded as one")
    strict: bool = False


class SettingsValidateRequest(BaseModel):
    settings: dict[str, Any] = Field(min_length=1)


class SettingResult(BaseModel):
    """Outcome of validating one setting"""
    setting_id: str
    route: str
    valid: bool
    previewed: bool
    errors: list[ValidationError]
    value: Any = None  # decoded canonical value when valid


class SettingsValidateResponse(BaseModel):
    valid: bool
    results: list[SettingResult]


class PendingEditOut(BaseModel):
    setting_id: str
    route: str
    previewed: bool
    raw_value: str | None
    value: Any = None
    errors: list[ValidationError]


class PreviewSessionDetailOut(PreviewSessionOut):
    settings: list[PendingEditOut]
