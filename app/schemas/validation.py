from typing import Any

from pydantic import BaseModel


class ValidationError(BaseModel):
    """Individual validation error"""
    field: str | None
    code: str  # empty_title, title_too_long, invalid_status, rest_invalid_param, etc.
    message: str
    data: Any = None
