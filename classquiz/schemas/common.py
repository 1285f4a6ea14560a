"""Shared / generic schemas."""

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Standard error envelope returned for every domain failure."""

    success: bool = False
    error_code: str
    message: str
    details: dict[str, Any] | None = None


class SuccessResponse(BaseModel):
    """Generic success wrapper."""

    success: bool = True
    message: str = "ok"
    data: dict[str, Any] | None = None


def as_utc(value: datetime | None) -> datetime | None:
    """Interpret naive datetimes as UTC; convert aware ones to UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
