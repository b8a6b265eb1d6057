"""Pydantic models and envelope helpers for API responses."""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ApiResponse(BaseModel):
    """Uniform response envelope: ``{success, data?, error?}``."""

    success: bool
    data: Any = None
    error: Optional[str] = None

    def envelope(self) -> dict[str, Any]:
        if self.success:
            return {"success": True, "data": self.data}
        return {"success": False, "error": self.error}


def ok(data: Any) -> dict[str, Any]:
    return ApiResponse(success=True, data=data).envelope()


def fail(message: str) -> dict[str, Any]:
    return ApiResponse(success=False, error=message).envelope()


class PresenceInfo(BaseModel):
    """Presence of one user on one board."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    user_id: str
    is_online: bool
    last_seen: Optional[str] = None


class HealthInfo(BaseModel):
    status: str
    version: str
