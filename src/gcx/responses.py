"""Success envelope shared by every JSON endpoint."""

from __future__ import annotations

from typing import Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """{"success": true, "data": ...}. Failures use the envelope in gcx.errors."""

    success: bool = True
    data: T


def ok(data: T) -> ApiResponse[T]:
    return ApiResponse(data=data)
