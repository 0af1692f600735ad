"""Common schema module."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class APIEnvelope(BaseModel):
    success: bool = True
    data: Any = None
    message: str | None = None


class PaginationMeta(BaseModel):
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=20, ge=1)
    total: int = Field(default=0, ge=0)


class ErrorEnvelope(BaseModel):
    success: bool = False
    error: str
    code: str | None = None
