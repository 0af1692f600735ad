"""Health endpoints for API v1."""

from __future__ import annotations

from fastapi import APIRouter

from marketplace.core.config import get_config
from marketplace.database.db import get_active_database_url

router = APIRouter(tags=["health"])


@router.get("/health")
def health() -> dict:
    cfg = get_config()
    backend = get_active_database_url().split(":", 1)[0]
    return {"status": "ok", "service": cfg.APP_NAME, "version": cfg.APP_VERSION, "database": backend}
