"""Application entrypoint for the FastAPI service."""

from __future__ import annotations

from fastapi import FastAPI

from marketplace.api.v1.router import get_api_router
from marketplace.core.config import get_config
from marketplace.core.startup import bootstrap


def create_app() -> FastAPI:
    """Create the FastAPI application."""
    cfg = get_config()
    app = FastAPI(title=cfg.APP_NAME, version=cfg.APP_VERSION)
    app.include_router(get_api_router())

    @app.get("/")
    def root() -> dict:
        return {"service": cfg.APP_NAME, "version": cfg.APP_VERSION, "api_prefix": cfg.API_PREFIX}

    return app


# Expose ASGI app for `uvicorn marketplace.main:app`.
app = create_app()


if __name__ == "__main__":
    import uvicorn

    cfg = get_config()
    bootstrap()
    uvicorn.run("marketplace.main:app", host=cfg.API_HOST, port=cfg.API_PORT)
