"""Configuration module for the vendor lead marketplace service."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from urllib.parse import urlparse
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv

from marketplace.core.exceptions import ConfigurationError

load_dotenv()

PLACEHOLDER_JWT_SECRET = "change_me_jwt_secret"
YEARLY_RESET_MODES = {"none", "calendar_year"}


def _as_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Config:
    """Runtime configuration with validation."""

    APP_NAME: str
    APP_VERSION: str
    ENV: str
    DEBUG: bool
    DATABASE_URL: str
    DB_CONNECTIVITY_REQUIRED: bool
    AUTH_JWT_SECRET: str
    AUTH_COOKIE_NAME: str
    QUOTA_TIMEZONE: str
    QUOTA_YEARLY_RESET_MODE: str
    LEAD_WINDOW_DAYS: int
    MAX_VENDORS_PER_LEAD: int
    DEFAULT_PAGE_SIZE: int
    MAX_PAGE_SIZE: int
    REDIS_URL: str
    CELERY_BROKER_URL: str
    CELERY_RESULT_BACKEND: str
    CELERY_TASK_ALWAYS_EAGER: bool
    API_HOST: str
    API_PORT: int
    API_PREFIX: str
    LOG_LEVEL: str
    LOG_FILE: str

    @property
    def is_production(self) -> bool:
        return self.ENV == "production"

    @property
    def quota_zone(self) -> ZoneInfo:
        return ZoneInfo(self.QUOTA_TIMEZONE)

    @property
    def uses_placeholder_secret(self) -> bool:
        return self.AUTH_JWT_SECRET == PLACEHOLDER_JWT_SECRET


def _build_config(env: str | None = None) -> Config:
    resolved_env = (env or os.getenv("ENV", "development")).strip().lower()
    debug = _as_bool(os.getenv("DEBUG"), default=(resolved_env != "production"))
    redis_url = os.getenv("REDIS_URL", "redis://localhost:6379/0")

    config = Config(
        APP_NAME=os.getenv("APP_NAME", "Vendor Lead Marketplace"),
        APP_VERSION=os.getenv("APP_VERSION", "1.0.0"),
        ENV=resolved_env,
        DEBUG=debug if resolved_env != "production" else False,
        DATABASE_URL=os.getenv("DATABASE_URL", "sqlite:///./marketplace.db"),
        DB_CONNECTIVITY_REQUIRED=_as_bool(
            os.getenv("DB_CONNECTIVITY_REQUIRED"), default=(resolved_env == "production")
        ),
        AUTH_JWT_SECRET=os.getenv("AUTH_JWT_SECRET", PLACEHOLDER_JWT_SECRET),
        AUTH_COOKIE_NAME=os.getenv("AUTH_COOKIE_NAME", "vendor_token"),
        QUOTA_TIMEZONE=os.getenv("QUOTA_TIMEZONE", "UTC"),
        QUOTA_YEARLY_RESET_MODE=os.getenv("QUOTA_YEARLY_RESET_MODE", "none").strip().lower(),
        LEAD_WINDOW_DAYS=int(os.getenv("LEAD_WINDOW_DAYS", "30")),
        MAX_VENDORS_PER_LEAD=int(os.getenv("MAX_VENDORS_PER_LEAD", "5")),
        DEFAULT_PAGE_SIZE=int(os.getenv("DEFAULT_PAGE_SIZE", "20")),
        MAX_PAGE_SIZE=int(os.getenv("MAX_PAGE_SIZE", "100")),
        REDIS_URL=redis_url,
        CELERY_BROKER_URL=os.getenv("CELERY_BROKER_URL", redis_url),
        CELERY_RESULT_BACKEND=os.getenv("CELERY_RESULT_BACKEND", redis_url),
        CELERY_TASK_ALWAYS_EAGER=_as_bool(os.getenv("CELERY_TASK_ALWAYS_EAGER")),
        API_HOST=os.getenv("API_HOST", "0.0.0.0"),
        API_PORT=int(os.getenv("API_PORT", "8000")),
        API_PREFIX=os.getenv("API_PREFIX", "/api/v1"),
        LOG_LEVEL=os.getenv("LOG_LEVEL", "INFO").upper(),
        LOG_FILE=os.getenv("LOG_FILE", ""),
    )
    _validate_config(config)
    return config


def _validate_database_url(database_url: str) -> None:
    parsed = urlparse(database_url)
    if parsed.scheme not in {"sqlite", "postgresql", "postgresql+psycopg2"}:
        raise ConfigurationError(
            "DATABASE_URL must use sqlite:// or postgresql:// style URL."
        )
    if parsed.scheme.startswith("postgresql") and not parsed.hostname:
        raise ConfigurationError("PostgreSQL DATABASE_URL is missing hostname.")


def _validate_config(config: Config) -> None:
    _validate_database_url(config.DATABASE_URL)

    try:
        ZoneInfo(config.QUOTA_TIMEZONE)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ConfigurationError(f"QUOTA_TIMEZONE is not a known zone: {config.QUOTA_TIMEZONE}") from exc
    if config.QUOTA_YEARLY_RESET_MODE not in YEARLY_RESET_MODES:
        raise ConfigurationError("QUOTA_YEARLY_RESET_MODE must be one of none/calendar_year.")
    if config.LEAD_WINDOW_DAYS < 1:
        raise ConfigurationError("LEAD_WINDOW_DAYS must be >= 1.")
    if config.MAX_VENDORS_PER_LEAD < 1:
        raise ConfigurationError("MAX_VENDORS_PER_LEAD must be >= 1.")
    if config.DEFAULT_PAGE_SIZE < 1 or config.MAX_PAGE_SIZE < config.DEFAULT_PAGE_SIZE:
        raise ConfigurationError("Page sizes must satisfy 1 <= DEFAULT_PAGE_SIZE <= MAX_PAGE_SIZE.")
    if config.LOG_LEVEL not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
        raise ConfigurationError("LOG_LEVEL must be one of DEBUG/INFO/WARNING/ERROR/CRITICAL.")
    if config.is_production and "change_me" in config.DATABASE_URL.lower():
        raise ConfigurationError("Production DATABASE_URL uses placeholder credentials.")
    if config.is_production and config.uses_placeholder_secret:
        raise ConfigurationError("AUTH_JWT_SECRET must be set in production.")
    if not config.AUTH_COOKIE_NAME:
        raise ConfigurationError("AUTH_COOKIE_NAME must not be empty.")


@lru_cache(maxsize=8)
def get_config(env: str | None = None) -> Config:
    """Get validated configuration for the requested environment."""
    return _build_config(env)
