"""Deterministic validators and sanitizers shared by services and routes."""

from __future__ import annotations

import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

REFERRAL_CODE_MAX_LEN = 20
_NON_CODE_CHARS = re.compile(r"[^A-Z0-9]")
_CENT = Decimal("0.01")


def sanitize_text(value: str | None, max_len: int = 20000) -> str:
    """Sanitize free-form content before persistence/display."""
    if value is None:
        return ""
    cleaned = str(value).replace("\x00", "").strip()
    cleaned = cleaned[:max_len]
    return cleaned


def optional_text(value: str | None, max_len: int = 20000) -> str | None:
    cleaned = sanitize_text(value, max_len=max_len)
    return cleaned or None


def enum_token(value: Any) -> str:
    """Upper-cased token for enum lookups; enum members contribute their value."""
    return str(getattr(value, "value", value) or "").strip().upper()


def normalize_referral_code(value: Any) -> str:
    """Upper-case, strip everything outside A-Z/0-9 and cap the length."""
    raw = sanitize_text(str(value) if value is not None else None).upper()
    return _NON_CODE_CHARS.sub("", raw)[:REFERRAL_CODE_MAX_LEN]


def to_amount(value: Any, default: Decimal | None = None) -> Decimal | None:
    """Parse a money amount to a 2dp Decimal; returns `default` when unparseable."""
    if value is None or value == "":
        return default
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return default
    if not amount.is_finite():
        return default
    return amount.quantize(_CENT, rounding=ROUND_HALF_UP)


def as_float(value: Decimal | None) -> float:
    return float(value) if value is not None else 0.0


def mask_account_number(value: str | None) -> str:
    digits = sanitize_text(value)
    if len(digits) <= 4:
        return digits
    return f"{'X' * (len(digits) - 4)}{digits[-4:]}"


def clamp_page(page: int | None, limit: int | None, default_limit: int, max_limit: int) -> tuple[int, int]:
    """Normalize 1-based page and page size."""
    safe_page = page if page and page > 0 else 1
    safe_limit = limit if limit and limit > 0 else default_limit
    return safe_page, min(safe_limit, max_limit)
