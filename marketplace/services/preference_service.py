"""Vendor lead preferences, created lazily on first save."""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from marketplace.core.exceptions import ValidationError
from marketplace.models.vendor import DEFAULT_MAX_BUDGET, DEFAULT_MIN_BUDGET, VendorPreferences
from marketplace.services.base_service import BaseService
from marketplace.utils.validators import as_float, sanitize_text, to_amount


def _clean_list(values: Any) -> list[str]:
    if not values:
        return []
    cleaned = [sanitize_text(str(value), max_len=120) for value in values]
    return list(dict.fromkeys(value for value in cleaned if value))


def default_preferences(vendor_id: int) -> dict[str, Any]:
    return {
        "vendor_id": vendor_id,
        "preferred_micro_categories": [],
        "preferred_states": [],
        "preferred_cities": [],
        "min_budget": as_float(DEFAULT_MIN_BUDGET),
        "max_budget": as_float(DEFAULT_MAX_BUDGET),
        "auto_lead_filter": True,
    }


def preferences_to_dict(preferences: VendorPreferences) -> dict[str, Any]:
    return {
        "vendor_id": preferences.vendor_id,
        "preferred_micro_categories": list(preferences.preferred_micro_categories or []),
        "preferred_states": list(preferences.preferred_states or []),
        "preferred_cities": list(preferences.preferred_cities or []),
        "min_budget": as_float(preferences.min_budget),
        "max_budget": as_float(preferences.max_budget),
        "auto_lead_filter": bool(preferences.auto_lead_filter),
    }


class PreferenceService(BaseService):
    def get_preferences(self, vendor_id: int) -> VendorPreferences | None:
        return self.db.query(VendorPreferences).filter(VendorPreferences.vendor_id == vendor_id).first()

    def get_preferences_payload(self, vendor_id: int) -> dict[str, Any]:
        preferences = self.get_preferences(vendor_id)
        if preferences is None:
            return default_preferences(vendor_id)
        return preferences_to_dict(preferences)

    def save_preferences(self, vendor_id: int, data: dict[str, Any]) -> VendorPreferences:
        min_budget = to_amount(data.get("min_budget"), default=DEFAULT_MIN_BUDGET)
        max_budget = to_amount(data.get("max_budget"), default=DEFAULT_MAX_BUDGET)
        if min_budget < Decimal("0") or max_budget < Decimal("0"):
            raise ValidationError("Budget values must be non-negative")
        if min_budget > max_budget:
            raise ValidationError("min_budget cannot exceed max_budget")

        preferences = self.get_preferences(vendor_id)
        if preferences is None:
            preferences = VendorPreferences(vendor_id=vendor_id)
            self.db.add(preferences)

        preferences.preferred_micro_categories = _clean_list(data.get("preferred_micro_categories"))
        preferences.preferred_states = _clean_list(data.get("preferred_states"))
        preferences.preferred_cities = _clean_list(data.get("preferred_cities"))
        preferences.min_budget = min_budget
        preferences.max_budget = max_budget
        preferences.auto_lead_filter = data.get("auto_lead_filter") is not False
        self.commit()
        self.db.refresh(preferences)
        return preferences
