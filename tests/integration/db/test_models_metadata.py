from __future__ import annotations

from marketplace.models import Base
import marketplace.models  # noqa: F401


def test_model_metadata_contains_marketplace_tables():
    expected = {
        "vendors",
        "vendor_preferences",
        "vendor_plans",
        "vendor_plan_subscriptions",
        "vendor_lead_quota",
        "leads",
        "lead_purchases",
        "lead_contacts",
        "vendor_payments",
        "referral_program_settings",
        "referral_plan_rules",
        "vendor_referral_profiles",
        "vendor_referrals",
        "vendor_referral_wallets",
        "wallet_ledger_entries",
        "vendor_bank_details",
        "cashout_requests",
    }
    assert expected.issubset(set(Base.metadata.tables.keys()))


def test_purchase_and_ledger_uniqueness_constraints_are_declared():
    purchases = Base.metadata.tables["lead_purchases"]
    unique_sets = {
        tuple(sorted(col.name for col in constraint.columns))
        for constraint in purchases.constraints
        if constraint.__class__.__name__ == "UniqueConstraint"
    }
    assert ("lead_id", "vendor_id") in unique_sets

    ledger = Base.metadata.tables["wallet_ledger_entries"]
    assert ledger.c.reference_key.unique is True
    assert Base.metadata.tables["vendor_referrals"].c.referred_vendor_id.unique is True
