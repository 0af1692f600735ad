"""Seed a demo vendor, plan, subscription and a handful of marketplace leads."""

from datetime import timedelta
from decimal import Decimal

from marketplace.database.db import get_db_session
from marketplace.models import Lead, LeadStatus, ReferralProgramSettings, Vendor, VendorPlan
from marketplace.models.base import utcnow
from marketplace.models.referral import GLOBAL_SETTINGS_KEY
from marketplace.services.subscription_service import SubscriptionService

DEMO_LEADS = [
    ("Stainless steel pipes", Decimal("85000"), "Maharashtra", "Pune", "pipes"),
    ("Industrial safety gloves", Decimal("12000"), "Gujarat", "Surat", "ppe"),
    ("LED panel lights", Decimal("40000"), "Karnataka", "Bengaluru", "lighting"),
    ("Corrugated packaging boxes", Decimal("25000"), "Delhi", "New Delhi", "packaging"),
    ("Solar inverter 5kW", Decimal("150000"), "Tamil Nadu", "Chennai", "solar"),
]


def seed():
    with get_db_session() as db:
        if db.query(Vendor).filter(Vendor.email == "demo@vendor.test").first():
            print("Seed vendor already exists.")
            return

        vendor = Vendor(user_id="demo-user", email="demo@vendor.test", company_name="Demo Traders", owner_name="Demo Owner")
        plan = VendorPlan(name="Growth", price=Decimal("9999"), daily_limit=3, weekly_limit=10, yearly_limit=300)
        db.add_all([vendor, plan])
        if db.query(ReferralProgramSettings).count() == 0:
            db.add(ReferralProgramSettings(settings_key=GLOBAL_SETTINGS_KEY, is_enabled=True))
        now = utcnow()
        for index, (product, budget, state, city, category) in enumerate(DEMO_LEADS):
            db.add(
                Lead(
                    title=f"Requirement for {product}",
                    product_name=product,
                    budget=budget,
                    state=state,
                    city=city,
                    location=f"{city}, {state}",
                    micro_category_id=category,
                    status=LeadStatus.AVAILABLE,
                    buyer_name="Buyer Contact",
                    buyer_email=f"buyer{index}@example.com",
                    buyer_phone=f"+91-90000000{index:02d}",
                    created_at=now - timedelta(days=index),
                )
            )
        db.commit()

        SubscriptionService(db=db).create_subscription(vendor.id, plan.id, start_date=now)
        print(f"Seeded vendor {vendor.company_name} with plan {plan.name} and {len(DEMO_LEADS)} leads.")


if __name__ == "__main__":
    seed()
