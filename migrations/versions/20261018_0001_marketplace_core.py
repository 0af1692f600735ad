"""marketplace core schema: vendors, plans, quota, leads and referral wallet

Revision ID: 20261018_0001
Revises:
Create Date: 2026-10-18 00:00:01
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261018_0001"
down_revision = None
branch_labels = None
depends_on = None

SUBSCRIPTION_STATUS = sa.Enum("ACTIVE", "EXPIRED", "CANCELLED", name="subscriptionstatus")
LEAD_STATUS = sa.Enum("AVAILABLE", "SOLD", "CLOSED", name="leadstatus")
PAYMENT_STATUS = sa.Enum("PENDING", "COMPLETED", "FAILED", "REFUNDED", name="paymentstatus")
CONSUMPTION_TYPE = sa.Enum("DAILY_INCLUDED", "WEEKLY_INCLUDED", "PAID_EXTRA", name="consumptiontype")
CONTACT_TYPE = sa.Enum("CALL", "WHATSAPP", "EMAIL", name="contacttype")
CONTACT_STATUS = sa.Enum("PENDING", "CONTACTED", "CONVERTED", name="contactstatus")
REFERRAL_STATUS = sa.Enum("LINKED", "QUALIFIED", "REWARDED", "REJECTED", name="referralstatus")
DISCOUNT_TYPE = sa.Enum("PERCENT", "FLAT", name="discounttype")
LEDGER_ENTRY_TYPE = sa.Enum(
    "REFERRAL_REWARD_CREDIT",
    "REFERRAL_REWARD_RELEASE",
    "CASHOUT_DEBIT",
    "CASHOUT_REVERT",
    "CASHOUT_PAID",
    name="ledgerentrytype",
)
LEDGER_ENTRY_STATUS = sa.Enum("PENDING", "COMPLETED", "REVERSED", name="ledgerentrystatus")
CASHOUT_STATUS = sa.Enum("REQUESTED", "APPROVED", "REJECTED", "PAID", "CANCELLED", name="cashoutstatus")


def _audit_columns() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "vendors",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.String(length=64), nullable=True),
        sa.Column("email", sa.String(length=320), nullable=True),
        sa.Column("company_name", sa.String(length=255), nullable=True),
        sa.Column("owner_name", sa.String(length=255), nullable=True),
        sa.Column("vendor_code", sa.String(length=64), nullable=True),
        *_audit_columns(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_vendors_user_id", "vendors", ["user_id"], unique=True)
    op.create_index("ix_vendors_email", "vendors", ["email"])

    op.create_table(
        "vendor_preferences",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("vendor_id", sa.Integer(), nullable=False),
        sa.Column("preferred_micro_categories", sa.JSON(), nullable=False),
        sa.Column("preferred_states", sa.JSON(), nullable=False),
        sa.Column("preferred_cities", sa.JSON(), nullable=False),
        sa.Column("min_budget", sa.Numeric(14, 2), nullable=False),
        sa.Column("max_budget", sa.Numeric(14, 2), nullable=False),
        sa.Column("auto_lead_filter", sa.Boolean(), nullable=False),
        *_audit_columns(),
        sa.ForeignKeyConstraint(["vendor_id"], ["vendors.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("vendor_id"),
    )

    op.create_table(
        "vendor_plans",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("price", sa.Numeric(12, 2), nullable=False),
        sa.Column("daily_limit", sa.Integer(), nullable=False),
        sa.Column("weekly_limit", sa.Integer(), nullable=False),
        sa.Column("yearly_limit", sa.Integer(), nullable=False),
        sa.Column("duration_days", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        *_audit_columns(),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "vendor_plan_subscriptions",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("vendor_id", sa.Integer(), nullable=False),
        sa.Column("plan_id", sa.Integer(), nullable=False),
        sa.Column("status", SUBSCRIPTION_STATUS, nullable=False),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("renewal_notification_sent", sa.Boolean(), nullable=False),
        *_audit_columns(),
        sa.ForeignKeyConstraint(["vendor_id"], ["vendors.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["plan_id"], ["vendor_plans.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_vendor_plan_subscriptions_vendor_id", "vendor_plan_subscriptions", ["vendor_id"])
    op.create_index("idx_vendor_subscriptions_vendor_status", "vendor_plan_subscriptions", ["vendor_id", "status"])
    op.create_index("idx_vendor_subscriptions_status_end", "vendor_plan_subscriptions", ["status", "end_date"])

    op.create_table(
        "vendor_lead_quota",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("vendor_id", sa.Integer(), nullable=False),
        sa.Column("plan_id", sa.Integer(), nullable=True),
        sa.Column("daily_used", sa.Integer(), nullable=False),
        sa.Column("weekly_used", sa.Integer(), nullable=False),
        sa.Column("yearly_used", sa.Integer(), nullable=False),
        sa.Column("daily_limit", sa.Integer(), nullable=False),
        sa.Column("weekly_limit", sa.Integer(), nullable=False),
        sa.Column("yearly_limit", sa.Integer(), nullable=False),
        sa.Column("daily_reset_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("weekly_reset_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("yearly_reset_at", sa.DateTime(timezone=True), nullable=True),
        *_audit_columns(),
        sa.ForeignKeyConstraint(["vendor_id"], ["vendors.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["plan_id"], ["vendor_plans.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("vendor_id"),
    )

    op.create_table(
        "leads",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=True),
        sa.Column("product_name", sa.String(length=255), nullable=False),
        sa.Column("budget", sa.Numeric(14, 2), nullable=True),
        sa.Column("quantity", sa.String(length=120), nullable=True),
        sa.Column("location", sa.String(length=255), nullable=True),
        sa.Column("state", sa.String(length=120), nullable=True),
        sa.Column("city", sa.String(length=120), nullable=True),
        sa.Column("micro_category_id", sa.String(length=64), nullable=True),
        sa.Column("message", sa.Text(), nullable=True),
        sa.Column("status", LEAD_STATUS, nullable=False),
        sa.Column("buyer_name", sa.String(length=255), nullable=True),
        sa.Column("buyer_email", sa.String(length=320), nullable=True),
        sa.Column("buyer_phone", sa.String(length=40), nullable=True),
        sa.Column("company_name", sa.String(length=255), nullable=True),
        sa.Column("vendor_id", sa.Integer(), nullable=True),
        *_audit_columns(),
        sa.ForeignKeyConstraint(["vendor_id"], ["vendors.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_leads_status_created", "leads", ["status", "created_at"])
    op.create_index("idx_leads_vendor", "leads", ["vendor_id"])
    op.create_index("ix_leads_micro_category_id", "leads", ["micro_category_id"])

    op.create_table(
        "lead_purchases",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("vendor_id", sa.Integer(), nullable=False),
        sa.Column("lead_id", sa.Integer(), nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("payment_status", PAYMENT_STATUS, nullable=False),
        sa.Column("consumption_type", CONSUMPTION_TYPE, nullable=False),
        sa.Column("purchase_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("subscription_plan_name", sa.String(length=120), nullable=True),
        *_audit_columns(),
        sa.ForeignKeyConstraint(["vendor_id"], ["vendors.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["lead_id"], ["leads.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("vendor_id", "lead_id", name="uq_lead_purchases_vendor_lead"),
    )
    op.create_index("ix_lead_purchases_vendor_id", "lead_purchases", ["vendor_id"])
    op.create_index("idx_lead_purchases_lead", "lead_purchases", ["lead_id"])

    op.create_table(
        "lead_contacts",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("vendor_id", sa.Integer(), nullable=False),
        sa.Column("lead_id", sa.Integer(), nullable=False),
        sa.Column("contact_type", CONTACT_TYPE, nullable=False),
        sa.Column("status", CONTACT_STATUS, nullable=False),
        sa.Column("contact_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        *_audit_columns(),
        sa.ForeignKeyConstraint(["vendor_id"], ["vendors.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["lead_id"], ["leads.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_lead_contacts_vendor_id", "lead_contacts", ["vendor_id"])
    op.create_index("idx_lead_contacts_vendor_lead", "lead_contacts", ["vendor_id", "lead_id"])

    op.create_table(
        "referral_program_settings",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("settings_key", sa.String(length=32), nullable=False),
        sa.Column("is_enabled", sa.Boolean(), nullable=False),
        sa.Column("first_paid_plan_only", sa.Boolean(), nullable=False),
        sa.Column("allow_coupon_stack", sa.Boolean(), nullable=False),
        sa.Column("min_plan_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("min_cashout_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("reward_hold_days", sa.Integer(), nullable=False),
        *_audit_columns(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("settings_key"),
    )

    op.create_table(
        "referral_plan_rules",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("plan_id", sa.Integer(), nullable=True),
        sa.Column("is_enabled", sa.Boolean(), nullable=False),
        sa.Column("discount_type", DISCOUNT_TYPE, nullable=False),
        sa.Column("discount_value", sa.Numeric(12, 2), nullable=False),
        sa.Column("discount_cap", sa.Numeric(12, 2), nullable=True),
        sa.Column("reward_type", DISCOUNT_TYPE, nullable=False),
        sa.Column("reward_value", sa.Numeric(12, 2), nullable=False),
        sa.Column("reward_cap", sa.Numeric(12, 2), nullable=True),
        sa.Column("valid_from", sa.DateTime(timezone=True), nullable=True),
        sa.Column("valid_to", sa.DateTime(timezone=True), nullable=True),
        *_audit_columns(),
        sa.ForeignKeyConstraint(["plan_id"], ["vendor_plans.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_referral_plan_rules_plan_id", "referral_plan_rules", ["plan_id"])

    op.create_table(
        "vendor_referral_profiles",
        sa.Column("vendor_id", sa.Integer(), nullable=False),
        sa.Column("referral_code", sa.String(length=20), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        *_audit_columns(),
        sa.ForeignKeyConstraint(["vendor_id"], ["vendors.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("vendor_id"),
        sa.UniqueConstraint("referral_code"),
    )

    op.create_table(
        "vendor_referrals",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("referrer_vendor_id", sa.Integer(), nullable=False),
        sa.Column("referred_vendor_id", sa.Integer(), nullable=False),
        sa.Column("referral_code", sa.String(length=20), nullable=False),
        sa.Column("status", REFERRAL_STATUS, nullable=False),
        sa.Column("qualified_payment_id", sa.Integer(), nullable=True),
        sa.Column("qualified_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rewarded_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        *_audit_columns(),
        sa.ForeignKeyConstraint(["referrer_vendor_id"], ["vendors.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["referred_vendor_id"], ["vendors.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("referred_vendor_id"),
    )
    op.create_index("idx_vendor_referrals_referrer", "vendor_referrals", ["referrer_vendor_id", "created_at"])

    op.create_table(
        "vendor_payments",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("vendor_id", sa.Integer(), nullable=False),
        sa.Column("plan_id", sa.Integer(), nullable=True),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("net_amount", sa.Numeric(12, 2), nullable=True),
        sa.Column("status", PAYMENT_STATUS, nullable=False),
        sa.Column("payment_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("referral_id", sa.Integer(), nullable=True),
        *_audit_columns(),
        sa.ForeignKeyConstraint(["vendor_id"], ["vendors.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["plan_id"], ["vendor_plans.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["referral_id"], ["vendor_referrals.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_vendor_payments_vendor_id", "vendor_payments", ["vendor_id"])

    op.create_table(
        "vendor_referral_wallets",
        sa.Column("vendor_id", sa.Integer(), nullable=False),
        sa.Column("available_balance", sa.Numeric(12, 2), nullable=False),
        sa.Column("pending_balance", sa.Numeric(12, 2), nullable=False),
        sa.Column("reserved_balance", sa.Numeric(12, 2), nullable=False),
        sa.Column("lifetime_earned", sa.Numeric(12, 2), nullable=False),
        sa.Column("lifetime_paid_out", sa.Numeric(12, 2), nullable=False),
        *_audit_columns(),
        sa.ForeignKeyConstraint(["vendor_id"], ["vendors.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("vendor_id"),
        sa.CheckConstraint("available_balance >= 0", name="ck_wallet_available_non_negative"),
        sa.CheckConstraint("reserved_balance >= 0", name="ck_wallet_reserved_non_negative"),
    )

    op.create_table(
        "wallet_ledger_entries",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("vendor_id", sa.Integer(), nullable=False),
        sa.Column("entry_type", LEDGER_ENTRY_TYPE, nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("status", LEDGER_ENTRY_STATUS, nullable=False),
        sa.Column("referral_id", sa.Integer(), nullable=True),
        sa.Column("payment_id", sa.Integer(), nullable=True),
        sa.Column("cashout_request_id", sa.Integer(), nullable=True),
        sa.Column("hold_until", sa.DateTime(timezone=True), nullable=True),
        sa.Column("reference_key", sa.String(length=120), nullable=False),
        sa.Column("meta", sa.JSON(), nullable=False),
        *_audit_columns(),
        sa.ForeignKeyConstraint(["vendor_id"], ["vendors.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["referral_id"], ["vendor_referrals.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("reference_key"),
    )
    op.create_index("ix_wallet_ledger_entries_vendor_id", "wallet_ledger_entries", ["vendor_id"])
    op.create_index("ix_wallet_ledger_entries_hold_until", "wallet_ledger_entries", ["hold_until"])
    op.create_index("idx_wallet_ledger_vendor_created", "wallet_ledger_entries", ["vendor_id", "created_at"])

    op.create_table(
        "vendor_bank_details",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("vendor_id", sa.Integer(), nullable=False),
        sa.Column("account_holder", sa.String(length=255), nullable=False),
        sa.Column("account_number", sa.String(length=40), nullable=False),
        sa.Column("ifsc_code", sa.String(length=20), nullable=True),
        sa.Column("bank_name", sa.String(length=255), nullable=True),
        sa.Column("is_primary", sa.Boolean(), nullable=False),
        *_audit_columns(),
        sa.ForeignKeyConstraint(["vendor_id"], ["vendors.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_vendor_bank_details_vendor_id", "vendor_bank_details", ["vendor_id"])

    op.create_table(
        "cashout_requests",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("vendor_id", sa.Integer(), nullable=False),
        sa.Column("requested_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("bank_detail_id", sa.Integer(), nullable=True),
        sa.Column("bank_snapshot", sa.JSON(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("status", CASHOUT_STATUS, nullable=False),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        sa.Column("utr_number", sa.String(length=64), nullable=True),
        sa.Column("paid_at", sa.DateTime(timezone=True), nullable=True),
        *_audit_columns(),
        sa.ForeignKeyConstraint(["vendor_id"], ["vendors.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["bank_detail_id"], ["vendor_bank_details.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_cashout_requests_vendor_id", "cashout_requests", ["vendor_id"])


def downgrade() -> None:
    op.drop_table("cashout_requests")
    op.drop_table("vendor_bank_details")
    op.drop_table("wallet_ledger_entries")
    op.drop_table("vendor_referral_wallets")
    op.drop_table("vendor_payments")
    op.drop_table("vendor_referrals")
    op.drop_table("vendor_referral_profiles")
    op.drop_table("referral_plan_rules")
    op.drop_table("referral_program_settings")
    op.drop_table("lead_contacts")
    op.drop_table("lead_purchases")
    op.drop_table("leads")
    op.drop_table("vendor_lead_quota")
    op.drop_table("vendor_plan_subscriptions")
    op.drop_table("vendor_plans")
    op.drop_table("vendor_preferences")
    op.drop_table("vendors")

    bind = op.get_bind()
    for enum_type in (
        CASHOUT_STATUS,
        LEDGER_ENTRY_STATUS,
        LEDGER_ENTRY_TYPE,
        DISCOUNT_TYPE,
        REFERRAL_STATUS,
        CONTACT_STATUS,
        CONTACT_TYPE,
        CONSUMPTION_TYPE,
        PAYMENT_STATUS,
        LEAD_STATUS,
        SUBSCRIPTION_STATUS,
    ):
        enum_type.drop(bind, checkfirst=True)
