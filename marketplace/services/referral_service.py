"""Referral program: codes, links, rewards, wallet and cashouts.

Wallet balances only move through conditional SQL updates paired with an
append-only ledger row, keeping
available + pending + reserved + lifetime_paid_out == lifetime_earned.
"""

from __future__ import annotations

import logging
import random
from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from marketplace.core.exceptions import (
    ConflictError,
    InsufficientBalanceError,
    InvalidReferralError,
    NotFoundError,
    ReferralError,
    ValidationError,
)
from marketplace.models.base import as_utc, utcnow
from marketplace.models.enums import (
    CashoutStatus,
    DiscountType,
    LedgerEntryStatus,
    LedgerEntryType,
    PaymentStatus,
    ReferralStatus,
)
from marketplace.models.payment import VendorPayment
from marketplace.models.referral import (
    GLOBAL_SETTINGS_KEY,
    ReferralPlanRule,
    ReferralProgramSettings,
    VendorReferral,
    VendorReferralProfile,
)
from marketplace.models.subscription import VendorPlan
from marketplace.models.vendor import Vendor
from marketplace.models.wallet import CashoutRequest, VendorBankDetail, VendorReferralWallet, WalletLedgerEntry
from marketplace.services.base_service import BaseService
from marketplace.utils.validators import (
    as_float,
    enum_token,
    mask_account_number,
    normalize_referral_code,
    optional_text,
    to_amount,
)

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
CODE_ATTEMPTS = 25
GENERATED_CODE_MAX_LEN = 16
RECENT_REFERRALS_LIMIT = 25
RECENT_LEDGER_LIMIT = 50
CASHOUT_LIST_LIMIT = 100


def calculate_offer_amount(base_amount: Any, offer_type: Any, value: Any, cap: Any = None) -> Decimal:
    """PERCENT or FLAT offer on `base_amount`, capped, never above the base."""
    base = to_amount(base_amount, default=ZERO)
    offer_value = to_amount(value, default=ZERO)
    if base <= ZERO or offer_value <= ZERO:
        return ZERO
    if enum_token(offer_type) == DiscountType.PERCENT.value:
        amount = base * offer_value / Decimal("100")
    else:
        amount = offer_value
    cap_value = to_amount(cap)
    if cap_value is not None and cap_value > ZERO:
        amount = min(amount, cap_value)
    amount = max(ZERO, min(amount, base))
    return amount.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def _iso(value: datetime | None) -> str | None:
    value = as_utc(value)
    return value.isoformat() if value else None


def wallet_to_dict(wallet: VendorReferralWallet | None) -> dict[str, Any]:
    if wallet is None:
        return {
            "available_balance": 0.0,
            "pending_balance": 0.0,
            "reserved_balance": 0.0,
            "lifetime_earned": 0.0,
            "lifetime_paid_out": 0.0,
        }
    return {
        "vendor_id": wallet.vendor_id,
        "available_balance": as_float(wallet.available_balance),
        "pending_balance": as_float(wallet.pending_balance),
        "reserved_balance": as_float(wallet.reserved_balance),
        "lifetime_earned": as_float(wallet.lifetime_earned),
        "lifetime_paid_out": as_float(wallet.lifetime_paid_out),
    }


def ledger_entry_to_dict(entry: WalletLedgerEntry) -> dict[str, Any]:
    return {
        "id": entry.id,
        "entry_type": entry.entry_type.value,
        "amount": as_float(entry.amount),
        "status": entry.status.value,
        "referral_id": entry.referral_id,
        "payment_id": entry.payment_id,
        "cashout_request_id": entry.cashout_request_id,
        "hold_until": _iso(entry.hold_until),
        "reference_key": entry.reference_key,
        "created_at": _iso(entry.created_at),
    }


def referral_to_dict(referral: VendorReferral) -> dict[str, Any]:
    return {
        "id": referral.id,
        "referrer_vendor_id": referral.referrer_vendor_id,
        "referred_vendor_id": referral.referred_vendor_id,
        "referral_code": referral.referral_code,
        "status": referral.status.value,
        "qualified_at": _iso(referral.qualified_at),
        "rewarded_at": _iso(referral.rewarded_at),
        "rejection_reason": referral.rejection_reason,
        "created_at": _iso(referral.created_at),
    }


def cashout_to_dict(request: CashoutRequest) -> dict[str, Any]:
    return {
        "id": request.id,
        "vendor_id": request.vendor_id,
        "requested_amount": as_float(request.requested_amount),
        "bank_detail_id": request.bank_detail_id,
        "bank_snapshot": dict(request.bank_snapshot or {}),
        "notes": request.notes,
        "status": request.status.value,
        "rejection_reason": request.rejection_reason,
        "utr_number": request.utr_number,
        "paid_at": _iso(request.paid_at),
        "created_at": _iso(request.created_at),
    }


class ReferralService(BaseService):
    # Settings and rules

    def get_settings(self) -> ReferralProgramSettings:
        """GLOBAL settings row, or an unsaved row carrying the defaults."""
        settings = (
            self.db.query(ReferralProgramSettings)
            .filter(ReferralProgramSettings.settings_key == GLOBAL_SETTINGS_KEY)
            .first()
        )
        if settings is not None:
            return settings
        return ReferralProgramSettings(
            settings_key=GLOBAL_SETTINGS_KEY,
            is_enabled=False,
            first_paid_plan_only=True,
            allow_coupon_stack=False,
            min_plan_amount=ZERO,
            min_cashout_amount=Decimal("500"),
            reward_hold_days=0,
        )

    def get_plan_rule(self, plan_id: int | None, at: datetime | None = None) -> ReferralPlanRule | None:
        if not plan_id:
            return None
        rule = (
            self.db.query(ReferralPlanRule)
            .filter(ReferralPlanRule.plan_id == plan_id, ReferralPlanRule.is_enabled.is_(True))
            .order_by(ReferralPlanRule.updated_at.desc(), ReferralPlanRule.id.desc())
            .first()
        )
        if rule is None:
            return None
        moment = as_utc(at) or utcnow()
        valid_from = as_utc(rule.valid_from)
        valid_to = as_utc(rule.valid_to)
        if valid_from is not None and valid_from > moment:
            return None
        if valid_to is not None and valid_to < moment:
            return None
        return rule

    # Profiles and links

    def get_profile(self, vendor_id: int) -> VendorReferralProfile | None:
        return self.db.query(VendorReferralProfile).filter(VendorReferralProfile.vendor_id == vendor_id).first()

    def ensure_referral_profile(self, vendor: Vendor) -> VendorReferralProfile:
        """Return the vendor's referral profile, generating a unique code on first use."""
        existing = self.get_profile(vendor.id)
        if existing is not None:
            return existing

        fallback_seed = f"V{vendor.id:08d}"
        seeds = [
            normalize_referral_code(vendor.vendor_code),
            normalize_referral_code(vendor.company_name)[:8],
            normalize_referral_code(vendor.owner_name)[:8],
            fallback_seed,
        ]
        base_seed = next((seed for seed in seeds if seed), fallback_seed)

        for attempt in range(CODE_ATTEMPTS):
            suffix = "" if attempt == 0 else str(random.randint(1000, 9999))
            code = normalize_referral_code(f"{base_seed[: GENERATED_CODE_MAX_LEN - len(suffix)]}{suffix}")
            if not code:
                continue
            taken = self.db.query(VendorReferralProfile).filter(VendorReferralProfile.referral_code == code).first()
            if taken is not None:
                continue
            profile = VendorReferralProfile(vendor_id=vendor.id, referral_code=code, is_active=True)
            self.db.add(profile)
            try:
                self.db.commit()
            except IntegrityError:
                self.db.rollback()
                existing = self.get_profile(vendor.id)
                if existing is not None:
                    return existing
                continue
            self.db.refresh(profile)
            return profile

        raise ReferralError("Unable to generate unique referral code", kind="CODE_GENERATION_FAILED")

    def get_linked_referral(self, vendor_id: int) -> VendorReferral | None:
        return self.db.query(VendorReferral).filter(VendorReferral.referred_vendor_id == vendor_id).first()

    def link_referral_for_vendor(self, referred_vendor: Vendor, referral_code: Any) -> VendorReferral:
        """Attach `referred_vendor` to the owner of `referral_code`.

        Relinking to the same referrer returns the existing edge. Every client
        mistake raises InvalidReferralError with an explicit kind.
        """
        code = normalize_referral_code(referral_code)
        if not code:
            raise InvalidReferralError("Invalid referral code", kind=ReferralError.INVALID_CODE)

        profile = (
            self.db.query(VendorReferralProfile)
            .filter(VendorReferralProfile.referral_code == code, VendorReferralProfile.is_active.is_(True))
            .first()
        )
        if profile is None:
            raise InvalidReferralError("Invalid referral code", kind=ReferralError.INVALID_CODE)
        if profile.vendor_id == referred_vendor.id:
            raise InvalidReferralError("Self referral is not allowed", kind=ReferralError.SELF_REFERRAL)

        existing = self.get_linked_referral(referred_vendor.id)
        if existing is not None:
            return self._same_referrer_or_raise(existing, profile.vendor_id)

        referral = VendorReferral(
            referrer_vendor_id=profile.vendor_id,
            referred_vendor_id=referred_vendor.id,
            referral_code=code,
            status=ReferralStatus.LINKED,
        )
        self.db.add(referral)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            existing = self.get_linked_referral(referred_vendor.id)
            if existing is None:
                raise
            return self._same_referrer_or_raise(existing, profile.vendor_id)

        self.db.refresh(referral)
        logger.info(
            "referral.linked",
            extra={"event": "referral.linked", "vendor_id": referred_vendor.id},
        )
        return referral

    @staticmethod
    def _same_referrer_or_raise(existing: VendorReferral, referrer_vendor_id: int) -> VendorReferral:
        if existing.referrer_vendor_id == referrer_vendor_id:
            return existing
        raise InvalidReferralError(
            "Referral code already linked for this vendor", kind=ReferralError.ALREADY_LINKED
        )

    def _has_prior_completed_payment(self, vendor_id: int, exclude_payment_id: int | None = None) -> bool:
        query = self.db.query(VendorPayment.id).filter(
            VendorPayment.vendor_id == vendor_id,
            VendorPayment.status == PaymentStatus.COMPLETED,
        )
        if exclude_payment_id is not None:
            query = query.filter(VendorPayment.id != exclude_payment_id)
        return query.first() is not None

    def get_referral_offer(self, vendor_id: int, plan_id: int, at: datetime | None = None) -> dict[str, Any] | None:
        """Checkout discount a referred vendor is entitled to on `plan_id`, if any."""
        settings = self.get_settings()
        if not settings.is_enabled:
            return None
        plan = self.db.query(VendorPlan).filter(VendorPlan.id == plan_id).first()
        if plan is None:
            return None
        if settings.first_paid_plan_only and self._has_prior_completed_payment(vendor_id):
            return None

        referral = self.get_linked_referral(vendor_id)
        if referral is None or referral.status not in (ReferralStatus.LINKED, ReferralStatus.QUALIFIED):
            return None
        rule = self.get_plan_rule(plan.id, at)
        if rule is None:
            return None

        base_amount = to_amount(plan.price, default=ZERO)
        if base_amount <= ZERO or base_amount < (settings.min_plan_amount or ZERO):
            return None
        discount = calculate_offer_amount(base_amount, rule.discount_type, rule.discount_value, rule.discount_cap)
        if discount <= ZERO:
            return None
        return {
            "offer_type": "REFERRAL",
            "offer_code": referral.referral_code,
            "referral_id": referral.id,
            "discount_amount": as_float(discount),
            "allow_coupon_stack": bool(settings.allow_coupon_stack),
        }

    # Wallet

    def get_wallet(self, vendor_id: int) -> VendorReferralWallet | None:
        return (
            self.db.query(VendorReferralWallet)
            .filter(VendorReferralWallet.vendor_id == vendor_id)
            .populate_existing()
            .first()
        )

    def ensure_wallet(self, vendor_id: int) -> VendorReferralWallet:
        """Get or create the wallet row; commits the creation on its own."""
        wallet = self.get_wallet(vendor_id)
        if wallet is not None:
            return wallet
        wallet = VendorReferralWallet(
            vendor_id=vendor_id,
            available_balance=ZERO,
            pending_balance=ZERO,
            reserved_balance=ZERO,
            lifetime_earned=ZERO,
            lifetime_paid_out=ZERO,
        )
        self.db.add(wallet)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            return self.get_wallet(vendor_id)
        self.db.refresh(wallet)
        return wallet

    def _shift_balance(self, vendor_id: int, source: str | None, target: str | None, amount: Decimal) -> bool:
        """Move `amount` between wallet columns; the source must cover it."""
        stmt = update(VendorReferralWallet).where(VendorReferralWallet.vendor_id == vendor_id)
        values: dict[str, Any] = {"updated_at": utcnow()}
        if source is not None:
            column = getattr(VendorReferralWallet, source)
            stmt = stmt.where(column >= amount)
            values[source] = column - amount
        if target is not None:
            values[target] = getattr(VendorReferralWallet, target) + amount
        result = self.db.execute(stmt.values(**values).execution_options(synchronize_session=False))
        return result.rowcount == 1

    # Rewards

    def apply_reward_after_payment(
        self,
        referred_vendor_id: int,
        payment_id: int,
        now: datetime | None = None,
    ) -> dict[str, Any]:
        """Credit the referrer once for the referred vendor's qualifying payment.

        Redelivery of the same payment is a no-op thanks to the unique
        ledger reference key.
        """
        current = as_utc(now) or utcnow()
        payment = (
            self.db.query(VendorPayment)
            .filter(VendorPayment.id == payment_id, VendorPayment.vendor_id == referred_vendor_id)
            .first()
        )
        if payment is None or payment.plan_id is None:
            return {"applied": False, "reason": "missing_context"}

        reference_key = f"ref_reward:{payment.id}"
        if self.db.query(WalletLedgerEntry.id).filter(WalletLedgerEntry.reference_key == reference_key).first():
            return {"applied": False, "reason": "already_rewarded"}

        settings = self.get_settings()
        if not settings.is_enabled:
            return {"applied": False, "reason": "program_disabled"}

        eligible = (ReferralStatus.LINKED,)
        if not settings.first_paid_plan_only:
            eligible = (ReferralStatus.LINKED, ReferralStatus.QUALIFIED)
        referral = self.get_linked_referral(referred_vendor_id)
        if referral is None or referral.status not in eligible:
            return {"applied": False, "reason": "no_eligible_referral"}

        if settings.first_paid_plan_only and self._has_prior_completed_payment(referred_vendor_id, payment.id):
            self._reject(referral, "NOT_FIRST_PAID_PLAN")
            return {"applied": False, "reason": "not_first_paid_plan"}

        base_amount = to_amount(payment.net_amount) or to_amount(payment.amount, default=ZERO)
        if base_amount <= ZERO:
            return {"applied": False, "reason": "invalid_amount"}
        if base_amount < (settings.min_plan_amount or ZERO):
            return {"applied": False, "reason": "below_min_plan_amount"}

        rule = self.get_plan_rule(payment.plan_id, payment.payment_date or current)
        if rule is None:
            return {"applied": False, "reason": "rule_missing_or_disabled"}

        reward = calculate_offer_amount(base_amount, rule.reward_type, rule.reward_value, rule.reward_cap)
        if reward <= ZERO:
            self._reject(referral, "ZERO_REWARD")
            return {"applied": False, "reason": "zero_reward"}

        referrer_id = referral.referrer_vendor_id
        self.ensure_wallet(referrer_id)

        hold_days = settings.reward_hold_days or 0
        try:
            referral.status = ReferralStatus.QUALIFIED
            referral.qualified_payment_id = payment.id
            referral.qualified_at = current

            entry = WalletLedgerEntry(
                vendor_id=referrer_id,
                entry_type=LedgerEntryType.REFERRAL_REWARD_CREDIT,
                amount=reward,
                status=LedgerEntryStatus.PENDING,
                referral_id=referral.id,
                payment_id=payment.id,
                hold_until=current + timedelta(days=hold_days),
                reference_key=reference_key,
                meta={"referred_vendor_id": referred_vendor_id, "plan_id": payment.plan_id},
            )
            self.db.add(entry)
            self.db.flush()
            self._shift_balance(referrer_id, None, "pending_balance", reward)
            self._shift_balance(referrer_id, None, "lifetime_earned", reward)

            referral.status = ReferralStatus.REWARDED
            referral.rewarded_at = current
            payment.referral_id = referral.id
            if hold_days <= 0:
                self._release_entry(entry)
            self.commit()
        except IntegrityError:
            self.db.rollback()
            return {"applied": False, "reason": "already_rewarded"}

        logger.info(
            "referral.rewarded",
            extra={"event": "referral.rewarded", "vendor_id": referrer_id, "payment_id": payment.id},
        )
        return {
            "applied": True,
            "reward_amount": as_float(reward),
            "referral_id": referral.id,
            "referrer_vendor_id": referrer_id,
            "released": hold_days <= 0,
        }

    def _reject(self, referral: VendorReferral, reason: str) -> None:
        referral.status = ReferralStatus.REJECTED
        referral.rejection_reason = reason
        self.commit()
        logger.info(
            "referral.rejected",
            extra={"event": "referral.rejected", "vendor_id": referral.referred_vendor_id, "reason": reason},
        )

    def _release_entry(self, entry: WalletLedgerEntry) -> bool:
        """Move one matured credit from pending to available; caller commits."""
        claimed = self.db.execute(
            update(WalletLedgerEntry)
            .where(WalletLedgerEntry.id == entry.id, WalletLedgerEntry.status == LedgerEntryStatus.PENDING)
            .values(status=LedgerEntryStatus.COMPLETED, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        if claimed.rowcount != 1:
            return False
        if not self._shift_balance(entry.vendor_id, "pending_balance", "available_balance", entry.amount):
            raise ConflictError("Pending balance does not cover the reward release", code="LEDGER_MISMATCH")
        self.db.add(
            WalletLedgerEntry(
                vendor_id=entry.vendor_id,
                entry_type=LedgerEntryType.REFERRAL_REWARD_RELEASE,
                amount=entry.amount,
                status=LedgerEntryStatus.COMPLETED,
                referral_id=entry.referral_id,
                payment_id=entry.payment_id,
                reference_key=f"ref_release:{entry.id}",
                meta={"credit_entry_id": entry.id},
            )
        )
        self.db.flush()
        self.db.expire(entry)
        return True

    def release_matured_rewards(self, now: datetime | None = None) -> int:
        """Release every pending credit whose hold has elapsed."""
        current = as_utc(now) or utcnow()
        matured = (
            self.db.query(WalletLedgerEntry)
            .filter(
                WalletLedgerEntry.entry_type == LedgerEntryType.REFERRAL_REWARD_CREDIT,
                WalletLedgerEntry.status == LedgerEntryStatus.PENDING,
                WalletLedgerEntry.hold_until <= current,
            )
            .order_by(WalletLedgerEntry.id)
            .all()
        )
        released = 0
        for entry in matured:
            try:
                if self._release_entry(entry):
                    self.commit()
                    released += 1
            except (ConflictError, IntegrityError):
                self.db.rollback()
                logger.exception(
                    "referral.release_failed",
                    extra={"event": "referral.release_failed", "vendor_id": entry.vendor_id},
                )
        if released:
            logger.info("referral.rewards_released", extra={"event": "referral.rewards_released", "count": released})
        return released

    # Cashouts

    def _resolve_bank_detail(self, vendor_id: int, bank_detail_id: int | None) -> VendorBankDetail | None:
        query = self.db.query(VendorBankDetail).filter(VendorBankDetail.vendor_id == vendor_id)
        if bank_detail_id:
            return query.filter(VendorBankDetail.id == bank_detail_id).first()
        return query.filter(VendorBankDetail.is_primary.is_(True)).first()

    def create_cashout_request(
        self,
        vendor_id: int,
        amount: Any,
        bank_detail_id: int | None = None,
        note: str | None = None,
    ) -> CashoutRequest:
        """Reserve `amount` out of the available balance and open a cashout request.

        The balance check and the reservation are one conditional UPDATE in the
        same transaction as the request insert; concurrent requests that
        jointly exceed the balance cannot both succeed.
        """
        requested = to_amount(amount)
        if requested is None or requested <= ZERO:
            raise ValidationError("Invalid cashout amount")
        settings = self.get_settings()
        minimum = settings.min_cashout_amount or ZERO
        if requested < minimum:
            raise ValidationError(f"Minimum cashout amount is {minimum}")

        wallet = self.ensure_wallet(vendor_id)
        if requested > (wallet.available_balance or ZERO):
            raise InsufficientBalanceError("Insufficient available balance")

        bank = self._resolve_bank_detail(vendor_id, bank_detail_id)
        if bank is None:
            raise ValidationError("Primary bank account is required before cashout")

        try:
            if not self._shift_balance(vendor_id, "available_balance", "reserved_balance", requested):
                raise InsufficientBalanceError("Insufficient available balance")
            request = CashoutRequest(
                vendor_id=vendor_id,
                requested_amount=requested,
                bank_detail_id=bank.id,
                bank_snapshot={
                    "account_holder": bank.account_holder,
                    "account_number": mask_account_number(bank.account_number),
                    "ifsc_code": bank.ifsc_code,
                    "bank_name": bank.bank_name,
                },
                notes=optional_text(note, max_len=2000),
                status=CashoutStatus.REQUESTED,
            )
            self.db.add(request)
            self.db.flush()
            self.db.add(
                WalletLedgerEntry(
                    vendor_id=vendor_id,
                    entry_type=LedgerEntryType.CASHOUT_DEBIT,
                    amount=requested,
                    status=LedgerEntryStatus.PENDING,
                    cashout_request_id=request.id,
                    reference_key=f"cashout_debit:{request.id}",
                    meta={"bank_detail_id": bank.id},
                )
            )
            self.commit()
        except Exception:
            self.rollback()
            raise

        self.db.refresh(request)
        logger.info(
            "referral.cashout_requested",
            extra={"event": "referral.cashout_requested", "vendor_id": vendor_id, "cashout_request_id": request.id},
        )
        return request

    def _close_request(self, request_id: int, status: CashoutStatus, **values: Any) -> CashoutRequest:
        request = self.db.query(CashoutRequest).filter(CashoutRequest.id == request_id).first()
        if request is None:
            raise NotFoundError("Cashout request not found")
        claimed = self.db.execute(
            update(CashoutRequest)
            .where(
                CashoutRequest.id == request_id,
                CashoutRequest.status.in_([CashoutStatus.REQUESTED, CashoutStatus.APPROVED]),
            )
            .values(status=status, updated_at=utcnow(), **values)
            .execution_options(synchronize_session=False)
        )
        if claimed.rowcount != 1:
            raise ConflictError("Cashout request is already closed", code="CASHOUT_CLOSED")
        return request

    def _mark_debit(self, request_id: int, status: LedgerEntryStatus) -> None:
        self.db.execute(
            update(WalletLedgerEntry)
            .where(WalletLedgerEntry.reference_key == f"cashout_debit:{request_id}")
            .values(status=status, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )

    def settle_cashout(self, request_id: int, utr_number: str | None = None, now: datetime | None = None) -> CashoutRequest:
        """Finance has paid the request out; the reservation becomes lifetime_paid_out."""
        current = as_utc(now) or utcnow()
        try:
            request = self._close_request(
                request_id, CashoutStatus.PAID, paid_at=current, utr_number=optional_text(utr_number, max_len=64)
            )
            amount = request.requested_amount
            if not self._shift_balance(request.vendor_id, "reserved_balance", "lifetime_paid_out", amount):
                raise ConflictError("Reserved balance does not cover the cashout", code="LEDGER_MISMATCH")
            self._mark_debit(request_id, LedgerEntryStatus.COMPLETED)
            self.db.add(
                WalletLedgerEntry(
                    vendor_id=request.vendor_id,
                    entry_type=LedgerEntryType.CASHOUT_PAID,
                    amount=amount,
                    status=LedgerEntryStatus.COMPLETED,
                    cashout_request_id=request_id,
                    reference_key=f"cashout_paid:{request_id}",
                    meta={"utr_number": utr_number},
                )
            )
            self.commit()
        except Exception:
            self.rollback()
            raise
        self.db.refresh(request)
        return request

    def reject_cashout(
        self,
        request_id: int,
        reason: str | None = None,
        status: CashoutStatus = CashoutStatus.REJECTED,
    ) -> CashoutRequest:
        """Close a request without paying it; the reservation returns to available."""
        if status not in (CashoutStatus.REJECTED, CashoutStatus.CANCELLED):
            raise ValidationError("Cashout can only be rejected or cancelled")
        try:
            request = self._close_request(request_id, status, rejection_reason=optional_text(reason, max_len=2000))
            amount = request.requested_amount
            if not self._shift_balance(request.vendor_id, "reserved_balance", "available_balance", amount):
                raise ConflictError("Reserved balance does not cover the cashout", code="LEDGER_MISMATCH")
            self._mark_debit(request_id, LedgerEntryStatus.REVERSED)
            self.db.add(
                WalletLedgerEntry(
                    vendor_id=request.vendor_id,
                    entry_type=LedgerEntryType.CASHOUT_REVERT,
                    amount=amount,
                    status=LedgerEntryStatus.COMPLETED,
                    cashout_request_id=request_id,
                    reference_key=f"cashout_revert:{request_id}",
                    meta={"reason": reason},
                )
            )
            self.commit()
        except Exception:
            self.rollback()
            raise
        self.db.refresh(request)
        return request

    def list_cashouts(self, vendor_id: int, limit: int = CASHOUT_LIST_LIMIT) -> list[CashoutRequest]:
        return (
            self.db.query(CashoutRequest)
            .filter(CashoutRequest.vendor_id == vendor_id)
            .order_by(CashoutRequest.created_at.desc(), CashoutRequest.id.desc())
            .limit(limit)
            .all()
        )

    # Read side

    def get_overview(self, vendor: Vendor) -> dict[str, Any]:
        profile = self.ensure_referral_profile(vendor)
        wallet = self.ensure_wallet(vendor.id)
        settings = self.get_settings()
        linked = self.get_linked_referral(vendor.id)

        referrals = (
            self.db.query(VendorReferral, Vendor)
            .join(Vendor, Vendor.id == VendorReferral.referred_vendor_id)
            .filter(VendorReferral.referrer_vendor_id == vendor.id)
            .order_by(VendorReferral.created_at.desc(), VendorReferral.id.desc())
            .limit(RECENT_REFERRALS_LIMIT)
            .all()
        )
        ledger = (
            self.db.query(WalletLedgerEntry)
            .filter(WalletLedgerEntry.vendor_id == vendor.id)
            .order_by(WalletLedgerEntry.created_at.desc(), WalletLedgerEntry.id.desc())
            .limit(RECENT_LEDGER_LIMIT)
            .all()
        )

        referral_rows = []
        for referral, referred in referrals:
            item = referral_to_dict(referral)
            item["referred_vendor"] = {
                "id": referred.id,
                "company_name": referred.company_name,
                "owner_name": referred.owner_name,
            }
            referral_rows.append(item)

        return {
            "profile": {"referral_code": profile.referral_code, "is_active": profile.is_active},
            "wallet": wallet_to_dict(wallet),
            "settings": {
                "is_enabled": bool(settings.is_enabled),
                "min_cashout_amount": as_float(settings.min_cashout_amount),
            },
            "linked_referral": referral_to_dict(linked) if linked else None,
            "referrals": referral_rows,
            "ledger": [ledger_entry_to_dict(entry) for entry in ledger],
        }
