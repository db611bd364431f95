from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from django.utils import timezone

from core.exceptions import NotFoundError, ValidationError

from . import ledger
from .config import get_gateway_settings
from .gateways import GATEWAYS, CallbackOutcome, PayerDetails, PaymentInitiation, get_gateway
from .models import PaymentRecord

logger = logging.getLogger(__name__)

# Referral discounts can bring a plan down to zero; anything above a cent is paid.
FREE_PLAN_MAX_AMOUNT = Decimal("0.01")
FREE_PLAN_ORDER_PREFIX = "FGC-FREE"


@dataclass(frozen=True)
class VerificationResult:
    payment: PaymentRecord
    details: dict[str, Any] = field(default_factory=dict)
    abandoned_now: bool = False

    @property
    def status(self) -> str:
        return self.payment.status

    def to_dict(self) -> dict[str, Any]:
        payment = self.payment
        return {
            "success": payment.status == PaymentRecord.STATUS_COMPLETED,
            "status": payment.status,
            "paymentId": str(payment.id),
            "provider": payment.provider,
            "amount": float(payment.amount),
            "currency": payment.currency,
            "plan": payment.plan,
            "orderNumber": payment.order_number,
            "transactionId": payment.transaction_id,
            **self.details,
            "createdAt": payment.created_at.isoformat() if payment.created_at else None,
            "updatedAt": payment.updated_at.isoformat() if payment.updated_at else None,
            "paidAt": payment.paid_at.isoformat() if payment.paid_at else None,
        }


def normalize_plan(plan: Any) -> str:
    name = str(plan or "").strip().lower()
    if not name:
        raise ValidationError("Missing required fields: planName")
    return name


def initiate_payment(
    provider: str,
    user,
    amount: Any,
    plan: str,
    payer: PayerDetails,
    currency: str = "USD",
) -> PaymentInitiation:
    try:
        value = Decimal(str(amount))
    except (InvalidOperation, TypeError) as exc:
        raise ValidationError("Invalid amount") from exc
    if not value.is_finite() or value <= 0:
        raise ValidationError("Amount must be greater than zero")
    plan = normalize_plan(plan)

    gateway = get_gateway(provider)
    return gateway.initiate(user, amount=value, plan=plan, payer=payer, currency=currency or "USD")


def activate_free_plan(
    user,
    plan: str,
    *,
    final_amount: Any = 0,
    original_amount: Any = None,
    referral_code: str | None = None,
    discount_percentage: Any = None,
    email: str | None = None,
) -> PaymentRecord:
    """
    Record a plan whose price was discounted to zero as a completed payment
    and unlock onboarding, the same way a captured payment does.
    """
    try:
        final = Decimal(str(final_amount if final_amount is not None else 0))
    except (InvalidOperation, TypeError) as exc:
        raise ValidationError("Invalid finalAmount") from exc
    if not final.is_finite() or final < 0:
        raise ValidationError("Invalid finalAmount")
    if final > FREE_PLAN_MAX_AMOUNT:
        raise ValidationError("Free plan activation only allowed for $0 or near-zero amounts")
    plan = normalize_plan(plan)

    free_details = {
        "originalAmount": float(original_amount or 0),
        "referralCode": referral_code or None,
        "discountPercentage": discount_percentage,
        "isFree": True,
    }
    with transaction.atomic():
        payment = ledger.create_pending_payment(
            user=user,
            provider=PaymentRecord.PROVIDER_FREE,
            plan=plan,
            amount=Decimal("0"),
            currency="USD",
            order_prefix=FREE_PLAN_ORDER_PREFIX,
            metadata={"paymentType": "FREE_PLAN", "email": email or user.email, **free_details},
        )
        payment, _ = ledger.complete_payment(
            payment.pk,
            onboarding_details={"paymentMethod": "FREE_PLAN", "paymentId": str(payment.id), **free_details},
        )

    logger.info("Free %s plan activated for user %s (referral %s)", plan, user.pk, referral_code or "none")
    return payment


def handle_provider_callback(provider: str, data: Mapping[str, Any]) -> CallbackOutcome:
    """
    Resolve a provider callback against the ledger. Replays are harmless:
    transitions only apply to records that are still pending.
    """
    outcome = get_gateway(provider).apply_callback(data)
    if not outcome.changed and outcome.payment.status == PaymentRecord.STATUS_ABANDONED:
        # Abandonment is terminal; a late provider approval is settled by hand.
        logger.warning(
            "Callback for abandoned payment %s needs manual reconciliation",
            outcome.payment.order_number,
        )
    elif not outcome.changed and outcome.payment.is_terminal:
        logger.info(
            "Callback for %s ignored, payment already %s",
            outcome.payment.order_number,
            outcome.payment.status,
        )
    return outcome


def _lookup(payment_id: Any = None, order_number: str | None = None, user=None) -> PaymentRecord:
    if not payment_id and not order_number:
        raise ValidationError("Missing payment ID or order number")
    queryset = PaymentRecord.objects.all()
    if user is not None:
        queryset = queryset.filter(user=user)
    lookup = {"pk": payment_id} if payment_id else {"order_number": order_number}
    try:
        return queryset.get(**lookup)
    except (PaymentRecord.DoesNotExist, DjangoValidationError, ValueError) as exc:
        raise NotFoundError("Payment not found") from exc


def verify_payment(
    *,
    payment_id: Any = None,
    order_number: str | None = None,
    user=None,
    now: datetime | None = None,
) -> VerificationResult:
    """
    Read a payment's current state. A record still pending past the
    abandonment window is demoted to ``abandoned`` first; the demotion is a
    conditional update so a completion that landed in between wins.
    """
    payment = _lookup(payment_id, order_number, user)
    abandoned_now = False
    if payment.status == PaymentRecord.STATUS_PENDING:
        cutoff = (now or timezone.now()) - get_gateway_settings().abandon_after
        abandoned_now = ledger.abandon_if_stale(payment.pk, cutoff)
        if abandoned_now:
            logger.info("Payment %s abandoned after timeout", payment.order_number)
        payment.refresh_from_db()

    details = {}
    if payment.provider in GATEWAYS:
        details = get_gateway(payment.provider).verification_details(payment)
    return VerificationResult(payment=payment, details=details, abandoned_now=abandoned_now)


def sweep_abandoned_payments(now: datetime | None = None) -> int:
    cutoff = (now or timezone.now()) - get_gateway_settings().abandon_after
    count = ledger.abandon_stale(cutoff)
    if count:
        logger.info("Abandoned %s stale pending payments", count)
    return count
