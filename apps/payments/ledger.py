"""
Guarded writes against the payments table.

Every status change is a conditional update on ``status = 'pending'`` taken
under a row lock, so a replayed callback or a late abandonment check sees the
current row and leaves terminal records alone.
"""
from __future__ import annotations

import logging
import threading
import time
from datetime import datetime
from decimal import Decimal
from typing import Any

from django.db import IntegrityError, transaction
from django.utils import timezone

from apps.onboarding.services import record_payment_completed

from .models import PaymentRecord

logger = logging.getLogger(__name__)

_clock_lock = threading.Lock()
_last_timestamp_ms = 0


def _next_timestamp_ms() -> int:
    """Millisecond timestamp that strictly increases within this process."""
    global _last_timestamp_ms
    with _clock_lock:
        now_ms = int(time.time() * 1000)
        if now_ms <= _last_timestamp_ms:
            now_ms = _last_timestamp_ms + 1
        _last_timestamp_ms = now_ms
        return now_ms


def generate_order_number(prefix: str, user_id: Any) -> str:
    return f"{prefix}-{_next_timestamp_ms()}-{str(user_id)[:8]}"


def create_pending_payment(
    *,
    user,
    provider: str,
    plan: str,
    amount: Decimal,
    currency: str,
    order_prefix: str,
    metadata: dict[str, Any] | None = None,
) -> PaymentRecord:
    for _ in range(5):
        order_number = generate_order_number(order_prefix, user.id)
        try:
            with transaction.atomic():
                payment = PaymentRecord.objects.create(
                    user=user,
                    provider=provider,
                    plan=plan,
                    amount=amount,
                    currency=currency,
                    status=PaymentRecord.STATUS_PENDING,
                    order_number=order_number,
                    metadata={"initiatedAt": timezone.now().isoformat(), **(metadata or {})},
                )
        except IntegrityError:
            logger.warning("Order number collision on %s, regenerating", order_number)
            continue
        logger.info(
            "Payment %s created: provider=%s plan=%s amount=%s %s",
            payment.order_number,
            provider,
            plan,
            amount,
            currency,
        )
        return payment
    raise RuntimeError("Failed to generate unique order number")


def update_pending(
    payment_id: Any,
    *,
    metadata: dict[str, Any] | None = None,
    **fields: Any,
) -> PaymentRecord:
    """Attach provider data to a payment that is still pending."""
    with transaction.atomic():
        payment = PaymentRecord.objects.select_for_update().get(pk=payment_id)
        if payment.status != PaymentRecord.STATUS_PENDING:
            return payment
        update_fields = ["updated_at"]
        if metadata:
            payment.metadata = {**payment.metadata, **metadata}
            update_fields.append("metadata")
        for name, value in fields.items():
            setattr(payment, name, value)
            update_fields.append(name)
        payment.save(update_fields=update_fields)
        return payment


def complete_payment(
    payment_id: Any,
    *,
    transaction_id: str | None = None,
    provider_reference: str | None = None,
    metadata: dict[str, Any] | None = None,
    onboarding_details: dict[str, Any] | None = None,
) -> tuple[PaymentRecord, bool]:
    """
    Move a pending payment to ``completed`` and unlock onboarding.

    Returns the current record and whether this call changed it.
    """
    with transaction.atomic():
        payment = PaymentRecord.objects.select_for_update().get(pk=payment_id)
        if payment.status != PaymentRecord.STATUS_PENDING:
            logger.info("Payment %s already %s; completion ignored", payment.order_number, payment.status)
            return payment, False

        payment.status = PaymentRecord.STATUS_COMPLETED
        payment.paid_at = timezone.now()
        if transaction_id:
            payment.transaction_id = transaction_id
        if provider_reference:
            payment.provider_reference = provider_reference
        payment.metadata = {**payment.metadata, **(metadata or {}), "completedAt": payment.paid_at.isoformat()}
        payment.save(
            update_fields=["status", "paid_at", "transaction_id", "provider_reference", "metadata", "updated_at"]
        )

        details = {
            "plan": payment.plan,
            "amount": float(payment.amount),
            "currency": payment.currency,
            "transactionId": payment.transaction_id,
            "orderNumber": payment.order_number,
            "paymentMethod": payment.provider,
            **(onboarding_details or {}),
        }
        record_payment_completed(payment.user_id, details)

    logger.info("Payment %s completed (transaction %s)", payment.order_number, payment.transaction_id)
    return payment, True


def fail_payment(
    payment_id: Any,
    *,
    metadata: dict[str, Any] | None = None,
    transaction_id: str | None = None,
    provider_reference: str | None = None,
) -> tuple[PaymentRecord, bool]:
    with transaction.atomic():
        payment = PaymentRecord.objects.select_for_update().get(pk=payment_id)
        if payment.status != PaymentRecord.STATUS_PENDING:
            logger.info("Payment %s already %s; failure ignored", payment.order_number, payment.status)
            return payment, False

        payment.status = PaymentRecord.STATUS_FAILED
        if transaction_id:
            payment.transaction_id = transaction_id
        if provider_reference:
            payment.provider_reference = provider_reference
        payment.metadata = {**payment.metadata, **(metadata or {}), "failedAt": timezone.now().isoformat()}
        payment.save(update_fields=["status", "transaction_id", "provider_reference", "metadata", "updated_at"])

    logger.warning("Payment %s failed: %s", payment.order_number, (metadata or {}).get("failedStep", "provider"))
    return payment, True


def abandon_if_stale(payment_id: Any, cutoff: datetime) -> bool:
    """Demote a payment created before ``cutoff`` that is still pending."""
    updated = PaymentRecord.objects.filter(
        pk=payment_id,
        status=PaymentRecord.STATUS_PENDING,
        created_at__lt=cutoff,
    ).update(status=PaymentRecord.STATUS_ABANDONED, updated_at=timezone.now())
    return updated == 1


def abandon_stale(cutoff: datetime) -> int:
    return PaymentRecord.objects.filter(
        status=PaymentRecord.STATUS_PENDING,
        created_at__lt=cutoff,
    ).update(status=PaymentRecord.STATUS_ABANDONED, updated_at=timezone.now())
