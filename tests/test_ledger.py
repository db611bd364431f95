import re
from datetime import timedelta
from decimal import Decimal
from unittest.mock import patch

import pytest
from django.utils import timezone

from apps.onboarding.models import OnboardingData
from apps.payments import ledger
from apps.payments.models import PaymentRecord

pytestmark = pytest.mark.django_db


def _pending(user, **overrides):
    fields = {
        "user": user,
        "provider": PaymentRecord.PROVIDER_TILOPAY,
        "plan": "gold",
        "amount": Decimal("699.00"),
        "currency": "USD",
        "order_prefix": "FGC",
    }
    fields.update(overrides)
    return ledger.create_pending_payment(**fields)


def test_order_numbers_unique_within_same_millisecond(user):
    with patch("apps.payments.ledger.time.time", return_value=1700000000.0):
        numbers = [ledger.generate_order_number("FGC", user.id) for _ in range(5)]

    assert len(set(numbers)) == 5
    prefix = str(user.id)[:8]
    for number in numbers:
        assert re.fullmatch(rf"FGC-\d+-{prefix}", number)


def test_create_pending_payment_records_single_pending_row(user):
    payment = _pending(user)

    assert PaymentRecord.objects.count() == 1
    assert payment.status == PaymentRecord.STATUS_PENDING
    assert payment.amount == Decimal("699.00")
    assert payment.order_number.startswith("FGC-")
    assert "initiatedAt" in payment.metadata


def test_create_pending_payment_regenerates_on_collision(user):
    existing = _pending(user)
    fresh = f"FGC-1-{str(user.id)[:8]}"

    with patch("apps.payments.ledger.generate_order_number", side_effect=[existing.order_number, fresh]):
        payment = _pending(user)

    assert payment.order_number == fresh
    assert PaymentRecord.objects.count() == 2


def test_complete_payment_unlocks_onboarding_once(user):
    payment = _pending(user)

    record, changed = ledger.complete_payment(
        payment.pk,
        transaction_id="TX-1",
        onboarding_details={"paymentMethod": "visa", "last4": "4242"},
    )
    assert changed is True
    assert record.status == PaymentRecord.STATUS_COMPLETED
    assert record.paid_at is not None

    onboarding = OnboardingData.objects.get(user=user)
    assert onboarding.payment_completed is True
    assert onboarding.current_step == 4
    assert onboarding.payment_details["transactionId"] == "TX-1"
    assert onboarding.payment_details["last4"] == "4242"
    assert onboarding.payment_details["amount"] == 699.0

    with patch("apps.payments.ledger.record_payment_completed") as unlock:
        record, changed = ledger.complete_payment(payment.pk, transaction_id="TX-2")
    assert changed is False
    assert record.transaction_id == "TX-1"
    unlock.assert_not_called()


def test_fail_payment_does_not_touch_completed_record(user):
    payment = _pending(user)
    ledger.complete_payment(payment.pk, transaction_id="TX-1")

    record, changed = ledger.fail_payment(payment.pk, metadata={"failedStep": "capture"})

    assert changed is False
    assert record.status == PaymentRecord.STATUS_COMPLETED
    assert "failedStep" not in record.metadata


def test_update_pending_ignores_terminal_records(user):
    payment = _pending(user)
    ledger.fail_payment(payment.pk, metadata={"failedStep": "provider"})

    record = ledger.update_pending(payment.pk, metadata={"setupTokenId": "ST-1"}, transaction_id="X")

    assert record.status == PaymentRecord.STATUS_FAILED
    assert record.transaction_id is None
    assert "setupTokenId" not in record.metadata


def test_abandon_if_stale_only_demotes_old_pending_rows(user):
    old = _pending(user)
    fresh = _pending(user)
    done = _pending(user)
    ledger.complete_payment(done.pk)
    PaymentRecord.objects.filter(pk__in=[old.pk, done.pk]).update(created_at=timezone.now() - timedelta(minutes=11))

    cutoff = timezone.now() - timedelta(minutes=10)
    assert ledger.abandon_if_stale(old.pk, cutoff) is True
    assert ledger.abandon_if_stale(fresh.pk, cutoff) is False
    assert ledger.abandon_if_stale(done.pk, cutoff) is False

    statuses = dict(PaymentRecord.objects.values_list("pk", "status"))
    assert statuses[old.pk] == PaymentRecord.STATUS_ABANDONED
    assert statuses[fresh.pk] == PaymentRecord.STATUS_PENDING
    assert statuses[done.pk] == PaymentRecord.STATUS_COMPLETED
