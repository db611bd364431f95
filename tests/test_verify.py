from datetime import timedelta
from decimal import Decimal

import pytest
from django.utils import timezone

from apps.payments import ledger, services
from apps.payments.models import PaymentRecord
from apps.payments.tasks import sweep_abandoned_payments
from core.exceptions import NotFoundError, ValidationError

pytestmark = pytest.mark.django_db


@pytest.fixture
def payment(user):
    return ledger.create_pending_payment(
        user=user,
        provider=PaymentRecord.PROVIDER_TILOPAY,
        plan="gold",
        amount=Decimal("699.00"),
        currency="USD",
        order_prefix="FGC",
    )


def _age(payment, minutes):
    PaymentRecord.objects.filter(pk=payment.pk).update(created_at=timezone.now() - timedelta(minutes=minutes))


def test_stale_pending_payment_is_abandoned_on_verify(payment):
    _age(payment, 11)

    result = services.verify_payment(payment_id=payment.pk)

    assert result.status == PaymentRecord.STATUS_ABANDONED
    assert result.abandoned_now is True
    assert result.to_dict()["success"] is False


def test_recent_pending_payment_stays_pending(payment):
    _age(payment, 5)

    result = services.verify_payment(order_number=payment.order_number)

    assert result.status == PaymentRecord.STATUS_PENDING
    assert result.abandoned_now is False


def test_completed_payment_is_never_demoted(payment):
    ledger.complete_payment(payment.pk, transaction_id="TX-1")
    _age(payment, 60)

    result = services.verify_payment(payment_id=payment.pk)

    assert result.status == PaymentRecord.STATUS_COMPLETED
    assert PaymentRecord.objects.get(pk=payment.pk).status == PaymentRecord.STATUS_COMPLETED


def test_abandoned_payment_ignores_late_approval(payment):
    _age(payment, 11)
    services.verify_payment(payment_id=payment.pk)

    record, changed = ledger.complete_payment(payment.pk, transaction_id="TX-late")

    assert changed is False
    assert record.status == PaymentRecord.STATUS_ABANDONED


def test_abandon_window_follows_settings(payment, settings):
    settings.PAYMENT_ABANDON_AFTER_MINUTES = 30
    _age(payment, 11)

    assert services.verify_payment(payment_id=payment.pk).status == PaymentRecord.STATUS_PENDING


def test_verify_scoped_to_user(payment, other_user):
    with pytest.raises(NotFoundError):
        services.verify_payment(payment_id=payment.pk, user=other_user)


def test_verify_requires_an_identifier():
    with pytest.raises(ValidationError):
        services.verify_payment()


def test_verify_unknown_order_number(db):
    with pytest.raises(NotFoundError):
        services.verify_payment(order_number="FGC-0-missing")


def test_sweep_task_abandons_only_stale_pending(payment, user):
    fresh = ledger.create_pending_payment(
        user=user,
        provider=PaymentRecord.PROVIDER_PAYPAL,
        plan="silver",
        amount=Decimal("149.00"),
        currency="USD",
        order_prefix="FGC-PP",
    )
    _age(payment, 15)

    assert sweep_abandoned_payments.apply().get() == 1
    assert PaymentRecord.objects.get(pk=payment.pk).status == PaymentRecord.STATUS_ABANDONED
    assert PaymentRecord.objects.get(pk=fresh.pk).status == PaymentRecord.STATUS_PENDING
