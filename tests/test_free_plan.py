import uuid
from decimal import Decimal

import pytest
from django.urls import reverse

from apps.onboarding.models import OnboardingData
from apps.payments import services
from apps.payments.models import PaymentRecord
from core.exceptions import ValidationError

pytestmark = pytest.mark.django_db


def test_free_plan_creates_completed_record_and_unlocks_onboarding(user):
    payment = services.activate_free_plan(
        user,
        "Gold",
        final_amount=0,
        original_amount=699,
        referral_code="FRIENDS100",
        discount_percentage=100,
    )

    assert payment.status == PaymentRecord.STATUS_COMPLETED
    assert payment.provider == PaymentRecord.PROVIDER_FREE
    assert payment.amount == Decimal("0")
    assert payment.plan == "gold"
    assert payment.paid_at is not None
    assert payment.order_number.startswith("FGC-FREE-")
    assert payment.metadata["paymentType"] == "FREE_PLAN"
    assert payment.metadata["isFree"] is True
    assert payment.metadata["originalAmount"] == 699.0
    assert payment.metadata["email"] == user.email

    onboarding = OnboardingData.objects.get(user=user)
    assert onboarding.payment_completed is True
    assert onboarding.current_step == 4
    assert onboarding.selected_plan == "gold"
    assert onboarding.payment_details["paymentMethod"] == "FREE_PLAN"
    assert onboarding.payment_details["paymentId"] == str(payment.id)
    assert onboarding.payment_details["referralCode"] == "FRIENDS100"


def test_free_plan_accepts_rounding_cent(user):
    payment = services.activate_free_plan(user, "silver", final_amount="0.01")

    assert payment.status == PaymentRecord.STATUS_COMPLETED


@pytest.mark.parametrize("final_amount", ["0.02", "149.00", "-1", "abc"])
def test_free_plan_rejects_paid_or_invalid_amounts(user, final_amount):
    with pytest.raises(ValidationError):
        services.activate_free_plan(user, "gold", final_amount=final_amount)

    assert PaymentRecord.objects.count() == 0
    assert not OnboardingData.objects.filter(user=user).exists()


def test_free_plan_requires_plan(user):
    with pytest.raises(ValidationError):
        services.activate_free_plan(user, "  ", final_amount=0)


def test_verify_reports_free_plan_payment(user):
    payment = services.activate_free_plan(user, "gold", final_amount=0)

    result = services.verify_payment(payment_id=payment.id, user=user)

    assert result.to_dict()["success"] is True
    assert result.to_dict()["provider"] == "free"
    assert result.to_dict()["amount"] == 0.0


def test_free_plan_endpoint(api_client, user):
    response = api_client.post(
        reverse("free-plan-activation"),
        {
            "userId": str(user.id),
            "planName": "gold",
            "originalAmount": "699.00",
            "finalAmount": "0.00",
            "referralCode": "FRIENDS100",
            "discountPercentage": 100,
        },
        format="json",
    )

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["data"]["planName"] == "gold"
    assert body["data"]["paymentAmount"] == 0
    assert body["data"]["referralCode"] == "FRIENDS100"
    payment = PaymentRecord.objects.get(pk=body["data"]["paymentId"])
    assert payment.user == user
    assert payment.status == PaymentRecord.STATUS_COMPLETED


def test_free_plan_endpoint_rejects_paid_amount(api_client):
    response = api_client.post(
        reverse("free-plan-activation"),
        {"planName": "gold", "finalAmount": "49.00"},
        format="json",
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "Free plan activation only allowed for $0 or near-zero amounts"
    assert PaymentRecord.objects.count() == 0


def test_free_plan_endpoint_rejects_other_user_id(api_client):
    response = api_client.post(
        reverse("free-plan-activation"),
        {"userId": str(uuid.uuid4()), "planName": "gold", "finalAmount": "0"},
        format="json",
    )

    assert response.status_code == 403
    assert PaymentRecord.objects.count() == 0


def test_free_plan_endpoint_requires_authentication(anon_client):
    response = anon_client.post(reverse("free-plan-activation"), {"planName": "gold"}, format="json")

    assert response.status_code == 401
