from decimal import Decimal
from unittest.mock import patch
from urllib.parse import parse_qs, urlparse

import pytest
from django.urls import reverse
from rest_framework.test import APIClient

from apps.payments import ledger
from apps.payments.continuation import Continuation, encode_continuation
from apps.payments.models import PaymentRecord
from apps.payments.views import PayPalCallbackView, TilopayCallbackView

pytestmark = pytest.mark.django_db

SDK_TOKEN = {"access_token": "sdk-token", "token_type": "bearer", "expires_in": 3600}


@pytest.fixture
def mock_request():
    with patch("apps.payments.gateways.base.requests.request") as mocked:
        yield mocked


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


def _return_data(payment):
    return encode_continuation(
        Continuation(user_id=str(payment.user_id), payment_id=str(payment.id), plan=payment.plan)
    )


def _query(response):
    location = urlparse(response["Location"])
    return location, {key: values[0] for key, values in parse_qs(location.query).items()}


def test_initiate_endpoint(api_client, mock_request, fake_response):
    mock_request.return_value = fake_response(200, SDK_TOKEN)

    response = api_client.post(
        reverse("payment-initiate"),
        {
            "provider": "gateway_a",
            "amount": "699.00",
            "planName": "gold",
            "email": "ana@example.com",
            "firstName": "Ana",
            "lastName": "Lopez",
        },
        format="json",
    )

    assert response.status_code == 201
    body = response.json()
    assert body["provider"] == "tilopay"
    assert body["orderNumber"].startswith("FGC-")
    assert body["initPayload"]["token"] == "sdk-token"
    assert PaymentRecord.objects.filter(pk=body["paymentId"], status="pending").exists()


def test_initiate_endpoint_unknown_provider(api_client, mock_request):
    response = api_client.post(
        reverse("payment-initiate"),
        {"provider": "stripe", "amount": "10.00", "planName": "gold", "email": "ana@example.com"},
        format="json",
    )

    assert response.status_code == 400
    assert "Unknown payment provider" in response.json()["detail"]


def test_initiate_endpoint_requires_authentication(anon_client):
    response = anon_client.post(reverse("payment-initiate"), {}, format="json")
    assert response.status_code == 401


def test_initiate_endpoint_reports_missing_configuration(api_client, settings, mock_request):
    settings.TILOPAY_API_PASSWORD = ""

    response = api_client.post(
        reverse("payment-initiate"),
        {
            "provider": "tilopay",
            "amount": "699.00",
            "planName": "gold",
            "email": "ana@example.com",
            "firstName": "Ana",
            "lastName": "Lopez",
        },
        format="json",
    )

    assert response.status_code == 503
    assert PaymentRecord.objects.count() == 0


def test_tilopay_token_endpoint(api_client, mock_request, fake_response):
    mock_request.return_value = fake_response(200, SDK_TOKEN)

    response = api_client.post(reverse("tilopay-token"))

    assert response.status_code == 200
    assert response.json() == {"token": "sdk-token", "token_type": "bearer", "expires_in": 3600}


def test_tilopay_redirect_success(anon_client, payment):
    response = anon_client.get(
        reverse("tilopay-callback"),
        {"order": payment.order_number, "status": "1", "transaction_id": "TX-1", "returnData": _return_data(payment)},
    )

    assert response.status_code == 302
    location, params = _query(response)
    assert location.netloc == "app.example.com"
    assert location.path == "/onboarding-new"
    assert params == {"step": "4", "payment": "success"}
    assert PaymentRecord.objects.get(pk=payment.pk).status == PaymentRecord.STATUS_COMPLETED


def test_tilopay_redirect_failure_carries_message(anon_client, payment):
    response = anon_client.get(
        reverse("tilopay-callback"),
        {"order": payment.order_number, "status": "3", "message": "Card declined", "returnData": _return_data(payment)},
    )

    _, params = _query(response)
    assert params["payment"] == "failed"
    assert params["step"] == "3"
    assert params["message"] == "Card declined"


def test_tilopay_redirect_for_abandoned_payment(anon_client, payment):
    PaymentRecord.objects.filter(pk=payment.pk).update(status=PaymentRecord.STATUS_ABANDONED)

    response = anon_client.get(
        reverse("tilopay-callback"),
        {"order": payment.order_number, "status": "approved", "returnData": _return_data(payment)},
    )

    _, params = _query(response)
    assert params["payment"] == "abandoned"
    assert PaymentRecord.objects.get(pk=payment.pk).status == PaymentRecord.STATUS_ABANDONED


def test_tilopay_redirect_with_bad_continuation(anon_client, payment):
    response = anon_client.get(
        reverse("tilopay-callback"),
        {"order": payment.order_number, "status": "approved", "returnData": "garbage"},
    )

    assert response.status_code == 302
    _, params = _query(response)
    assert params["payment"] == "error"
    assert PaymentRecord.objects.get(pk=payment.pk).status == PaymentRecord.STATUS_PENDING


def test_tilopay_webhook_returns_json(anon_client, payment):
    data = {"order": payment.order_number, "status": "approved", "transaction_id": "TX-7", "returnData": _return_data(payment)}

    first = anon_client.post(reverse("tilopay-callback"), data, format="json")
    second = anon_client.post(reverse("tilopay-callback"), data, format="json")

    assert first.status_code == 200
    assert first.json()["status"] == "completed"
    assert first.json()["changed"] is True
    assert second.json()["changed"] is False


def test_tilopay_webhook_rejects_missing_continuation(anon_client, payment):
    response = anon_client.post(reverse("tilopay-callback"), {"order": payment.order_number}, format="json")

    assert response.status_code == 400
    assert response.json()["detail"] == "Missing returnData"


def test_paypal_return_with_missing_token_redirects_with_error(anon_client):
    response = anon_client.get(reverse("paypal-callback"), {"paymentId": "abc"})

    assert response.status_code == 302
    _, params = _query(response)
    assert params["payment"] == "error"


def test_paypal_capture_checks_ownership(api_client, other_user):
    foreign = ledger.create_pending_payment(
        user=other_user,
        provider=PaymentRecord.PROVIDER_PAYPAL,
        plan="silver",
        amount=Decimal("149.00"),
        currency="USD",
        order_prefix="FGC-PP",
    )

    response = api_client.post(
        reverse("paypal-capture"),
        {"paymentId": str(foreign.id), "paymentTokenId": "PT-1"},
        format="json",
    )

    assert response.status_code == 404


def test_verify_endpoint_is_scoped_to_owner(api_client, other_user, payment):
    own = api_client.get(reverse("payment-verify"), {"paymentId": str(payment.id)})
    assert own.status_code == 200
    assert own.json()["status"] == "pending"
    assert own.json()["amount"] == 699.0

    api_client.force_authenticate(user=other_user)
    foreign = api_client.get(reverse("payment-verify"), {"orderNumber": payment.order_number})
    assert foreign.status_code == 404


def test_admin_can_verify_any_payment(admin_user, payment):
    client = APIClient()
    client.force_authenticate(user=admin_user)

    response = client.get(reverse("payment-verify"), {"orderNumber": payment.order_number})

    assert response.status_code == 200
    assert response.json()["orderNumber"] == payment.order_number


def test_verify_endpoint_requires_identifier(api_client):
    assert api_client.get(reverse("payment-verify")).status_code == 400


def test_payment_records_list_only_own(api_client, other_user, payment):
    ledger.create_pending_payment(
        user=other_user,
        provider=PaymentRecord.PROVIDER_TILOPAY,
        plan="gold",
        amount=Decimal("699.00"),
        currency="USD",
        order_prefix="FGC",
    )

    response = api_client.get(reverse("payment-record-list"))

    assert response.status_code == 200
    results = response.json()["results"]
    assert [row["order_number"] for row in results] == [payment.order_number]


@pytest.mark.parametrize("body", [[1, 2], "approved", 7])
def test_tilopay_webhook_rejects_non_object_body(anon_client, payment, body):
    response = anon_client.post(reverse("tilopay-callback"), body, format="json")

    assert response.status_code == 400
    assert response.json()["detail"] == "Malformed callback payload"
    assert PaymentRecord.objects.get(pk=payment.pk).status == PaymentRecord.STATUS_PENDING


def test_provider_callbacks_are_not_throttled():
    assert TilopayCallbackView().get_throttles() == []
    assert PayPalCallbackView().get_throttles() == []
