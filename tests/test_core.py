import logging

import pytest
from django.urls import reverse
from rest_framework.exceptions import NotAuthenticated

from core.exceptions import ConflictError, ProviderError, service_exception_handler
from core.middleware import RequestIdFilter


def test_service_errors_map_to_status_and_payload():
    response = service_exception_handler(ConflictError("busy", payload={"active_campaign": {"id": "c1"}}), {})

    assert response.status_code == 409
    assert response.data == {"detail": "busy", "active_campaign": {"id": "c1"}}


def test_provider_error_default_detail():
    response = service_exception_handler(ProviderError(), {})

    assert response.status_code == 502
    assert response.data["detail"] == "Upstream provider request failed."


def test_other_exceptions_use_drf_handler():
    response = service_exception_handler(NotAuthenticated(), {})
    assert response.status_code == 401


def test_request_id_filter_defaults_outside_requests():
    record = logging.LogRecord("apps", logging.INFO, __file__, 1, "msg", None, None)

    assert RequestIdFilter().filter(record) is True
    assert record.request_id == "-"


@pytest.mark.django_db
def test_request_id_is_echoed(api_client):
    response = api_client.get(reverse("payment-verify"), HTTP_X_REQUEST_ID="req-abc")

    assert response["X-Request-ID"] == "req-abc"


@pytest.mark.django_db
def test_request_id_is_generated(api_client):
    response = api_client.get(reverse("payment-verify"))

    assert response["X-Request-ID"]
