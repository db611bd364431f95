"""
Shared fixtures for the orchestration test suite.
"""
import json
from unittest.mock import MagicMock

import pytest
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient

from apps.campaigns.locations import naukri_city_codes
from apps.payments.config import get_gateway_settings


@pytest.fixture(autouse=True)
def _reset_cached_config():
    get_gateway_settings.cache_clear()
    yield
    get_gateway_settings.cache_clear()
    naukri_city_codes.cache_clear()


@pytest.fixture
def user(db):
    return get_user_model().objects.create_user(
        email="ana@example.com",
        password="Secret123!",
        full_name="Ana Lopez",
    )


@pytest.fixture
def other_user(db):
    return get_user_model().objects.create_user(
        email="ben@example.com",
        password="Secret123!",
        full_name="Ben Ortiz",
    )


@pytest.fixture
def admin_user(db):
    return get_user_model().objects.create_superuser(
        email="admin@example.com",
        password="Admin123!",
        full_name="Admin User",
    )


@pytest.fixture
def api_client(user):
    client = APIClient()
    client.force_authenticate(user=user)
    return client


@pytest.fixture
def anon_client():
    return APIClient()


def _fake_response(status_code=200, json_body=None, content=None, text="", headers=None):
    resp = MagicMock()
    resp.status_code = status_code
    resp.headers = headers or {}
    if json_body is not None:
        resp.json.return_value = json_body
        resp.text = json.dumps(json_body)
        resp.content = content if content is not None else resp.text.encode()
    else:
        resp.json.side_effect = ValueError("No JSON object could be decoded")
        resp.text = text
        resp.content = content if content is not None else text.encode()
    return resp


@pytest.fixture
def fake_response():
    """Factory for stand-ins of ``requests.Response``."""
    return _fake_response
