from __future__ import annotations

import logging
from typing import Any

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class ServiceError(Exception):
    """Base class for errors raised by the orchestration services."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "Internal server error"

    def __init__(self, detail: str | None = None, payload: dict[str, Any] | None = None) -> None:
        self.detail = detail or self.default_detail
        self.payload = payload or {}
        super().__init__(self.detail)


class ConfigurationError(ServiceError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = "Service is not configured."


class ValidationError(ServiceError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Invalid request."


class ProviderError(ServiceError):
    status_code = status.HTTP_502_BAD_GATEWAY
    default_detail = "Upstream provider request failed."


class ConflictError(ServiceError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Request conflicts with an existing resource."


class NotFoundError(ServiceError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Not found."


class AttachmentUnavailable(ProviderError):
    default_detail = "Attachment could not be retrieved."


def service_exception_handler(exc: Exception, context: dict) -> Response | None:
    if isinstance(exc, ServiceError):
        if exc.status_code >= 500:
            logger.warning("%s: %s", type(exc).__name__, exc.detail)
        body = {"detail": exc.detail, **exc.payload}
        return Response(body, status=exc.status_code)
    return exception_handler(exc, context)
