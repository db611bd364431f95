from __future__ import annotations

import logging
import time
import uuid
from contextvars import ContextVar
from typing import Callable

from django.http import HttpRequest, HttpResponse

logger = logging.getLogger(__name__)

_request_id: ContextVar[str] = ContextVar("request_id", default="-")


def get_request_id() -> str:
    return _request_id.get()


class RequestIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = get_request_id()
        return True


class RequestLogMiddleware:
    header = "X-Request-ID"

    def __init__(self, get_response: Callable[[HttpRequest], HttpResponse]) -> None:
        self.get_response = get_response

    def __call__(self, request: HttpRequest) -> HttpResponse:
        request_id = request.headers.get(self.header) or uuid.uuid4().hex[:12]
        token = _request_id.set(request_id)
        started = time.monotonic()
        try:
            response = self.get_response(request)
            duration_ms = int((time.monotonic() - started) * 1000)
            logger.info(
                "%s %s -> %s (%sms)",
                request.method,
                request.path,
                response.status_code,
                duration_ms,
            )
            response[self.header] = request_id
            return response
        finally:
            _request_id.reset(token)
