from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Sequence

import requests
from django.conf import settings
from django.utils import timezone

from apps.attachments.resolver import (
    COVER_LETTER_BUCKET,
    CV_BUCKET,
    AttachmentReference,
    ResolvedAttachment,
    resolve,
)
from apps.attachments.storage import BlobStorage
from core.exceptions import ConfigurationError, ProviderError, ValidationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DispatchCredentials:
    access_token: str
    refresh_token: str
    gmail_account_id: str = ""

    def __repr__(self) -> str:
        return f"DispatchCredentials(gmail_account_id={self.gmail_account_id!r})"


@dataclass(frozen=True)
class DispatchResult:
    accepted: bool
    status_code: int
    sink_response: Any


def _parse_body(resp: requests.Response) -> Any:
    if not resp.content:
        return {}
    try:
        return resp.json()
    except ValueError:
        return {"message": resp.text}


def dispatch_bulk_applications(
    job_ids: Sequence[Any],
    user_email: str,
    credentials: DispatchCredentials,
    cv_ref: str | None = None,
    cover_letter_ref: str | None = None,
    *,
    user_id: Any = None,
    storage: BlobStorage | None = None,
) -> DispatchResult:
    """
    Send one batch of job applications to the automation sink.

    Attachments are resolved before anything is sent; a reference that
    cannot be fetched aborts the whole batch.
    """
    if not job_ids or isinstance(job_ids, (str, bytes)):
        raise ValidationError("Job IDs are required")
    if not user_email or not credentials.access_token or not credentials.refresh_token:
        raise ValidationError("Email and tokens are required")

    url = getattr(settings, "DISPATCH_WEBHOOK_URL", "")
    if not url:
        raise ConfigurationError("Dispatch webhook is not configured")

    logger.info(
        "Bulk send for %s: %s jobs, cv=%s cover_letter=%s",
        user_email,
        len(job_ids),
        bool(cv_ref),
        bool(cover_letter_ref),
    )

    attachments: dict[str, ResolvedAttachment] = {}
    if cv_ref or cover_letter_ref:
        storage = storage or BlobStorage.from_settings()
    if cv_ref:
        attachments["cv"] = resolve(AttachmentReference(CV_BUCKET, cv_ref, user_id), storage)
    if cover_letter_ref:
        attachments["cover_letter"] = resolve(AttachmentReference(COVER_LETTER_BUCKET, cover_letter_ref, user_id), storage)

    fields = {
        "job_ids": json.dumps(list(job_ids)),
        "user_email": user_email,
        "gmail_account_id": credentials.gmail_account_id or "",
        "access_token": credentials.access_token,
        "refresh_token": credentials.refresh_token,
        "timestamp": timezone.now().isoformat(),
    }
    files = {
        name: (attachment.filename, attachment.content, attachment.mime_type)
        for name, attachment in attachments.items()
    }

    timeout = float(getattr(settings, "OUTBOUND_HTTP_TIMEOUT", 20))
    try:
        resp = requests.post(url, data=fields, files=files or None, timeout=timeout)
    except requests.RequestException as exc:
        logger.warning("Dispatch sink unreachable: %s", exc)
        raise ProviderError("Failed to reach dispatch webhook", payload={"error": str(exc)}) from exc

    body = _parse_body(resp)
    if not 200 <= resp.status_code < 300:
        logger.warning("Dispatch sink returned %s for %s", resp.status_code, user_email)
        raise ProviderError(
            f"Webhook returned {resp.status_code}",
            payload={"status": resp.status_code, "sink_response": body},
        )

    logger.info("Bulk send accepted for %s (%s jobs)", user_email, len(job_ids))
    return DispatchResult(accepted=True, status_code=resp.status_code, sink_response=body)
