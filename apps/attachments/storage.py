from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote

import requests
from django.conf import settings

from core.exceptions import ConfigurationError, ProviderError

logger = logging.getLogger(__name__)

DEFAULT_MIME_TYPE = "application/pdf"
FOLDER_PLACEHOLDER = ".emptyFolderPlaceholder"


@dataclass(frozen=True)
class StoredObject:
    content: bytes
    mime_type: str


def _mime_type(resp: requests.Response) -> str:
    content_type = resp.headers.get("Content-Type") or ""
    mime = content_type.split(";")[0].strip()
    if not mime or mime == "application/octet-stream":
        return DEFAULT_MIME_TYPE
    return mime


class BlobStorage:
    """Minimal client for the Supabase storage REST API."""

    def __init__(self, base_url: str, service_key: str, timeout: float = 20) -> None:
        if not base_url or not service_key:
            raise ConfigurationError("Document storage is not configured")
        self.base_url = base_url.rstrip("/")
        self.service_key = service_key
        self.timeout = timeout

    @classmethod
    def from_settings(cls) -> "BlobStorage":
        return cls(
            getattr(settings, "SUPABASE_URL", ""),
            getattr(settings, "SUPABASE_SERVICE_ROLE_KEY", ""),
            timeout=float(getattr(settings, "OUTBOUND_HTTP_TIMEOUT", 20)),
        )

    @property
    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.service_key}", "apikey": self.service_key}

    def _object_url(self, bucket: str, path: str, public: bool = False) -> str:
        scope = "object/public" if public else "object"
        return f"{self.base_url}/storage/v1/{scope}/{bucket}/{quote(path.lstrip('/'))}"

    def public_url(self, bucket: str, path: str) -> str:
        return self._object_url(bucket, path, public=True)

    def download(self, bucket: str, path: str) -> StoredObject:
        return self._get(self._object_url(bucket, path), headers=self._headers)

    def fetch_url(self, url: str) -> StoredObject:
        return self._get(url)

    def list(self, bucket: str, prefix: str = "", limit: int = 100) -> list[dict[str, Any]]:
        """Files directly under ``prefix``; folders are left out."""
        try:
            resp = requests.post(
                f"{self.base_url}/storage/v1/object/list/{bucket}",
                json={
                    "prefix": prefix,
                    "limit": limit,
                    "offset": 0,
                    "sortBy": {"column": "created_at", "order": "desc"},
                },
                headers=self._headers,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise ProviderError("Failed to list documents", payload={"error": str(exc)}) from exc
        if resp.status_code != 200:
            raise ProviderError("Failed to list documents", payload={"error": resp.text})
        return [
            item
            for item in resp.json() or []
            if item.get("name") != FOLDER_PLACEHOLDER and item.get("id")
        ]

    def _get(self, url: str, headers: dict[str, str] | None = None) -> StoredObject:
        try:
            resp = requests.get(url, headers=headers, timeout=self.timeout)
        except requests.RequestException as exc:
            raise ProviderError(str(exc)) from exc
        if resp.status_code != 200:
            raise ProviderError(f"Storage returned {resp.status_code}", payload={"status": resp.status_code})
        if not resp.content:
            raise ProviderError("Storage returned an empty body")
        return StoredObject(content=resp.content, mime_type=_mime_type(resp))
