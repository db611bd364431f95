"""
Fetch CVs and cover letters from document storage.

A reference is either a bare file name (documents uploaded before per-user
folders existed) or a ``<user id>/<file name>`` path. When the reference
carries a user, paths under any other user's folder are refused.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from core.exceptions import AttachmentUnavailable, NotFoundError, ProviderError

from .storage import BlobStorage

logger = logging.getLogger(__name__)

CV_BUCKET = "cvs"
COVER_LETTER_BUCKET = "cover-letters"
DOCUMENT_BUCKETS = (CV_BUCKET, COVER_LETTER_BUCKET)


@dataclass(frozen=True)
class AttachmentReference:
    bucket: str
    path: str
    user_id: Any = None

    @property
    def filename(self) -> str:
        return self.path.rstrip("/").rsplit("/", 1)[-1]

    def is_owned(self) -> bool:
        """Root-level files and files in ``user_id``'s own folder."""
        if self.user_id is None:
            return True
        segments = self.path.strip("/").split("/")
        if any(segment in ("", ".", "..") for segment in segments):
            return False
        return len(segments) == 1 or (len(segments) == 2 and segments[0] == str(self.user_id))


@dataclass(frozen=True)
class ResolvedAttachment:
    content: bytes
    mime_type: str
    filename: str

    @property
    def size(self) -> int:
        return len(self.content)


def resolve(reference: AttachmentReference, storage: BlobStorage | None = None) -> ResolvedAttachment:
    """
    Direct download first, then the object's public URL. Raises
    ``AttachmentUnavailable`` with the last error when both fail.
    """
    if not reference.is_owned():
        logger.warning("Refused %s/%s for user %s", reference.bucket, reference.path, reference.user_id)
        raise NotFoundError("Document not found", payload={"bucket": reference.bucket})

    storage = storage or BlobStorage.from_settings()
    try:
        stored = storage.download(reference.bucket, reference.path)
    except ProviderError as exc:
        logger.info("Download of %s/%s failed (%s), trying public URL", reference.bucket, reference.path, exc.detail)
        try:
            stored = storage.fetch_url(storage.public_url(reference.bucket, reference.path))
        except ProviderError as fallback_exc:
            logger.warning("Could not fetch %s/%s: %s", reference.bucket, reference.path, fallback_exc.detail)
            raise AttachmentUnavailable(
                f"Failed to fetch {reference.filename} from both download and public URL",
                payload={
                    "bucket": reference.bucket,
                    "reference": reference.path,
                    "error": fallback_exc.detail,
                },
            ) from fallback_exc

    attachment = ResolvedAttachment(content=stored.content, mime_type=stored.mime_type, filename=reference.filename)
    logger.info("Resolved %s/%s (%s bytes)", reference.bucket, reference.path, attachment.size)
    return attachment


def list_user_documents(user_id: Any, bucket: str, storage: BlobStorage | None = None) -> list[dict[str, Any]]:
    """
    Documents in the user's folder, or the bucket root for accounts whose
    uploads predate per-user folders.
    """
    storage = storage or BlobStorage.from_settings()
    folder = str(user_id)
    try:
        files = storage.list(bucket, prefix=folder)
    except ProviderError as exc:
        logger.warning("Listing %s/%s failed: %s; falling back to root", bucket, folder, exc.detail)
        files = []

    if files:
        return [_describe(item, f"{folder}/{item['name']}") for item in files]
    return [_describe(item, item["name"]) for item in storage.list(bucket)]


def _describe(item: dict[str, Any], path: str) -> dict[str, Any]:
    return {
        "id": path,
        "name": item["name"],
        "path": path,
        "size": (item.get("metadata") or {}).get("size", 0),
        "created_at": item.get("created_at"),
        "updated_at": item.get("updated_at"),
    }
