"""
Attachment handling for entries.

This file contains logic that is independent of FastAPI's routing layer:
- Check declared media types against the allow-list
- Read multipart file parts with a size limit
- Build storage keys and upload a batch concurrently
"""

from __future__ import annotations

import asyncio
import logging
import secrets
import time
from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import Any, Protocol, Sequence

from .errors import AttachmentTooLargeError, DisallowedMediaTypeError, UploadError

logger = logging.getLogger(__name__)

ALLOWED_MEDIA_TYPES = frozenset(
    {
        # Documents
        "application/pdf",
        "application/msword",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        # Images
        "image/jpeg",
        "image/jpg",
        "image/png",
        "image/tiff",
        # Video
        "video/mp4",
        "video/quicktime",
        "video/x-msvideo",
        "video/avi",
        # Audio
        "audio/mpeg",
        "audio/mp3",
        "audio/wav",
        "audio/x-wav",
        "audio/wave",
        "audio/vnd.wave",
    }
)

READ_CHUNK_BYTES = 1024 * 1024  # 1 MiB


class Storage(Protocol):
    async def put_object(self, key: str, body: bytes, content_type: str) -> str: ...


@dataclass(frozen=True)
class Attachment:
    filename: str
    media_type: str
    data: bytes


@dataclass(frozen=True)
class UploadResult:
    visual_links: str | None
    keys: list[str] = field(default_factory=list)


def normalize_media_type(media_type: str | None) -> str:
    # "image/PNG; name=x.png" -> "image/png"
    return (media_type or "").split(";", 1)[0].strip().lower()


def is_allowed_media_type(media_type: str | None) -> bool:
    return normalize_media_type(media_type) in ALLOWED_MEDIA_TYPES


def check_media_types(attachments: Sequence[Any]) -> None:
    """
    Reject the whole batch if any declared type is outside the allow-list.

    Accepts anything with `filename` and `content_type`/`media_type`, so it
    runs on raw multipart parts before a single byte is read.
    """
    for item in attachments:
        media_type = getattr(item, "media_type", None) or getattr(item, "content_type", None) or ""
        if not is_allowed_media_type(media_type):
            raise DisallowedMediaTypeError(getattr(item, "filename", None) or "", media_type)


def safe_filename(filename: str | None) -> str:
    # Keys keep the client's filename, minus any directory part.
    name = PurePosixPath((filename or "").replace("\\", "/")).name.strip()
    return name or "attachment"


def build_storage_key(
    prefix: str,
    filename: str | None,
    *,
    now_ms: int | None = None,
    random_id: str | None = None,
) -> str:
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    if random_id is None:
        random_id = secrets.token_hex(8)
    return f"{prefix.strip('/')}/{now_ms}-{random_id}-{safe_filename(filename)}"


async def read_attachment(upload: Any, *, max_bytes: int) -> Attachment:
    """
    Read one multipart file part into memory, enforcing a maximum size.
    """
    filename = upload.filename or ""
    buf = bytearray()

    while True:
        chunk = await upload.read(READ_CHUNK_BYTES)
        if not chunk:
            break
        buf.extend(chunk)
        if len(buf) > max_bytes:
            raise AttachmentTooLargeError(filename, max_bytes)

    return Attachment(
        filename=filename,
        media_type=normalize_media_type(upload.content_type),
        data=bytes(buf),
    )


async def upload_attachments(
    storage: Storage,
    attachments: Sequence[Attachment],
    *,
    prefix: str,
) -> UploadResult:
    """
    Upload every attachment concurrently and join the URLs in input order.

    All-or-nothing: one failed upload fails the batch. Objects that did land
    are reported on the raised `UploadError` so the caller can clean them up.
    """
    if not attachments:
        return UploadResult(visual_links=None)

    check_media_types(attachments)

    now_ms = int(time.time() * 1000)
    keys = [build_storage_key(prefix, a.filename, now_ms=now_ms) for a in attachments]

    results = await asyncio.gather(
        *(storage.put_object(key, a.data, a.media_type) for key, a in zip(keys, attachments)),
        return_exceptions=True,
    )

    failures = [(key, r) for key, r in zip(keys, results) if isinstance(r, BaseException)]
    if failures:
        uploaded = [key for key, r in zip(keys, results) if not isinstance(r, BaseException)]
        for key, exc in failures:
            logger.error("attachment_upload_failed key=%s error=%s", key, exc)
        first_key, first_exc = failures[0]
        if not isinstance(first_exc, Exception):
            # Cancellation and interpreter exits are not upload failures.
            raise first_exc
        raise UploadError(
            f"{len(failures)} of {len(keys)} attachment upload(s) failed: {first_exc}",
            key=first_key,
            uploaded_keys=uploaded,
        ) from first_exc

    return UploadResult(visual_links=",".join(str(u) for u in results), keys=keys)
