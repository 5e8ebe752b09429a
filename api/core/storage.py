"""
Object storage (S3) client helpers.

Used operations:
- PutObject    -> durable object, addressed by its virtual-hosted URL
- DeleteObject -> best-effort cleanup of orphaned uploads

boto3 is synchronous; calls run in a worker thread so the event loop keeps
serving other requests while an upload is in flight. A boto3 client is
thread-safe, so one instance is shared by all requests.
"""

from __future__ import annotations

import asyncio
from typing import Any
from urllib.parse import quote

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from .config import StorageSettings


# Storage failures are explicit and separable from other runtime errors.
class StorageError(RuntimeError):
    def __init__(self, message: str, *, code: str | None = None) -> None:
        super().__init__(message)
        self.code = code


def _error_code(exc: Exception) -> str:
    if isinstance(exc, ClientError):
        return str(exc.response.get("Error", {}).get("Code") or "ClientError")
    return type(exc).__name__


def build_client(settings: StorageSettings) -> Any:
    return boto3.client(
        "s3",
        region_name=settings.region,
        aws_access_key_id=settings.access_key_id or None,
        aws_secret_access_key=settings.secret_access_key or None,
        config=Config(
            connect_timeout=settings.connect_timeout_s,
            read_timeout=settings.read_timeout_s,
            # Failures surface to the caller immediately; nothing retries.
            retries={"total_max_attempts": 1, "mode": "standard"},
        ),
    )


class ObjectStorage:
    def __init__(self, settings: StorageSettings, *, client: Any | None = None) -> None:
        self._settings = settings
        self._client = client

    @property
    def bucket(self) -> str:
        return self._settings.bucket

    @property
    def key_prefix(self) -> str:
        return self._settings.key_prefix

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = build_client(self._settings)
        return self._client

    def object_url(self, key: str) -> str:
        return f"https://{self.bucket}.s3.{self._settings.region}.amazonaws.com/{quote(key, safe='/')}"

    async def put_object(self, key: str, body: bytes, content_type: str) -> str:
        """
        Upload one blob and return its retrieval URL.
        """
        try:
            await asyncio.to_thread(
                self.client.put_object,
                Bucket=self.bucket,
                Key=key,
                Body=body,
                ContentType=content_type,
            )
        except (BotoCoreError, ClientError) as exc:
            code = _error_code(exc)
            raise StorageError(f"S3 PutObject failed for {key!r}: {code}", code=code) from exc
        return self.object_url(key)

    async def delete_object(self, key: str) -> None:
        try:
            await asyncio.to_thread(self.client.delete_object, Bucket=self.bucket, Key=key)
        except (BotoCoreError, ClientError) as exc:
            code = _error_code(exc)
            raise StorageError(f"S3 DeleteObject failed for {key!r}: {code}", code=code) from exc

    def close(self) -> None:
        if self._client is None:
            return None
        self._client.close()
        self._client = None
