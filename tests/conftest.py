from __future__ import annotations

import io
from dataclasses import replace
from typing import Any

import pytest
from starlette.datastructures import Headers, UploadFile

from core.config import DatabaseSettings, Settings, StorageSettings
from core.storage import ObjectStorage, StorageError


class FakeStorage:
    """In-memory stand-in for `core.storage.ObjectStorage`."""

    def __init__(self, *, bucket: str = "test-bucket", key_prefix: str = "entries") -> None:
        self.bucket = bucket
        self.key_prefix = key_prefix
        self.puts: list[tuple[str, bytes, str]] = []
        self.deleted: list[str] = []
        self.fail_filenames: set[str] = set()
        self.closed = False
        # URLs come from the real builder so key quoting is exercised.
        self._urls = ObjectStorage(StorageSettings(bucket=bucket, region="ap-south-1", key_prefix=key_prefix))

    async def put_object(self, key: str, body: bytes, content_type: str) -> str:
        if any(key.endswith("-" + name) for name in self.fail_filenames):
            raise StorageError(f"S3 PutObject failed for {key!r}: SlowDown", code="SlowDown")
        self.puts.append((key, body, content_type))
        return self._urls.object_url(key)

    async def delete_object(self, key: str) -> None:
        self.deleted.append(key)

    def close(self) -> None:
        self.closed = True


class FakeDatabase:
    """In-memory stand-in for `core.db.Database`; ids count up from 1."""

    def __init__(self) -> None:
        self.inserts: list[tuple[str, tuple[Any, ...]]] = []
        self.error: BaseException | None = None
        self.connected = False
        self._next_id = 1

    async def connect(self) -> None:
        self.connected = True

    async def close(self) -> None:
        self.connected = False

    async def fetch_one(self, sql: str, *args: Any) -> dict[str, Any] | None:
        if self.error is not None:
            raise self.error
        self.inserts.append((sql, args))
        entry_id = self._next_id
        self._next_id += 1
        return {"id": entry_id}


def make_upload(filename: str, content_type: str, data: bytes = b"data") -> UploadFile:
    return UploadFile(
        file=io.BytesIO(data),
        filename=filename,
        headers=Headers({"content-type": content_type}),
    )


def make_settings(**overrides: Any) -> Settings:
    settings = Settings(
        database=DatabaseSettings(host="localhost", user="postgres", name="entries"),
        storage=StorageSettings(bucket="test-bucket", key_prefix="entries"),
        app_env="development",
    )
    return replace(settings, **overrides)


@pytest.fixture
def storage() -> FakeStorage:
    return FakeStorage()


@pytest.fixture
def database() -> FakeDatabase:
    return FakeDatabase()


@pytest.fixture
def entry_fields() -> dict[str, str]:
    return {
        "full_name": "Jane Doe",
        "email_address": "jane@x.com",
        "submission_capacity": "Freelancer",
        "contact_number": "",
        "challenge": "",
    }
