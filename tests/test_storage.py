from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError, ReadTimeoutError

from core.config import StorageSettings
from core.storage import ObjectStorage, StorageError


def _storage(client: MagicMock) -> ObjectStorage:
    return ObjectStorage(StorageSettings(bucket="entries-bucket", region="ap-south-1"), client=client)


def test_object_url_quotes_the_key():
    storage = _storage(MagicMock())

    url = storage.object_url("entries/1-abc-my poster.png")

    assert url == "https://entries-bucket.s3.ap-south-1.amazonaws.com/entries/1-abc-my%20poster.png"


@pytest.mark.asyncio
async def test_put_object_sends_body_and_content_type():
    client = MagicMock()
    storage = _storage(client)

    url = await storage.put_object("entries/1-abc-a.png", b"png", "image/png")

    client.put_object.assert_called_once_with(
        Bucket="entries-bucket",
        Key="entries/1-abc-a.png",
        Body=b"png",
        ContentType="image/png",
    )
    assert url.endswith("/entries/1-abc-a.png")


@pytest.mark.asyncio
async def test_put_object_wraps_client_errors():
    client = MagicMock()
    client.put_object.side_effect = ClientError(
        {"Error": {"Code": "AccessDenied", "Message": "Access Denied"}},
        "PutObject",
    )

    with pytest.raises(StorageError) as exc_info:
        await _storage(client).put_object("entries/k", b"", "image/png")

    assert exc_info.value.code == "AccessDenied"


@pytest.mark.asyncio
async def test_put_object_wraps_timeouts():
    client = MagicMock()
    client.put_object.side_effect = ReadTimeoutError(endpoint_url="https://s3")

    with pytest.raises(StorageError) as exc_info:
        await _storage(client).put_object("entries/k", b"", "image/png")

    assert exc_info.value.code == "ReadTimeoutError"


def test_close_releases_client():
    client = MagicMock()
    storage = _storage(client)

    storage.close()

    client.close.assert_called_once_with()


@pytest.mark.asyncio
async def test_delete_object_wraps_client_errors():
    client = MagicMock()
    client.delete_object.side_effect = ClientError({"Error": {"Code": "AccessDenied"}}, "DeleteObject")
    storage = _storage(client)

    with pytest.raises(StorageError):
        await storage.delete_object("entries/k")

    client.delete_object.assert_called_once_with(Bucket="entries-bucket", Key="entries/k")


def test_object_url_encodes_commas_so_links_stay_splittable():
    url = _storage(MagicMock()).object_url("entries/1-abc-a,b.png")

    assert "," not in url
    assert url.endswith("/entries/1-abc-a%2Cb.png")
