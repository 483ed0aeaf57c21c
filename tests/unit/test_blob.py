"""
BlobStorageClient URL resolution and FileEntity streaming with a mocked SDK.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from azure.core.exceptions import HttpResponseError, ResourceNotFoundError

from config.storage_config import StorageConfig
from exceptions import StorageError
from infrastructure.blob import BlobStorageClient, FileEntity, parse_blob_url


class FakeDownloader:
    def __init__(self, chunks):
        self._chunks = chunks

    async def _iterate(self):
        for chunk in self._chunks:
            yield chunk

    def chunks(self):
        return self._iterate()


async def _drain(file_entity):
    return [chunk async for chunk in file_entity.get_stream()]


class TestParseBlobUrl:
    def test_container_and_nested_path(self):
        assert parse_blob_url("https://acct.blob.core.windows.net/osw/2024/d1/file.zip") == (
            "https://acct.blob.core.windows.net", "osw", "2024/d1/file.zip",
        )

    def test_percent_encoded_path(self):
        _, _, blob_path = parse_blob_url("https://acct.blob.core.windows.net/osw/my%20file.zip")
        assert blob_path == "my file.zip"

    @pytest.mark.parametrize("url", [
        "osw/file.zip",
        "https://acct.blob.core.windows.net/",
        "https://acct.blob.core.windows.net/osw",
    ])
    def test_rejects_incomplete_urls(self, url):
        with pytest.raises(StorageError):
            parse_blob_url(url)


class TestGetFileFromUrl:
    def test_resolves_blob_client(self):
        service_client = MagicMock()
        client = BlobStorageClient(StorageConfig(download_concurrency=3), service_client=service_client)

        entity = asyncio.run(client.get_file_from_url("https://acct.blob.core.windows.net/osw/d1/file.zip"))

        service_client.get_blob_client.assert_called_once_with(container="osw", blob="d1/file.zip")
        assert entity.container == "osw"
        assert entity.name == "file.zip"

    def test_bad_url_raises_storage_error(self):
        client = BlobStorageClient(StorageConfig(), service_client=MagicMock())
        with pytest.raises(StorageError):
            asyncio.run(client.get_file_from_url("not-a-url"))


class TestGetStream:
    def test_yields_sdk_chunks(self):
        blob_client = MagicMock()
        blob_client.download_blob = AsyncMock(return_value=FakeDownloader([b"ab", b"cd"]))
        entity = FileEntity("osw", "d1.zip", blob_client, max_concurrency=2)

        assert asyncio.run(_drain(entity)) == [b"ab", b"cd"]
        blob_client.download_blob.assert_awaited_once_with(max_concurrency=2)

    def test_missing_blob(self):
        blob_client = MagicMock()
        blob_client.download_blob = AsyncMock(side_effect=ResourceNotFoundError("gone"))
        with pytest.raises(StorageError, match="not found"):
            asyncio.run(_drain(FileEntity("osw", "d1.zip", blob_client)))

    def test_service_error(self):
        blob_client = MagicMock()
        blob_client.download_blob = AsyncMock(side_effect=HttpResponseError("throttled"))
        with pytest.raises(StorageError, match="throttled"):
            asyncio.run(_drain(FileEntity("osw", "d1.zip", blob_client)))
