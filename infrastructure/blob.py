# ============================================================================
# BLOB STORAGE CLIENT
# ============================================================================
# STATUS: Infrastructure - archive byte source
# PURPOSE: Resolve a blob URL to a FileEntity whose content streams in chunks
# EXPORTS: BlobStorageClient, FileEntity
# DEPENDENCIES: azure-storage-blob (aio), azure-identity (aio)
# ============================================================================
"""
Blob Storage Client

Request messages reference archives by full blob URL:

    https://<account>.blob.core.windows.net/<container>/<path/to/file.zip>

get_file_from_url() splits that into container and blob path; the returned
FileEntity downloads lazily, yielding the SDK's chunks as they arrive, so
no caller ever holds the whole blob in memory.

Authentication:
    - STORAGECONNECTION set: connection string (local development)
    - otherwise: DefaultAzureCredential against the URL's account
"""

from typing import AsyncIterator, Optional
from urllib.parse import unquote, urlparse

from azure.core.exceptions import AzureError, ResourceNotFoundError
from azure.identity.aio import DefaultAzureCredential
from azure.storage.blob.aio import BlobClient, BlobServiceClient

from config.storage_config import StorageConfig
from exceptions import StorageError
from util_logger import LoggerFactory, ComponentType, log_exceptions

logger = LoggerFactory.create_logger(ComponentType.ADAPTER, "BlobStorageClient")


class FileEntity:
    """One blob, downloadable as an async stream of byte chunks."""

    def __init__(self, container: str, blob_path: str, blob_client: BlobClient, max_concurrency: int = 1):
        self.container = container
        self.blob_path = blob_path
        self._blob_client = blob_client
        self._max_concurrency = max_concurrency

    @property
    def name(self) -> str:
        return self.blob_path.rsplit("/", 1)[-1]

    async def get_stream(self) -> AsyncIterator[bytes]:
        """
        Yield the blob's bytes chunk by chunk.

        Raises:
            StorageError: Blob missing, account unreachable, or the download
                broke off part way
        """
        logger.debug(f"Streaming blob in chunks: {self.container}/{self.blob_path}")
        try:
            downloader = await self._blob_client.download_blob(max_concurrency=self._max_concurrency)
            async for chunk in downloader.chunks():
                yield chunk
        except ResourceNotFoundError as e:
            logger.error(f"Blob not found: {self.container}/{self.blob_path}")
            raise StorageError(f"Blob not found: {self.container}/{self.blob_path}") from e
        except AzureError as e:
            logger.error(f"Failed to stream blob {self.container}/{self.blob_path}: {e}")
            raise StorageError(f"Failed to stream blob {self.container}/{self.blob_path}: {e}") from e

    def __repr__(self) -> str:
        return f"FileEntity(container={self.container!r}, blob_path={self.blob_path!r})"


def parse_blob_url(url: str) -> tuple:
    """
    Split a blob URL into (account_url, container, blob_path).

    Raises:
        StorageError: URL has no container or no blob path
    """
    parsed = urlparse(url)
    if not parsed.scheme or not parsed.netloc:
        raise StorageError(f"Not a blob URL: {url!r}")
    parts = unquote(parsed.path).lstrip("/").split("/", 1)
    if len(parts) < 2 or not parts[0] or not parts[1]:
        raise StorageError(f"Blob URL must name a container and a blob: {url!r}")
    return f"{parsed.scheme}://{parsed.netloc}", parts[0], parts[1]


class BlobStorageClient:
    """
    Async Blob Storage access for archive downloads.

    One instance per worker; close() releases the SDK transport.
    """

    def __init__(self, config: StorageConfig, service_client: Optional[BlobServiceClient] = None):
        self.config = config
        self._service_client = service_client
        self._credential: Optional[DefaultAzureCredential] = None

    def _get_service_client(self, account_url: str) -> BlobServiceClient:
        if self._service_client is None:
            if self.config.connection_string:
                logger.info("Using connection string authentication for Blob Storage")
                self._service_client = BlobServiceClient.from_connection_string(self.config.connection_string)
            else:
                if self.config.account_name:
                    account_url = f"https://{self.config.account_name}.blob.core.windows.net"
                logger.info(f"Using DefaultAzureCredential for Blob Storage: {account_url}")
                self._credential = DefaultAzureCredential()
                self._service_client = BlobServiceClient(account_url=account_url, credential=self._credential)
        return self._service_client

    @log_exceptions(ComponentType.ADAPTER, "BlobStorageClient")
    async def get_file_from_url(self, url: str) -> FileEntity:
        """
        Resolve a blob URL to a FileEntity. No bytes are transferred yet.

        Args:
            url: Full https blob URL from the request message

        Returns:
            FileEntity for the referenced blob
        """
        account_url, container, blob_path = parse_blob_url(url)
        service_client = self._get_service_client(account_url)
        blob_client = service_client.get_blob_client(container=container, blob=blob_path)
        return FileEntity(container, blob_path, blob_client, self.config.download_concurrency)

    async def close(self) -> None:
        if self._service_client is not None:
            await self._service_client.close()
            self._service_client = None
        if self._credential is not None:
            await self._credential.close()
            self._credential = None
