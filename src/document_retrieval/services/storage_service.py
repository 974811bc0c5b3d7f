"""File storage for raw document bytes (local filesystem or Azure Blob Storage)."""

import asyncio
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Iterable, Optional

from azure.core.exceptions import AzureError, ResourceNotFoundError
from azure.identity.aio import DefaultAzureCredential
from azure.storage.blob import ContentSettings
from azure.storage.blob.aio import BlobServiceClient

from document_retrieval.config import StorageBackend, StorageSettings, get_settings
from document_retrieval.utils.errors import NotFoundError, StorageError
from document_retrieval.utils.logging import get_logger

logger = get_logger("storage_service")


class FileStorage(ABC):
    """Opaque-key byte store used for uploaded documents."""

    @abstractmethod
    async def read_file(self, key: str) -> bytes:
        """Return the bytes stored under ``key``; NotFoundError if missing."""

    @abstractmethod
    async def write_file(self, key: str, mimetype: str, data: bytes) -> None:
        """Store ``data`` under ``key``, replacing any previous bytes."""

    @abstractmethod
    async def delete_file(self, key: str) -> None:
        """Delete the bytes under ``key``; NotFoundError if missing."""

    async def delete_files(self, keys: Iterable[str]) -> None:
        """Delete several keys. Keys that are already gone are skipped."""
        for key in keys:
            try:
                await self.delete_file(key)
            except NotFoundError:
                logger.warning(f"File already deleted: {key}")

    async def close(self) -> None:
        """Release client resources."""


class LocalFileStorage(FileStorage):
    """Stores files under a root directory; blocking IO runs in a worker thread."""

    def __init__(self, root: str):
        self.root = Path(root).resolve()

    def _path(self, key: str) -> Path:
        path = (self.root / key).resolve()
        if path != self.root and self.root not in path.parents:
            raise StorageError(f"Invalid storage key: {key}", key=key)
        return path

    async def read_file(self, key: str) -> bytes:
        path = self._path(key)
        try:
            data = await asyncio.to_thread(path.read_bytes)
        except FileNotFoundError as e:
            raise NotFoundError("File", key) from e
        except OSError as e:
            logger.error(f"Failed to read file: {key} - {e}", exc_info=True)
            raise StorageError(f"Failed to read file: {str(e)}", key=key) from e

        logger.debug(f"Read file: {key}, size={len(data)} bytes")
        return data

    async def write_file(self, key: str, mimetype: str, data: bytes) -> None:
        path = self._path(key)

        def write() -> None:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)

        try:
            await asyncio.to_thread(write)
        except OSError as e:
            logger.error(f"Failed to write file: {key} - {e}", exc_info=True)
            raise StorageError(f"Failed to write file: {str(e)}", key=key) from e

        logger.debug(f"Wrote file: {key}, mimetype={mimetype}, size={len(data)} bytes")

    async def delete_file(self, key: str) -> None:
        path = self._path(key)
        try:
            await asyncio.to_thread(path.unlink)
        except FileNotFoundError as e:
            raise NotFoundError("File", key) from e
        except OSError as e:
            logger.error(f"Failed to delete file: {key} - {e}", exc_info=True)
            raise StorageError(f"Failed to delete file: {str(e)}", key=key) from e

        logger.debug(f"Deleted file: {key}")


class AzureBlobFileStorage(FileStorage):
    """
    Stores files as blobs in a single Azure Storage container.

    Authenticates with Managed Identity (DefaultAzureCredential) or a
    connection string.
    """

    def __init__(self, settings: StorageSettings):
        self._settings = settings
        self._client: Optional[BlobServiceClient] = None

    async def _get_client(self) -> BlobServiceClient:
        """
        Get or create BlobServiceClient.

        Raises:
            StorageError: If client creation fails
        """
        if self._client is not None:
            return self._client

        try:
            if self._settings.use_managed_identity and self._settings.account_name:
                account_url = f"https://{self._settings.account_name}.blob.core.windows.net"
                credential = DefaultAzureCredential()
                self._client = BlobServiceClient(account_url=account_url, credential=credential)
                logger.info(f"Created BlobServiceClient with Managed Identity: {self._settings.account_name}")
            elif self._settings.connection_string:
                self._client = BlobServiceClient.from_connection_string(self._settings.connection_string)
                logger.info("Created BlobServiceClient with connection string")
            else:
                raise StorageError(
                    "Storage not configured. Set STORAGE_ACCOUNT_NAME and either "
                    "STORAGE_USE_MANAGED_IDENTITY or STORAGE_CONNECTION_STRING"
                )
            return self._client
        except StorageError:
            raise
        except Exception as e:
            logger.error(f"Failed to create BlobServiceClient: {e}", exc_info=True)
            raise StorageError(f"Failed to initialize storage client: {str(e)}") from e

    async def _blob_client(self, key: str):
        client = await self._get_client()
        return client.get_container_client(self._settings.container_name).get_blob_client(key)

    async def read_file(self, key: str) -> bytes:
        blob_client = await self._blob_client(key)
        try:
            download_stream = await blob_client.download_blob()
            data = await download_stream.readall()
        except ResourceNotFoundError as e:
            raise NotFoundError("File", key) from e
        except AzureError as e:
            logger.error(f"Azure Storage error downloading file: {key} - {e}", exc_info=True)
            raise StorageError(f"Failed to download file from storage: {str(e)}", key=key) from e

        logger.info(f"Downloaded file: {key}, size={len(data)} bytes")
        return data

    async def write_file(self, key: str, mimetype: str, data: bytes) -> None:
        blob_client = await self._blob_client(key)
        try:
            await blob_client.upload_blob(
                data,
                overwrite=True,
                content_settings=ContentSettings(content_type=mimetype),
            )
        except AzureError as e:
            logger.error(f"Azure Storage error uploading file: {key} - {e}", exc_info=True)
            raise StorageError(f"Failed to upload file to storage: {str(e)}", key=key) from e

        logger.info(f"Uploaded file: {key}, size={len(data)} bytes")

    async def delete_file(self, key: str) -> None:
        blob_client = await self._blob_client(key)
        try:
            await blob_client.delete_blob()
        except ResourceNotFoundError as e:
            raise NotFoundError("File", key) from e
        except AzureError as e:
            logger.error(f"Azure Storage error deleting file: {key} - {e}", exc_info=True)
            raise StorageError(f"Failed to delete file from storage: {str(e)}", key=key) from e

        logger.info(f"Deleted file: {key}")

    async def close(self) -> None:
        """Close storage client."""
        if self._client:
            try:
                await self._client.close()
                self._client = None
                logger.info("Storage client closed")
            except Exception as e:
                logger.error(f"Error closing storage client: {e}", exc_info=True)


def create_file_storage(settings: Optional[StorageSettings] = None) -> FileStorage:
    """Build the file storage selected by ``STORAGE_BACKEND``."""
    settings = settings or get_settings().storage
    if settings.backend == StorageBackend.AZURE:
        return AzureBlobFileStorage(settings)
    return LocalFileStorage(settings.local_root)
