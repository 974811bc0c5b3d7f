"""Tests for file storage."""

import pytest

from document_retrieval.config import StorageSettings
from document_retrieval.services.storage_service import (
    AzureBlobFileStorage,
    LocalFileStorage,
    create_file_storage,
)
from document_retrieval.utils.errors import NotFoundError, StorageError


class TestLocalFileStorage:
    """Test suite for LocalFileStorage."""

    @pytest.mark.asyncio
    async def test_write_then_read(self, tmp_path):
        storage = LocalFileStorage(str(tmp_path))

        await storage.write_file("documents/u1/d1", "text/plain", b"hello")

        assert (tmp_path / "documents" / "u1" / "d1").read_bytes() == b"hello"
        assert await storage.read_file("documents/u1/d1") == b"hello"

    @pytest.mark.asyncio
    async def test_write_replaces_existing_bytes(self, tmp_path):
        storage = LocalFileStorage(str(tmp_path))

        await storage.write_file("k", "text/plain", b"old")
        await storage.write_file("k", "text/plain", b"new")

        assert await storage.read_file("k") == b"new"

    @pytest.mark.asyncio
    async def test_read_missing_file(self, tmp_path):
        storage = LocalFileStorage(str(tmp_path))

        with pytest.raises(NotFoundError):
            await storage.read_file("documents/missing")

    @pytest.mark.asyncio
    async def test_delete_file(self, tmp_path):
        storage = LocalFileStorage(str(tmp_path))
        await storage.write_file("k", "text/plain", b"x")

        await storage.delete_file("k")

        assert not (tmp_path / "k").exists()
        with pytest.raises(NotFoundError):
            await storage.delete_file("k")

    @pytest.mark.asyncio
    async def test_delete_files_skips_missing_keys(self, tmp_path):
        storage = LocalFileStorage(str(tmp_path))
        await storage.write_file("a", "text/plain", b"x")
        await storage.write_file("b", "text/plain", b"y")

        await storage.delete_files(["a", "gone", "b"])

        assert list(tmp_path.iterdir()) == []

    @pytest.mark.asyncio
    async def test_keys_cannot_escape_root(self, tmp_path):
        storage = LocalFileStorage(str(tmp_path / "root"))

        with pytest.raises(StorageError):
            await storage.write_file("../outside", "text/plain", b"x")


class TestCreateFileStorage:
    """Test suite for backend selection."""

    def test_local_backend(self, tmp_path):
        storage = create_file_storage(StorageSettings(backend="local", local_root=str(tmp_path)))
        assert isinstance(storage, LocalFileStorage)
        assert storage.root == tmp_path.resolve()

    def test_azure_backend(self):
        storage = create_file_storage(
            StorageSettings(backend="azure", account_name="acct", use_managed_identity=True)
        )
        assert isinstance(storage, AzureBlobFileStorage)

    @pytest.mark.asyncio
    async def test_unconfigured_azure_backend_fails_on_use(self):
        storage = AzureBlobFileStorage(
            StorageSettings(backend="azure", account_name=None, connection_string=None)
        )

        with pytest.raises(StorageError, match="not configured"):
            await storage.read_file("k")
