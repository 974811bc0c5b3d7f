"""Document manager: ingestion pipeline and filtered retrieval."""

import asyncio
import uuid
import weakref
from typing import Any, Dict, List, Optional, Sequence, Union

from document_retrieval.models.chunk import DocumentChunk, DocumentChunkFilters
from document_retrieval.models.document import Document, DocumentFilters, DocumentUpdate
from document_retrieval.repositories.document_chunk_repository import DocumentChunkRepository
from document_retrieval.repositories.document_repository import DocumentRepository
from document_retrieval.services.chunking_service import ChunkingService
from document_retrieval.services.embedding_fanout import EmbedFunction, embed_chunks
from document_retrieval.services.parser_service import ParserService
from document_retrieval.services.storage_service import FileStorage
from document_retrieval.utils.errors import NotFoundError, RetrievalException, ValidationError
from document_retrieval.utils.logging import get_logger, log_error

logger = get_logger("document_manager")


class DocumentManager:
    """
    Orchestrates document ingestion and retrieval.

    Ingestion reads the raw bytes, extracts text, chunks it, embeds every
    chunk concurrently, bulk-inserts the chunks and marks the document
    processed. Retrieval embeds a text query when needed and ranks chunks by
    similarity under optional document/chat/project/user filters.
    """

    def __init__(
        self,
        document_repository: DocumentRepository,
        document_chunk_repository: DocumentChunkRepository,
        file_storage: FileStorage,
        embed: EmbedFunction,
        parser: Optional[ParserService] = None,
        chunking_service: Optional[ChunkingService] = None,
        max_documents_per_user: int = 10,
        embedding_max_concurrency: Optional[int] = None,
        embedding_dimension: Optional[int] = None,
        default_limit: int = 5,
    ):
        """
        Initialize the document manager.

        Args:
            document_repository: Document store
            document_chunk_repository: Chunk store
            file_storage: Raw document bytes
            embed: Async ``embed(text) -> vector`` collaborator
            parser: Text extractor
            chunking_service: Window/overlap chunker
            max_documents_per_user: Upload quota per user
            embedding_max_concurrency: Cap on in-flight embedding requests per document
            embedding_dimension: Expected vector length, checked before persisting
            default_limit: Chunks returned when a query gives no limit
        """
        self.document_repository = document_repository
        self.document_chunk_repository = document_chunk_repository
        self.file_storage = file_storage
        self.embed = embed
        self.parser = parser or ParserService()
        self.chunking_service = chunking_service or ChunkingService()
        self.max_documents_per_user = max_documents_per_user
        self.embedding_max_concurrency = embedding_max_concurrency
        self.embedding_dimension = embedding_dimension
        self.default_limit = default_limit
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()

    def _lock_for(self, document_id: str) -> asyncio.Lock:
        lock = self._locks.get(document_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[document_id] = lock
        return lock

    async def process_document(self, document_id: str) -> None:
        """
        Chunk, embed and persist a document, then mark it processed.

        Concurrent calls for the same document run one at a time; a call that
        finds the document already processed does nothing.

        Raises:
            NotFoundError: If the document or its bytes do not exist
            EmbeddingError: If any chunk fails to embed (nothing is persisted)
        """
        lock = self._lock_for(document_id)
        async with lock:
            document = await self.document_repository.find_one(DocumentFilters(id=document_id))
            if document is None:
                raise NotFoundError("Document", document_id)

            if document.is_processed:
                logger.info(f"Document {document_id} already processed; skipping")
                return

            text = await self._extract_content(document)
            chunks = self.chunking_service.chunk_document(document.id, text)

            await embed_chunks(
                chunks,
                self.embed,
                max_concurrency=self.embedding_max_concurrency,
                dimension=self.embedding_dimension,
            )
            # chunks left behind by an interrupted run would collide on (document_id, index)
            stale = await self.document_chunk_repository.delete_all(document.id)
            if stale:
                logger.warning(f"Removed {stale} stale chunks of document {document_id}")

            await self.document_chunk_repository.create_all(chunks)
            try:
                await self.document_repository.update(document.id, DocumentUpdate(is_processed=True))
            except Exception:
                await self._discard_chunks(document.id)
                raise

            logger.info(f"Processed document {document_id}: chunks={len(chunks)}")

    async def get_relevant_document_chunks(
        self,
        query: Union[str, Sequence[float]],
        limit: Optional[int] = None,
        filters: Optional[DocumentChunkFilters] = None,
    ) -> List[DocumentChunk]:
        """
        Rank chunks by similarity to ``query``.

        Args:
            query: Query text (embedded first) or a query embedding
            limit: Maximum chunks returned (defaults to the configured limit)
            filters: Optional chunk filters; ``include_document`` attaches owners

        Returns:
            Chunks ordered by score, highest first
        """
        if isinstance(query, str):
            if not query.strip():
                raise ValidationError("Query text must not be empty")
            embedding = await self.embed(query)
        else:
            embedding = list(query)

        return await self.document_chunk_repository.find_relevant(
            embedding,
            self.default_limit if limit is None else limit,
            filters,
        )

    async def get_documents(self, ids: Sequence[str], include_content: bool = False) -> List[Document]:
        """Get documents by ID, oldest first."""
        if not ids:
            return []
        documents = await self.document_repository.find_all(DocumentFilters(ids=list(ids)))
        return await self._with_content(documents, include_content)

    async def get_chat_documents(
        self,
        chat_id: str,
        project_id: Optional[str] = None,
        include_content: bool = False,
    ) -> List[Document]:
        """Get documents attached to a chat, or to the project the chat belongs to."""
        if project_id is None:
            documents = await self.document_repository.find_all(DocumentFilters(chat_id=chat_id))
        else:
            documents = await self.document_repository.find_any(
                DocumentFilters(chat_id=chat_id, project_id=project_id)
            )
        return await self._with_content(documents, include_content)

    async def get_document(
        self,
        document_id: str,
        user_id: Optional[str] = None,
        include_content: bool = False,
    ) -> Optional[Document]:
        """Get a document, optionally only if ``user_id`` owns it."""
        document = await self.document_repository.find_one(self._owned_filters(document_id, user_id))
        if document is None:
            return None
        documents = await self._with_content([document], include_content)
        return documents[0]

    async def create_document(
        self,
        name: str,
        mimetype: str,
        data: bytes,
        user_id: str,
        chat_id: Optional[str] = None,
        project_id: Optional[str] = None,
    ) -> Document:
        """
        Store an uploaded document.

        Documents attached to a project are processed immediately; if that
        fails the record and its bytes are removed again before the error
        is re-raised.

        Raises:
            ValidationError: If both chat and project are given or the user's
                quota is used up
        """
        if chat_id is not None and project_id is not None:
            raise ValidationError(
                "A document can belong to a chat or a project, not both",
                details={"chat_id": chat_id, "project_id": project_id},
            )

        owned = await self.document_repository.count(DocumentFilters(user_id=user_id))
        if owned >= self.max_documents_per_user:
            raise ValidationError(
                f"Document limit of {self.max_documents_per_user} reached",
                details={"user_id": user_id, "limit": self.max_documents_per_user},
            )

        document_id = str(uuid.uuid4())
        document = Document(
            id=document_id,
            key=f"documents/{user_id}/{document_id}",
            name=name,
            mimetype=mimetype,
            size_in_bytes=len(data),
            chat_id=chat_id,
            project_id=project_id,
            user_id=user_id,
        )

        await self.file_storage.write_file(document.key, document.mimetype, data)
        try:
            await self.document_repository.create(document)
        except Exception:
            await self._discard_file(document.key)
            raise
        logger.info(f"Created document {document.id}: name={name}, size={len(data)} bytes")

        if project_id is not None:
            try:
                await self.process_document(document.id)
            except Exception:
                await self._discard_document(document)
                raise

        created = await self.document_repository.find_one(DocumentFilters(id=document.id))
        return created or document

    async def update_document(self, document_id: str, changes: DocumentUpdate) -> Document:
        """
        Apply a partial update and return the updated document.

        Raises:
            NotFoundError: If the document does not exist
            ValidationError: If the result would belong to a chat and a project
        """
        document = await self.document_repository.find_one(DocumentFilters(id=document_id))
        if document is None:
            raise NotFoundError("Document", document_id)

        present = changes.model_fields_set
        chat_id = changes.chat_id if "chat_id" in present else document.chat_id
        project_id = changes.project_id if "project_id" in present else document.project_id
        if chat_id is not None and project_id is not None:
            raise ValidationError(
                "A document can belong to a chat or a project, not both",
                details={"chat_id": chat_id, "project_id": project_id},
            )

        if not await self.document_repository.update(document_id, changes):
            raise NotFoundError("Document", document_id)

        updated = await self.document_repository.find_one(DocumentFilters(id=document_id))
        if updated is None:
            raise NotFoundError("Document", document_id)
        return updated

    async def delete_document(self, document_id: str, user_id: Optional[str] = None) -> None:
        """
        Delete a document's bytes and record; its chunks cascade.

        Raises:
            NotFoundError: If no such document is visible to ``user_id``
        """
        document = await self.document_repository.find_one(self._owned_filters(document_id, user_id))
        if document is None:
            raise NotFoundError("Document", document_id)

        try:
            await self.file_storage.delete_file(document.key)
        except NotFoundError:
            logger.warning(f"File for document {document_id} was already missing: {document.key}")

        await self.document_repository.delete(document.id)
        logger.info(f"Deleted document {document_id}")

    @staticmethod
    def _owned_filters(document_id: str, user_id: Optional[str]) -> DocumentFilters:
        values: Dict[str, Any] = {"id": document_id}
        if user_id is not None:
            values["user_id"] = user_id
        return DocumentFilters(**values)

    async def _extract_content(self, document: Document) -> str:
        data = await self.file_storage.read_file(document.key)
        return await self.parser.extract_text(data, document.mimetype)

    async def _with_content(self, documents: List[Document], include_content: bool) -> List[Document]:
        if include_content:
            for document in documents:
                document.content = await self._extract_content(document)
        return documents

    async def _discard_file(self, key: str) -> None:
        try:
            await self.file_storage.delete_file(key)
        except RetrievalException as e:
            log_error(e, {"key": key, "action": "discard_file"})

    async def _discard_chunks(self, document_id: str) -> None:
        try:
            await self.document_chunk_repository.delete_all(document_id)
        except RetrievalException as e:
            log_error(e, {"document_id": document_id, "action": "discard_chunks"})

    async def _discard_document(self, document: Document) -> None:
        try:
            await self.document_repository.delete(document.id)
        except RetrievalException as e:
            log_error(e, {"document_id": document.id, "action": "discard_document"})
        await self._discard_file(document.key)
