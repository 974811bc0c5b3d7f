"""Text chunking service for retrieval ingestion."""

import uuid
from typing import List, Optional

from document_retrieval.config import get_settings
from document_retrieval.models.chunk import DocumentChunk
from document_retrieval.utils.errors import ChunkingError
from document_retrieval.utils.logging import get_logger

logger = get_logger("chunking_service")


class ChunkingService:
    """
    Split extracted text into overlapping windows of whitespace tokens.

    Windows start at token 0 and advance by ``chunk_size - chunk_overlap``;
    each window holds up to ``chunk_size`` tokens joined by single spaces and
    the last one may be short.
    """

    def __init__(self, chunk_size: Optional[int] = None, chunk_overlap: Optional[int] = None):
        """
        Initialize the chunking service.

        Args:
            chunk_size: Tokens per window (defaults to settings.chunking.chunk_size)
            chunk_overlap: Tokens shared by consecutive windows
                (defaults to settings.chunking.chunk_overlap)

        Raises:
            ChunkingError: If the window/overlap pair cannot advance
        """
        if chunk_size is None or chunk_overlap is None:
            chunking = get_settings().chunking
            chunk_size = chunking.chunk_size if chunk_size is None else chunk_size
            chunk_overlap = chunking.chunk_overlap if chunk_overlap is None else chunk_overlap

        self.chunk_size, self.chunk_overlap = self._validate(chunk_size, chunk_overlap)

    @staticmethod
    def _validate(chunk_size: int, chunk_overlap: int) -> tuple:
        if chunk_size <= 0:
            raise ChunkingError("chunk_size must be > 0", details={"chunk_size": chunk_size})
        if chunk_overlap < 0:
            raise ChunkingError("chunk_overlap must be >= 0", details={"chunk_overlap": chunk_overlap})
        if chunk_overlap >= chunk_size:
            raise ChunkingError(
                "chunk_overlap must be less than chunk_size",
                details={"chunk_overlap": chunk_overlap, "chunk_size": chunk_size},
            )
        return chunk_size, chunk_overlap

    def chunk_document(
        self,
        document_id: str,
        text: Optional[str],
        chunk_size: Optional[int] = None,
        chunk_overlap: Optional[int] = None,
    ) -> List[DocumentChunk]:
        """
        Chunk a document's text.

        Args:
            document_id: Owning document, copied onto every chunk
            text: Extracted text; empty or whitespace-only yields no chunks
            chunk_size: Override for this call
            chunk_overlap: Override for this call

        Returns:
            Chunks with indices 0..N-1, fresh ids and empty embeddings
        """
        size, overlap = self._validate(
            self.chunk_size if chunk_size is None else chunk_size,
            self.chunk_overlap if chunk_overlap is None else chunk_overlap,
        )

        windows = self.split(text or "", size, overlap)
        chunks = [
            DocumentChunk(
                id=str(uuid.uuid4()),
                index=index,
                content=content,
                document_id=document_id,
            )
            for index, content in enumerate(windows)
        ]

        logger.debug(
            f"Chunked document {document_id}: chunks={len(chunks)}, "
            f"chunk_size={size}, chunk_overlap={overlap}"
        )
        return chunks

    @staticmethod
    def split(text: str, chunk_size: int, chunk_overlap: int) -> List[str]:
        """Window the whitespace tokens of ``text``."""
        # str.split() without arguments drops empty tokens
        tokens = text.split()
        step = chunk_size - chunk_overlap

        windows: List[str] = []
        start = 0
        while start < len(tokens):
            windows.append(" ".join(tokens[start : start + chunk_size]))
            start += step
        return windows
