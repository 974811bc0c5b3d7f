"""Concurrent embedding of a document's chunks."""

import asyncio
from typing import Awaitable, Callable, List, Optional, Sequence

from document_retrieval.models.chunk import DocumentChunk
from document_retrieval.utils.errors import EmbeddingError
from document_retrieval.utils.logging import get_logger

logger = get_logger("embedding_fanout")

EmbedFunction = Callable[[str], Awaitable[List[float]]]


async def embed_chunks(
    chunks: Sequence[DocumentChunk],
    embed: EmbedFunction,
    max_concurrency: Optional[int] = None,
    dimension: Optional[int] = None,
) -> None:
    """
    Embed every chunk concurrently and attach the vectors in place.

    One request is issued per chunk and all of them are awaited together.
    If any request fails the whole batch fails and no chunk is modified;
    the other requests still run to completion and their vectors are dropped.

    Args:
        chunks: Chunks to embed
        embed: Async embedding function
        max_concurrency: Cap on in-flight requests (None = unbounded)
        dimension: Expected vector length, if known

    Raises:
        EmbeddingError: For the lowest-index chunk that failed or returned
            an unusable vector
    """
    if not chunks:
        return

    semaphore = asyncio.Semaphore(max_concurrency) if max_concurrency else None

    async def embed_one(chunk: DocumentChunk) -> List[float]:
        if semaphore is None:
            return await embed(chunk.content)
        async with semaphore:
            return await embed(chunk.content)

    results = await asyncio.gather(
        *(embed_one(chunk) for chunk in chunks), return_exceptions=True
    )

    vectors: List[List[float]] = []
    for chunk, result in zip(chunks, results):
        details = {"chunk_index": chunk.index, "document_id": chunk.document_id}
        if isinstance(result, BaseException):
            if not isinstance(result, Exception):
                raise result
            logger.error(f"Embedding failed for chunk {chunk.index} of document {chunk.document_id}: {result}")
            if isinstance(result, EmbeddingError):
                result.details.update(details)
                raise result
            raise EmbeddingError(f"Embedding request failed: {result}", details=details) from result

        if not result:
            raise EmbeddingError("Embedding vector is empty", details=details)
        if dimension is not None and len(result) != dimension:
            raise EmbeddingError(
                "Embedding dimension mismatch",
                details={**details, "expected_dimension": dimension, "actual_dimension": len(result)},
            )
        vectors.append(list(result))

    for chunk, vector in zip(chunks, vectors):
        chunk.embedding = vector

    logger.debug(f"Embedded {len(chunks)} chunks of document {chunks[0].document_id}")
