import pytest

from document_retrieval.services.chunking_service import ChunkingService
from document_retrieval.utils.errors import ChunkingError


def words(count):
    return " ".join(f"w{i}" for i in range(count))


def test_indices_are_contiguous_from_zero():
    svc = ChunkingService(chunk_size=20, chunk_overlap=5)
    chunks = svc.chunk_document("doc-1", words(200))
    assert len(chunks) > 1
    assert [c.index for c in chunks] == list(range(len(chunks)))
    assert all(c.document_id == "doc-1" for c in chunks)
    assert all(c.embedding == [] for c in chunks)


def test_window_starts_and_overlap():
    svc = ChunkingService(chunk_size=10, chunk_overlap=3)
    chunks = svc.chunk_document("doc-1", words(25))

    assert [c.content.split()[0] for c in chunks] == ["w0", "w7", "w14", "w21"]
    assert "w7" in chunks[0].content.split()
    assert "w7" in chunks[1].content.split()
    assert chunks[-1].content == "w21 w22 w23 w24"


def test_chunking_is_deterministic_apart_from_ids():
    svc = ChunkingService(chunk_size=10, chunk_overlap=3)
    first = svc.chunk_document("doc-1", words(50))
    second = svc.chunk_document("doc-1", words(50))
    assert [(c.index, c.content) for c in first] == [(c.index, c.content) for c in second]
    assert {c.id for c in first}.isdisjoint({c.id for c in second})


@pytest.mark.parametrize("text", ["", "   ", "\n\t  \n", None])
def test_empty_text_yields_no_chunks(text):
    svc = ChunkingService(chunk_size=10, chunk_overlap=3)
    assert svc.chunk_document("doc-1", text) == []


def test_whitespace_runs_collapse_to_single_spaces():
    svc = ChunkingService(chunk_size=10, chunk_overlap=3)
    chunks = svc.chunk_document("doc-1", "  alpha\n\n beta\tgamma  ")
    assert len(chunks) == 1
    assert chunks[0].content == "alpha beta gamma"


def test_per_call_overrides():
    svc = ChunkingService(chunk_size=10, chunk_overlap=3)
    chunks = svc.chunk_document("doc-1", words(6), chunk_size=2, chunk_overlap=0)
    assert [c.content for c in chunks] == ["w0 w1", "w2 w3", "w4 w5"]


@pytest.mark.parametrize(
    "chunk_size, chunk_overlap",
    [(10, 10), (10, 12), (0, 0), (-1, 0), (10, -1)],
)
def test_invalid_window_is_rejected(chunk_size, chunk_overlap):
    with pytest.raises(ChunkingError):
        ChunkingService(chunk_size=chunk_size, chunk_overlap=chunk_overlap)


def test_invalid_override_is_rejected():
    svc = ChunkingService(chunk_size=10, chunk_overlap=3)
    with pytest.raises(ChunkingError):
        svc.chunk_document("doc-1", words(5), chunk_overlap=10)


def test_defaults_come_from_settings(monkeypatch, mock_settings):
    monkeypatch.setattr(
        "document_retrieval.services.chunking_service.get_settings", lambda: mock_settings
    )
    svc = ChunkingService()
    assert (svc.chunk_size, svc.chunk_overlap) == (10, 3)
