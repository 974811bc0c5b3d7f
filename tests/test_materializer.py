"""Tests for grouping joined rows into nested entities."""

from types import SimpleNamespace

import pytest

from document_retrieval.repositories.materializer import append_to, assign_to, materialize


def parent(row):
    return SimpleNamespace(id=row["parent_id"], children=None)


def child(row):
    return row["child_id"]


class TestMaterialize:
    """Test suite for materialize."""

    def test_groups_contiguous_rows_and_skips_null_children(self):
        rows = [
            {"parent_id": "p1", "child_id": "c1"},
            {"parent_id": "p1", "child_id": "c2"},
            {"parent_id": "p2", "child_id": None},
            {"parent_id": "p2", "child_id": "c3"},
        ]

        parents = materialize(rows, "parent_id", parent, "child_id", child, append_to("children"))

        assert [p.id for p in parents] == ["p1", "p2"]
        assert parents[0].children == ["c1", "c2"]
        assert parents[1].children == ["c3"]

    def test_parent_without_children_keeps_none(self):
        rows = [{"parent_id": "p1", "child_id": None}]

        parents = materialize(rows, "parent_id", parent, "child_id", child, append_to("children"))

        assert len(parents) == 1
        assert parents[0].children is None

    def test_children_not_requested(self):
        rows = [{"parent_id": "p1"}, {"parent_id": "p2"}]

        parents = materialize(rows, "parent_id", parent)

        assert [p.id for p in parents] == ["p1", "p2"]
        assert all(p.children is None for p in parents)

    def test_preserves_arrival_order(self):
        rows = [{"parent_id": key} for key in ("p3", "p1", "p2")]
        assert [p.id for p in materialize(rows, "parent_id", parent)] == ["p3", "p1", "p2"]

    def test_interleaved_rows_are_rejected(self):
        rows = [
            {"parent_id": "p1", "child_id": "c1"},
            {"parent_id": "p2", "child_id": "c2"},
            {"parent_id": "p1", "child_id": "c3"},
        ]

        with pytest.raises(ValueError, match="not contiguous"):
            materialize(rows, "parent_id", parent, "child_id", child, append_to("children"))

    def test_empty_rows(self):
        assert materialize([], "parent_id", parent) == []

    def test_one_to_one_attach(self):
        rows = [{"parent_id": "chunk-1", "child_id": "doc-1"}]

        parents = materialize(rows, "parent_id", parent, "child_id", child, assign_to("document"))

        assert parents[0].document == "doc-1"
