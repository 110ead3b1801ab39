"""
Unit tests for the JSON document store.

Tests livetex.contexts.documents.store.DocumentStore.
"""

import json

import pytest

from livetex.contexts.documents.store import (
    DEFAULT_TITLE,
    DocumentNotFoundError,
    DocumentStore,
    PersistenceFailure,
    default_document,
)


@pytest.fixture
def store(tmp_path):
    return DocumentStore(tmp_path / "documents.json")


class TestSave:
    """Creating and updating documents."""

    @pytest.mark.unit
    def test_create_assigns_id_and_timestamps(self, store):
        doc = store.save_document("\\section{A}", title="Notes")

        assert doc.id.startswith("doc_")
        assert doc.title == "Notes"
        assert doc.created_at == doc.updated_at
        assert store.get_document(doc.id) == doc

    @pytest.mark.unit
    def test_create_without_title_uses_default(self, store):
        assert store.save_document("x").title == DEFAULT_TITLE

    @pytest.mark.unit
    def test_update_keeps_id_and_created_at(self, store):
        doc = store.save_document("v1", title="Notes")
        updated = store.save_document("v2", doc_id=doc.id)

        assert updated.id == doc.id
        assert updated.title == "Notes"
        assert updated.content == "v2"
        assert updated.created_at == doc.created_at
        assert updated.updated_at >= doc.updated_at
        assert len(store.list_documents()) == 1

    @pytest.mark.unit
    def test_update_unknown_id_raises(self, store):
        with pytest.raises(DocumentNotFoundError):
            store.save_document("x", doc_id="doc_missing")

    @pytest.mark.unit
    def test_write_failure_raises_persistence_failure(self, tmp_path):
        blocker = tmp_path / "not_a_dir"
        blocker.write_text("file in the way")
        store = DocumentStore(blocker / "documents.json")

        with pytest.raises(PersistenceFailure):
            store.save_document("x")

    @pytest.mark.unit
    def test_file_is_a_json_list(self, store):
        store.save_document("x", title="T")

        raw = json.loads(store.path.read_text())
        assert isinstance(raw, list)
        assert set(raw[0]) == {"id", "title", "content", "created_at", "updated_at"}


class TestRead:
    """Listing, lookup and tolerance of bad files."""

    @pytest.mark.unit
    def test_missing_file_is_empty(self, store):
        assert store.list_documents() == []
        assert store.get_document("doc_x") is None

    @pytest.mark.unit
    def test_list_most_recent_first(self, store):
        first = store.save_document("1", title="first")
        second = store.save_document("2", title="second")
        store.save_document("1 again", doc_id=first.id)

        assert [d.id for d in store.list_documents()] == [first.id, second.id]

    @pytest.mark.unit
    def test_corrupt_file_is_empty(self, store):
        store.path.write_text("{not json")

        assert store.list_documents() == []

    @pytest.mark.unit
    def test_corrupt_file_is_kept_as_backup(self, store):
        store.path.write_text('[{"id": "doc_1", "title": "Lost?"')

        assert store.list_documents() == []
        backups = list(store.path.parent.glob("documents.json.corrupt-*"))
        assert len(backups) == 1
        assert backups[0].read_text() == '[{"id": "doc_1", "title": "Lost?"'

        doc = store.save_document("fresh")
        assert [d.id for d in store.list_documents()] == [doc.id]
        assert backups[0].exists()

    @pytest.mark.unit
    def test_non_list_file_is_kept_as_backup(self, store):
        store.path.write_text(json.dumps({"doc_1": "content"}))

        assert store.get_document("doc_1") is None
        assert not store.path.exists()
        assert len(list(store.path.parent.glob("documents.json.corrupt-*"))) == 1

    @pytest.mark.unit
    def test_repeated_corruption_keeps_every_backup(self, store):
        for content in ("{first", "{second"):
            store.path.write_text(content)
            store.list_documents()

        backups = sorted(p.read_text() for p in store.path.parent.glob("documents.json.corrupt-*"))
        assert backups == ["{first", "{second"]

    @pytest.mark.unit
    def test_malformed_entries_are_skipped(self, store):
        good = {
            "id": "doc_1",
            "title": "ok",
            "content": "x",
            "created_at": "2025-01-01T00:00:00",
            "updated_at": "2025-01-01T00:00:00",
        }
        store.path.write_text(json.dumps([good, {"id": "doc_2"}]))

        assert [d.id for d in store.list_documents()] == ["doc_1"]


class TestDelete:
    @pytest.mark.unit
    def test_delete(self, store):
        doc = store.save_document("x")

        assert store.delete_document(doc.id) is True
        assert store.get_document(doc.id) is None

    @pytest.mark.unit
    def test_delete_missing_returns_false(self, store):
        assert store.delete_document("doc_missing") is False


@pytest.mark.unit
def test_default_document_template():
    template = default_document()

    assert template["title"] == DEFAULT_TITLE
    assert "\\newtheorem{theorem}" in template["content"]
    assert template["content"].rstrip().endswith("\\end{document}")
