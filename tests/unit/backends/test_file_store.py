"""Tests for the JSON file store and the in-memory store."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any
from unittest.mock import patch

import pytest

from geocatalog.backends import JsonFileStore, MemoryStore
from geocatalog.backends.json_file import TRASH_DIR, write_json_atomic
from geocatalog.errors import InvalidIdentifierError, StoreError


def collection_record(cid: str, item_ids: list[str]) -> dict[str, Any]:
    return {
        "type": "Collection",
        "id": cid,
        "links": [{"rel": "item", "href": f"./items/{iid}.json"} for iid in item_ids],
    }


def item_record(iid: str) -> dict[str, Any]:
    return {"type": "Feature", "id": iid, "properties": {}}


class TestWriteJsonAtomic:
    """Tests for atomic JSON writes."""

    @pytest.mark.unit
    def test_creates_parents(self, tmp_path: Path) -> None:
        """Missing parent directories are created."""
        path = tmp_path / "a" / "b" / "c.json"
        write_json_atomic(path, {"x": 1})
        assert json.loads(path.read_text()) == {"x": 1}

    @pytest.mark.unit
    def test_failure_keeps_previous_content(self, tmp_path: Path) -> None:
        """A failed replace leaves the old file and no temp files."""
        path = tmp_path / "c.json"
        write_json_atomic(path, {"v": 1})
        with patch("geocatalog.backends.json_file.os.replace", side_effect=OSError("boom")):
            with pytest.raises(OSError):
                write_json_atomic(path, {"v": 2})
        assert json.loads(path.read_text()) == {"v": 1}
        assert [p.name for p in tmp_path.iterdir()] == ["c.json"]


class TestJsonFileStore:
    """Tests for JsonFileStore layout and loading."""

    @pytest.mark.unit
    def test_empty_root(self, tmp_path: Path) -> None:
        """A root without collections loads as empty."""
        assert JsonFileStore(tmp_path).load() == []

    @pytest.mark.unit
    def test_layout(self, tmp_path: Path) -> None:
        """Records land under collections/<id>/."""
        store = JsonFileStore(tmp_path)
        store.write_collection(collection_record("sat-2024", ["I1"]))
        store.write_item("sat-2024", item_record("I1"))
        base = tmp_path / "collections" / "sat-2024"
        assert (base / "collection.json").is_file()
        assert (base / "items" / "I1.json").is_file()

    @pytest.mark.unit
    def test_items_follow_link_order(self, tmp_path: Path) -> None:
        """Items load in item-link order, unlinked items last."""
        store = JsonFileStore(tmp_path)
        store.write_collection(collection_record("c", ["b", "a"]))
        for iid in ("a", "b", "orphan"):
            store.write_item("c", item_record(iid))

        [record] = store.load()
        assert [item["id"] for item in record["items"]] == ["b", "a", "orphan"]

    @pytest.mark.unit
    def test_delete_item_missing_is_ok(self, tmp_path: Path) -> None:
        """Deleting an absent item file is not an error."""
        JsonFileStore(tmp_path).delete_item("c", "nope")

    @pytest.mark.unit
    def test_delete_collection(self, tmp_path: Path) -> None:
        """A deleted collection disappears and leaves no trash."""
        store = JsonFileStore(tmp_path)
        store.write_collection(collection_record("c", []))
        store.delete_collection("c")
        assert store.load() == []
        assert list((tmp_path / TRASH_DIR).iterdir()) == []

    @pytest.mark.unit
    def test_failed_rename_keeps_collection(self, tmp_path: Path) -> None:
        """If the move to trash fails, the collection is untouched."""
        store = JsonFileStore(tmp_path)
        store.write_collection(collection_record("c", []))
        with patch("geocatalog.backends.json_file.os.replace", side_effect=OSError("busy")):
            with pytest.raises(StoreError, match="busy"):
                store.delete_collection("c")
        assert [record["collection"]["id"] for record in store.load()] == ["c"]

    @pytest.mark.unit
    def test_trash_purged_on_load(self, tmp_path: Path) -> None:
        """Leftovers of an interrupted delete are removed on load."""
        leftover = tmp_path / TRASH_DIR / "c-1234"
        (leftover / "items").mkdir(parents=True)
        (leftover / "collection.json").write_text("{}")
        JsonFileStore(tmp_path).load()
        assert not leftover.exists()

    @pytest.mark.unit
    def test_corrupt_json(self, tmp_path: Path) -> None:
        """Unreadable files raise StoreError."""
        path = tmp_path / "collections" / "c" / "collection.json"
        path.parent.mkdir(parents=True)
        path.write_text("{not json")
        with pytest.raises(StoreError, match="Failed to read"):
            JsonFileStore(tmp_path).load()

    @pytest.mark.unit
    def test_directory_without_collection_file_skipped(self, tmp_path: Path) -> None:
        """Stray directories are ignored."""
        (tmp_path / "collections" / "stray").mkdir(parents=True)
        assert JsonFileStore(tmp_path).load() == []

    @pytest.mark.unit
    def test_rejects_path_like_ids(self, tmp_path: Path) -> None:
        """Ids that could escape the layout are refused."""
        with pytest.raises(InvalidIdentifierError):
            JsonFileStore(tmp_path).write_item("c", item_record(".."))


class TestMemoryStore:
    """Tests for MemoryStore."""

    @pytest.mark.unit
    def test_records_are_copied(self) -> None:
        """Mutating a written or loaded dict does not change the store."""
        store = MemoryStore()
        record = collection_record("c", [])
        store.write_collection(record)
        record["title"] = "changed"
        loaded = store.load()[0]["collection"]
        assert "title" not in loaded
        loaded["title"] = "changed again"
        assert "title" not in store.load()[0]["collection"]

    @pytest.mark.unit
    def test_delete_collection_drops_items(self) -> None:
        """Deleting a collection removes its items."""
        store = MemoryStore()
        store.write_collection(collection_record("c", ["I1"]))
        store.write_item("c", item_record("I1"))
        store.delete_collection("c")
        store.write_collection(collection_record("c", []))
        assert store.load()[0]["items"] == []
