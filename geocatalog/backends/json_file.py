"""File-based catalog store using one JSON document per record.

Layout under the catalog root::

    collections/
        <collection-id>/
            collection.json
            items/
                <item-id>.json
    .trash/                      # collections being deleted

Writes are atomic per file (write to a temp file, then ``os.replace``).
Deleting a collection first renames its directory into ``.trash`` (a single
atomic rename) and only then removes the files, so a crash mid-delete never
leaves a partially populated collection behind. Leftover trash is purged the
next time the store is loaded.
"""

from __future__ import annotations

import json
import logging
import os
import shutil
import tempfile
import uuid
from pathlib import Path
from typing import Any

from geocatalog.backends.protocol import StoredCollection
from geocatalog.errors import StoreError
from geocatalog.models.base import validate_identifier
from geocatalog.models.collection import item_order

logger = logging.getLogger(__name__)

COLLECTIONS_DIR = "collections"
TRASH_DIR = ".trash"
COLLECTION_FILE = "collection.json"
ITEMS_DIR = "items"


def write_json_atomic(path: Path, data: dict[str, Any]) -> None:
    """Write a dict to disk as JSON atomically.

    Creates parent directories if they don't exist.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    content = json.dumps(data, indent=2, ensure_ascii=False) + "\n"

    fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=f".{path.stem}_", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
        os.replace(tmp_path, path)
    except Exception:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise


class JsonFileStore:
    """Store a catalog as a directory tree of STAC JSON files.

    Item files of one collection are independent, so a crash between writing
    an item and rewriting its collection leaves an item file that the
    collection's item links do not mention. ``load`` still returns such items
    (after the ordered ones) so nothing written is silently lost.
    """

    def __init__(self, root: Path | str | None = None, **_options: Any) -> None:
        """Initialize the store.

        Args:
            root: Catalog root directory. If None, uses current directory.
        """
        self._root = Path(root) if root is not None else Path.cwd()

    @property
    def root(self) -> Path:
        return self._root

    def _collection_dir(self, collection_id: str) -> Path:
        validate_identifier(collection_id, "collection")
        return self._root / COLLECTIONS_DIR / collection_id

    def _item_path(self, collection_id: str, item_id: str) -> Path:
        validate_identifier(item_id, "item")
        return self._collection_dir(collection_id) / ITEMS_DIR / f"{item_id}.json"

    def load(self) -> list[StoredCollection]:
        """Read all collections and their items.

        Raises:
            StoreError: If a file cannot be read or is not valid JSON.
        """
        self._purge_trash()
        base = self._root / COLLECTIONS_DIR
        if not base.is_dir():
            return []

        stored: list[StoredCollection] = []
        for collection_dir in sorted(p for p in base.iterdir() if p.is_dir()):
            collection_file = collection_dir / COLLECTION_FILE
            if not collection_file.is_file():
                logger.warning("Skipping %s: no %s", collection_dir, COLLECTION_FILE)
                continue
            data = _read_json(collection_file)
            items = {
                path.stem: _read_json(path)
                for path in sorted((collection_dir / ITEMS_DIR).glob("*.json"))
            }
            ordered = [items.pop(item_id) for item_id in item_order(data) if item_id in items]
            if items:
                logger.warning(
                    "Collection %s has %d item file(s) without an item link",
                    collection_dir.name,
                    len(items),
                )
            stored.append(StoredCollection(collection=data, items=ordered + list(items.values())))
        logger.debug("Loaded %d collection(s) from %s", len(stored), base)
        return stored

    def write_collection(self, data: dict[str, Any]) -> None:
        path = self._collection_dir(data["id"]) / COLLECTION_FILE
        try:
            write_json_atomic(path, data)
        except OSError as e:
            raise StoreError(f"Failed to write {path}: {e}", path=str(path)) from e
        logger.debug("Wrote %s", path)

    def write_item(self, collection_id: str, data: dict[str, Any]) -> None:
        path = self._item_path(collection_id, data["id"])
        try:
            write_json_atomic(path, data)
        except OSError as e:
            raise StoreError(f"Failed to write {path}: {e}", path=str(path)) from e
        logger.debug("Wrote %s", path)

    def delete_item(self, collection_id: str, item_id: str) -> None:
        path = self._item_path(collection_id, item_id)
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            raise StoreError(f"Failed to delete {path}: {e}", path=str(path)) from e
        logger.debug("Deleted %s", path)

    def delete_collection(self, collection_id: str) -> None:
        """Move the collection into trash atomically, then remove it.

        Raises:
            StoreError: If the rename fails; the collection is untouched.
        """
        source = self._collection_dir(collection_id)
        if not source.exists():
            return
        trash = self._root / TRASH_DIR
        target = trash / f"{collection_id}-{uuid.uuid4().hex}"
        try:
            trash.mkdir(parents=True, exist_ok=True)
            os.replace(source, target)
        except OSError as e:
            raise StoreError(
                f"Failed to delete collection '{collection_id}': {e}",
                collection_id=collection_id,
            ) from e
        # The collection is gone as far as load() is concerned; a failure here
        # only leaves trash for the next purge.
        shutil.rmtree(target, ignore_errors=True)
        logger.debug("Deleted collection directory %s", source)

    def _purge_trash(self) -> None:
        trash = self._root / TRASH_DIR
        if not trash.is_dir():
            return
        for leftover in trash.iterdir():
            logger.info("Purging interrupted delete %s", leftover.name)
            shutil.rmtree(leftover, ignore_errors=True)

    def close(self) -> None:
        pass


def _read_json(path: Path) -> dict[str, Any]:
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise StoreError(f"Failed to read {path}: {e}", path=str(path)) from e
    if not isinstance(data, dict):
        raise StoreError(f"Expected a JSON object in {path}", path=str(path))
    return data
