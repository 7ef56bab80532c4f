"""In-process store for tests and throwaway catalogs."""

from __future__ import annotations

import copy
import logging
import threading
from typing import Any

from geocatalog.backends.protocol import StoredCollection

logger = logging.getLogger(__name__)


class MemoryStore:
    """Keeps deep copies of STAC dicts in a dict; nothing survives the process.

    Records are copied on the way in and out so callers cannot alias stored
    state.
    """

    def __init__(self, **_options: Any) -> None:
        self._collections: dict[str, dict[str, Any]] = {}
        self._items: dict[str, dict[str, dict[str, Any]]] = {}
        self._lock = threading.Lock()

    def load(self) -> list[StoredCollection]:
        with self._lock:
            return [
                StoredCollection(
                    collection=copy.deepcopy(data),
                    items=[copy.deepcopy(item) for item in self._items.get(cid, {}).values()],
                )
                for cid, data in self._collections.items()
            ]

    def write_collection(self, data: dict[str, Any]) -> None:
        with self._lock:
            self._collections[data["id"]] = copy.deepcopy(data)
            self._items.setdefault(data["id"], {})

    def write_item(self, collection_id: str, data: dict[str, Any]) -> None:
        with self._lock:
            self._items.setdefault(collection_id, {})[data["id"]] = copy.deepcopy(data)

    def delete_item(self, collection_id: str, item_id: str) -> None:
        with self._lock:
            self._items.get(collection_id, {}).pop(item_id, None)

    def delete_collection(self, collection_id: str) -> None:
        with self._lock:
            self._collections.pop(collection_id, None)
            self._items.pop(collection_id, None)
        logger.debug("Deleted collection %s from memory store", collection_id)

    def close(self) -> None:
        pass
