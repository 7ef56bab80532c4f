"""CatalogStore protocol for pluggable catalog persistence.

The repository keeps the authoritative object graph in memory and writes
every change through a store. Stores exchange plain STAC dicts, so they
never see model objects or locks.

Thread Safety:
    The repository serialises writes per collection and holds the registry
    lock for collection create/delete, so stores only need to tolerate
    concurrent writes to *different* collections.

Example usage for plugin authors:
    # In plugin pyproject.toml:
    [project.entry-points."geocatalog.stores"]
    postgres = "geocatalog_pg:PostgresStore"

    # In geocatalog_pg/__init__.py:
    class PostgresStore:
        def __init__(self, *, root=None, **options): ...
        def load(self) -> list[StoredCollection]: ...
        # ... implement all protocol methods
"""

from __future__ import annotations

from typing import Any, Protocol, TypedDict, runtime_checkable


class StoredCollection(TypedDict):
    """A collection as read back from a store.

    Attributes:
        collection: STAC Collection dict (item links give membership order).
        items: STAC Item dicts belonging to the collection, in any order.
    """

    collection: dict[str, Any]
    items: list[dict[str, Any]]


@runtime_checkable
class CatalogStore(Protocol):
    """Protocol for catalog persistence backends.

    All write methods either complete or leave the previously stored state
    readable; ``delete_collection`` in particular must never leave a
    collection half-deleted in a way that ``load`` would return.
    """

    def load(self) -> list[StoredCollection]:
        """Read every stored collection with its items.

        Raises:
            StoreError: If stored data cannot be read.
        """
        ...

    def write_collection(self, data: dict[str, Any]) -> None:
        """Create or replace a collection record (keyed by ``data["id"]``)."""
        ...

    def write_item(self, collection_id: str, data: dict[str, Any]) -> None:
        """Create or replace an item record inside a collection."""
        ...

    def delete_item(self, collection_id: str, item_id: str) -> None:
        """Delete an item record. Deleting a missing item is a no-op."""
        ...

    def delete_collection(self, collection_id: str) -> None:
        """Delete a collection and all of its items as one unit.

        Raises:
            StoreError: If the deletion did not happen. A failed delete
                leaves the collection fully present so it can be retried.
        """
        ...

    def close(self) -> None:
        """Release any resources held by the store."""
        ...
