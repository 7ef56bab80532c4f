"""Catalog repository: identity, CRUD, uniqueness, cascades, and locking.

The repository owns the in-memory object graph and writes every change
through a :class:`~geocatalog.backends.CatalogStore`. It is constructed
explicitly and opened/closed by the caller (or used as a context manager);
there is no process-wide instance.

Locking:
    - A registry lock guards the collection map. It is taken before any
      collection lock, never after one.
    - Each collection's RLock serialises mutations of that collection, its
      items, and their links. Waits honour ``lock_timeout``.
    - Readers that need a consistent view across collections use
      :meth:`CatalogRepository.snapshot`.

Usage:
    from geocatalog.repository import open_repository

    with open_repository(Path("catalog")) as repo:
        repo.create_collection("sat-2024", title="Satellite scenes 2024")
        repo.create_item("sat-2024", "scene-1", geometry=..., datetime="2024-06-01T00:00:00Z")
"""

from __future__ import annotations

import contextlib
import copy
import logging
import threading
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Union

from geocatalog import graph
from geocatalog import properties as metadata
from geocatalog.backends import CatalogStore, MemoryStore, get_store
from geocatalog.config import ITEM_ID_SCOPES, resolve_settings
from geocatalog.errors import (
    CollectionAlreadyExistsError,
    CollectionNotFoundError,
    ConfigInvalidValueError,
    ConflictError,
    ItemAlreadyExistsError,
    ItemNotFoundError,
    LockTimeoutError,
    StoreError,
    StoreNotOpenError,
    ValidationError,
)
from geocatalog.extent import recompute_extent
from geocatalog.geometry import BBox
from geocatalog.models.analysis import AnalysisResult
from geocatalog.models.collection import DEFAULT_LICENSE, Collection, Provider
from geocatalog.models.item import Asset, Item
from geocatalog.models.link import Link

logger = logging.getLogger(__name__)

Entity = Union[Collection, Item]

# Fields accepted by create_item / update_item
_ITEM_FIELDS = frozenset(
    {
        "geometry",
        "datetime",
        "start_datetime",
        "end_datetime",
        "title",
        "description",
        "assets",
        "properties",
        "links",
    }
)
_ITEM_UPDATABLE = _ITEM_FIELDS - {"properties", "links"}
_TIME_FIELDS = ("datetime", "start_datetime", "end_datetime")
_COLLECTION_UPDATABLE = frozenset(
    {"title", "description", "license", "start_datetime", "end_datetime"}
)

# Mutable state restored when a write-through fails
_ITEM_STATE = (
    "geometry",
    "datetime",
    "start_datetime",
    "end_datetime",
    "title",
    "description",
    "assets",
    "properties",
    "links",
)
_COLLECTION_STATE = (
    "title",
    "description",
    "license",
    "start_datetime",
    "end_datetime",
    "spatial_extent",
    "providers",
    "keywords",
    "links",
    "properties",
)


def _capture(entity: Entity) -> dict[str, Any]:
    names = _COLLECTION_STATE if isinstance(entity, Collection) else _ITEM_STATE
    state = {name: copy.copy(getattr(entity, name)) for name in names}
    state["_updated"] = entity.meta.updated
    if isinstance(entity, Item):
        state["_bbox"] = entity.bbox
    return state


def _restore(entity: Entity, state: dict[str, Any]) -> None:
    state = dict(state)
    entity.meta.updated = state.pop("_updated")
    if isinstance(entity, Item):
        entity.assign_geometry(state.pop("geometry"), state.pop("_bbox"))
    for name, value in state.items():
        setattr(entity, name, value)


@dataclass(frozen=True)
class CollectionSummary:
    """Read-only copy of a collection's searchable fields."""

    stac_id: str
    title: str
    license: str
    keywords: tuple[str, ...]
    provider_names: tuple[str, ...]
    spatial_extent: BBox | None
    start_datetime: Any
    end_datetime: Any
    item_count: int

    @classmethod
    def of(cls, collection: Collection) -> CollectionSummary:
        return cls(
            stac_id=collection.stac_id,
            title=collection.title,
            license=collection.license,
            keywords=tuple(collection.keywords),
            provider_names=tuple(p.name for p in collection.providers),
            spatial_extent=collection.spatial_extent,
            start_datetime=collection.start_datetime,
            end_datetime=collection.end_datetime,
            item_count=len(collection.items),
        )


@dataclass(frozen=True)
class CatalogSnapshot:
    """Consistent point-in-time view of the whole catalog.

    Each collection was copied under its own lock, so no half-applied
    mutation is visible. Items are detached copies; their ``collection``
    attribute still names the owning collection.

    Attributes:
        key: (collection id, internal id, revision) per collection; equal keys
            mean equal contents.
        collections: Collection summaries in registry order.
        items: Item copies, grouped by collection in membership order.
    """

    key: tuple[tuple[str, str, int], ...]
    collections: tuple[CollectionSummary, ...]
    items: tuple[Item, ...]


class CatalogRepository:
    """Authoritative catalog of collections and items.

    Args:
        store: Persistence backend; an in-memory store if omitted.
        item_id_scope: "global" (item ids unique across the catalog) or
            "collection" (unique within a collection). Fixed for the
            repository's lifetime.
        lock_timeout: Default seconds to wait for a lock; None waits forever.
    """

    def __init__(
        self,
        store: CatalogStore | None = None,
        *,
        item_id_scope: str = "global",
        lock_timeout: float | None = None,
    ) -> None:
        if item_id_scope not in ITEM_ID_SCOPES:
            raise ConfigInvalidValueError(
                "item_id_scope", item_id_scope, f"expected one of {', '.join(ITEM_ID_SCOPES)}"
            )
        self._store: CatalogStore = store if store is not None else MemoryStore()
        self._item_id_scope = item_id_scope
        self._lock_timeout = lock_timeout
        self._registry_lock = threading.RLock()
        self._collections: dict[str, Collection] = {}
        # item id -> collection id; maintained only for the global scope
        self._global_ids: dict[str, str] = {}
        self._snapshot: CatalogSnapshot | None = None
        self._is_open = False

    @property
    def item_id_scope(self) -> str:
        return self._item_id_scope

    @property
    def store(self) -> CatalogStore:
        return self._store

    @property
    def is_open(self) -> bool:
        return self._is_open

    # Lifecycle

    def open(self) -> CatalogRepository:
        """Load the stored catalog into memory.

        Raises:
            StoreError: If stored records cannot be read or are inconsistent.
        """
        with self._registry_lock:
            if self._is_open:
                return self
            collections: dict[str, Collection] = {}
            global_ids: dict[str, str] = {}
            for record in self._store.load():
                try:
                    collection = Collection.from_dict(record["collection"])
                    items = [Item.from_dict(data) for data in record["items"]]
                    graph.attach_items(collection, items)
                except (ValidationError, ConflictError) as e:
                    raise StoreError(f"Stored catalog is invalid: {e.message}") from e
                if collection.stac_id in collections:
                    raise StoreError(f"Collection '{collection.stac_id}' is stored twice")
                collections[collection.stac_id] = collection
                if self._item_id_scope == "global":
                    for item in items:
                        if item.stac_id in global_ids:
                            raise StoreError(
                                f"Item id '{item.stac_id}' is stored in both "
                                f"'{global_ids[item.stac_id]}' and '{collection.stac_id}'"
                            )
                        global_ids[item.stac_id] = collection.stac_id
            self._collections = collections
            self._global_ids = global_ids
            self._snapshot = None
            self._is_open = True
        logger.debug(
            "Opened catalog with %d collection(s), item id scope %s",
            len(collections),
            self._item_id_scope,
        )
        return self

    def close(self) -> None:
        """Release the store and drop the in-memory graph."""
        with self._registry_lock:
            if not self._is_open:
                return
            self._store.close()
            self._collections = {}
            self._global_ids = {}
            self._snapshot = None
            self._is_open = False
        logger.debug("Closed catalog")

    def __enter__(self) -> CatalogRepository:
        return self.open()

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _require_open(self) -> None:
        if not self._is_open:
            raise StoreNotOpenError()

    @contextlib.contextmanager
    def _acquire(self, lock: Any, resource: str, timeout: float | None) -> Iterator[None]:
        wait = self._lock_timeout if timeout is None else timeout
        if not lock.acquire(timeout=-1 if wait is None else wait):
            logger.warning("Lock wait on %s exceeded %ss", resource, wait)
            raise LockTimeoutError(resource, wait)
        try:
            yield
        finally:
            lock.release()

    def _locked(self, collection: Collection, timeout: float | None = None) -> Any:
        return self._acquire(collection.lock, collection.stac_id, timeout)

    def _check_live(self, collection: Collection) -> None:
        # A collection deleted while the caller waited for its lock
        if self._collections.get(collection.stac_id) is not collection:
            raise CollectionNotFoundError(collection.stac_id)

    # Persistence helpers

    def _persist_collection(self, collection: Collection) -> None:
        self._store.write_collection(collection.to_dict())

    def _persist_item(self, item: Item) -> None:
        assert item.collection is not None
        self._store.write_item(item.collection.stac_id, item.to_dict())

    def _persist(self, entity: Entity) -> None:
        if isinstance(entity, Collection):
            self._persist_collection(entity)
        else:
            self._persist_item(entity)

    @contextlib.contextmanager
    def _rollback_on_store_error(self, entity: Entity) -> Iterator[None]:
        """Undo in-memory changes to ``entity`` if persisting them fails."""
        state = _capture(entity)
        owner = self._owner(entity)
        owner_updated = owner.meta.updated
        try:
            yield
        except StoreError:
            _restore(entity, state)
            owner.meta.updated = owner_updated
            logger.warning("Store write for %s failed; in-memory change undone", entity.stac_id)
            raise

    # Collections

    def create_collection(
        self,
        stac_id: str,
        *,
        title: str | None = None,
        description: str = "",
        license: str = DEFAULT_LICENSE,
        start_datetime: Any = None,
        end_datetime: Any = None,
        keywords: list[str] | None = None,
        providers: list[Provider] | None = None,
        properties: dict[str, str] | None = None,
        links: list[Link] | None = None,
        timeout: float | None = None,
    ) -> Collection:
        """Create an empty collection.

        Args:
            stac_id: Catalog id; also the title when none is given.

        Raises:
            CollectionAlreadyExistsError: If the id is taken.
            ValidationError: On a malformed id, time range, link or property.
        """
        self._require_open()
        collection = Collection(
            stac_id=stac_id,
            title=title if title is not None else stac_id,
            description=description,
            license=license,
            start_datetime=start_datetime,
            end_datetime=end_datetime,
            keywords=list(keywords or []),
            providers=list(providers or []),
            properties=properties_map(properties),
        )
        for link in links or []:
            graph.add_link(collection, link)

        with self._acquire(self._registry_lock, "catalog", timeout):
            if stac_id in self._collections:
                raise CollectionAlreadyExistsError(stac_id)
            self._persist_collection(collection)
            self._collections[stac_id] = collection
        logger.debug("Created collection %s", stac_id)
        return collection

    def get_collection(self, stac_id: str) -> Collection:
        """Return the live collection.

        Raises:
            CollectionNotFoundError: If no collection has this id.
        """
        self._require_open()
        try:
            return self._collections[stac_id]
        except KeyError:
            raise CollectionNotFoundError(stac_id) from None

    def list_collections(self) -> list[Collection]:
        """All collections in creation order."""
        self._require_open()
        with self._registry_lock:
            return list(self._collections.values())

    def update_collection(
        self, stac_id: str, /, *, timeout: float | None = None, **changes: Any
    ) -> Collection:
        """Change title, description, license, or temporal range.

        Every value is validated before the collection is touched; a store
        failure restores the previous values.

        Raises:
            CollectionNotFoundError: If the collection does not exist.
            ValidationError: On an unknown or immutable field or an invalid value.
            StoreError: If persisting fails; the collection is unchanged.
        """
        unknown = set(changes) - _COLLECTION_UPDATABLE
        if unknown:
            raise ValidationError(
                f"Cannot update collection field(s): {', '.join(sorted(unknown))}"
            )
        collection = self.get_collection(stac_id)
        with self._locked(collection, timeout):
            self._check_live(collection)
            title = changes.get("title", collection.title)
            if not isinstance(title, str) or not title.strip():
                raise ValidationError(f"Collection '{stac_id}' requires a title")
            with self._rollback_on_store_error(collection):
                if "start_datetime" in changes or "end_datetime" in changes:
                    collection.set_temporal_range(
                        changes.get("start_datetime", collection.start_datetime),
                        changes.get("end_datetime", collection.end_datetime),
                    )
                collection.title = title
                collection.description = changes.get("description", collection.description)
                collection.license = changes.get("license", collection.license)
                collection.touch()
                self._persist_collection(collection)
        logger.debug("Updated collection %s: %s", stac_id, sorted(changes))
        return collection

    def delete_collection(self, stac_id: str, *, timeout: float | None = None) -> None:
        """Delete a collection with all of its items and links.

        The store deletion runs first; the in-memory graph only changes once
        it has succeeded, so a failed delete leaves everything in place and
        can be retried.

        Raises:
            CollectionNotFoundError: If the collection does not exist (including
                a second delete of the same id).
            StoreError: If the store could not delete the collection.
        """
        self._require_open()
        with self._acquire(self._registry_lock, "catalog", timeout):
            collection = self.get_collection(stac_id)
            with self._locked(collection, timeout):
                self._store.delete_collection(stac_id)
                items = graph.detach_all(collection)
                del self._collections[stac_id]
                for item in items:
                    if self._global_ids.get(item.stac_id) == stac_id:
                        del self._global_ids[item.stac_id]
        logger.debug("Deleted collection %s with %d item(s)", stac_id, len(items))

    def recompute_extent(self, stac_id: str, *, timeout: float | None = None) -> Collection:
        """Recompute a collection's extent after in-place item edits."""
        collection = self.get_collection(stac_id)
        with self._locked(collection, timeout):
            self._check_live(collection)
            with self._rollback_on_store_error(collection):
                recompute_extent(collection)
                self._persist_collection(collection)
        return collection

    # Items

    def create_item(
        self,
        collection_id: str,
        stac_id: str,
        *,
        timeout: float | None = None,
        **fields: Any,
    ) -> Item:
        """Create an item inside a collection.

        Keyword fields: geometry, datetime, start_datetime, end_datetime,
        title, description, assets, properties, links.

        Raises:
            CollectionNotFoundError: If the collection does not exist.
            ItemAlreadyExistsError: If the id is taken within the id scope;
                the collection's item list is unchanged.
            ValidationError: On malformed fields.
            StoreError: If persisting fails; the item is not added.
        """
        unknown = set(fields) - _ITEM_FIELDS
        if unknown:
            raise ValidationError(f"Unknown item field(s): {', '.join(sorted(unknown))}")
        collection = self.get_collection(collection_id)
        item = Item(
            stac_id=stac_id,
            geometry=fields.get("geometry"),
            datetime=fields.get("datetime"),
            start_datetime=fields.get("start_datetime"),
            end_datetime=fields.get("end_datetime"),
            title=fields.get("title"),
            description=fields.get("description"),
            assets=assets_map(fields.get("assets")),
            properties=properties_map(fields.get("properties")),
        )
        for link in fields.get("links") or []:
            graph.add_link(item, link)

        self._reserve_item_id(stac_id, collection_id, timeout)
        try:
            with self._locked(collection, timeout):
                self._check_live(collection)
                graph.add_item(collection, item)
                try:
                    self._persist_item(item)
                    self._persist_collection(collection)
                except StoreError:
                    graph.remove_item(collection, item)
                    self._discard_item_record(collection_id, stac_id)
                    raise
        except Exception:
            self._release_item_id(stac_id, collection_id)
            raise
        logger.debug("Created item %s in collection %s", stac_id, collection_id)
        return item

    def _reserve_item_id(self, item_id: str, collection_id: str, timeout: float | None) -> None:
        if self._item_id_scope != "global":
            return
        with self._acquire(self._registry_lock, "catalog", timeout):
            owner = self._global_ids.get(item_id)
            if owner is not None:
                raise ItemAlreadyExistsError(item_id, owner)
            self._global_ids[item_id] = collection_id

    def _release_item_id(self, item_id: str, collection_id: str) -> None:
        if self._item_id_scope != "global":
            return
        with self._registry_lock:
            if self._global_ids.get(item_id) == collection_id:
                del self._global_ids[item_id]

    def _discard_item_record(self, collection_id: str, item_id: str) -> None:
        try:
            self._store.delete_item(collection_id, item_id)
        except StoreError as e:
            logger.warning("Could not remove orphaned record for item %s: %s", item_id, e)

    def get_item(self, item_id: str, collection_id: str | None = None) -> Item:
        """Return the live item.

        With the "collection" id scope an item id may exist in several
        collections; pass ``collection_id`` to pick one.

        Raises:
            CollectionNotFoundError: If ``collection_id`` names no collection.
            ItemNotFoundError: If no such item exists.
            ValidationError: If the id is ambiguous and no collection was given.
        """
        self._require_open()
        if collection_id is not None:
            item = self.get_collection(collection_id).find_item(item_id)
            if item is None:
                raise ItemNotFoundError(item_id, collection_id)
            return item

        if self._item_id_scope == "global":
            owner = self._global_ids.get(item_id)
            collection = self._collections.get(owner) if owner is not None else None
            item = collection.find_item(item_id) if collection is not None else None
            if item is None:
                raise ItemNotFoundError(item_id)
            return item

        matches = [
            item
            for collection in self.list_collections()
            if (item := collection.find_item(item_id)) is not None
        ]
        if not matches:
            raise ItemNotFoundError(item_id)
        if len(matches) > 1:
            owners = ", ".join(sorted(str(m.collection_id) for m in matches))
            raise ValidationError(
                f"Item id '{item_id}' exists in several collections ({owners}); "
                "pass a collection id"
            )
        return matches[0]

    def list_items(self, collection_id: str) -> list[Item]:
        """Items of a collection in membership order."""
        collection = self.get_collection(collection_id)
        with collection.lock:
            return list(collection.items)

    def count_items(self, collection_id: str) -> int:
        return len(self.get_collection(collection_id).items)

    def update_item(
        self,
        item_id: str,
        *,
        collection_id: str | None = None,
        timeout: float | None = None,
        **changes: Any,
    ) -> Item:
        """Change an item's geometry, timestamps, title, description, or assets.

        The collection extent is NOT recomputed; call :meth:`recompute_extent`.
        All changes are validated before any is applied, so a rejected update
        leaves the item as it was.

        Raises:
            ItemNotFoundError: If the item does not exist.
            ValidationError: On an unknown field or an invalid value.
            StoreError: If persisting fails; the item is unchanged.
        """
        unknown = set(changes) - _ITEM_UPDATABLE
        if unknown:
            raise ValidationError(f"Cannot update item field(s): {', '.join(sorted(unknown))}")
        item = self.get_item(item_id, collection_id)
        collection = item.collection
        assert collection is not None
        with self._locked(collection, timeout):
            self._check_live(collection)
            # Validates geometry and time fields together
            staged = Item(
                stac_id=item.stac_id,
                geometry=changes.get("geometry", item.geometry),
                **{name: changes.get(name, getattr(item, name)) for name in _TIME_FIELDS},
                assets=assets_map(changes["assets"]) if "assets" in changes else item.assets,
            )
            with self._rollback_on_store_error(item):
                if "geometry" in changes:
                    item.assign_geometry(staged.geometry, staged.bbox)
                item.set_times(staged.datetime, staged.start_datetime, staged.end_datetime)
                if "title" in changes:
                    item.title = changes["title"]
                if "description" in changes:
                    item.description = changes["description"]
                item.assets = staged.assets
                item.touch()
                self._persist_item(item)
        logger.debug("Updated item %s: %s", item_id, sorted(changes))
        return item

    def delete_item(
        self,
        item_id: str,
        *,
        collection_id: str | None = None,
        timeout: float | None = None,
    ) -> None:
        """Delete an item and its links.

        Raises:
            ItemNotFoundError: If the item does not exist.
        """
        item = self.get_item(item_id, collection_id)
        collection = item.collection
        assert collection is not None
        with self._locked(collection, timeout):
            self._check_live(collection)
            if item.collection is not collection:
                raise ItemNotFoundError(item_id, collection.stac_id)
            self._store.delete_item(collection.stac_id, item_id)
            graph.remove_item(collection, item)
            item.links.clear()
            self._persist_collection(collection)
        self._release_item_id(item_id, collection.stac_id)
        logger.debug("Deleted item %s from collection %s", item_id, collection.stac_id)

    # Links

    def _resolve(self, collection_id: str | None, item_id: str | None) -> Entity:
        if item_id is not None:
            return self.get_item(item_id, collection_id)
        if collection_id is None:
            raise ValidationError("A collection id or an item id is required")
        return self.get_collection(collection_id)

    def _owner(self, entity: Entity) -> Collection:
        owner = entity if isinstance(entity, Collection) else entity.collection
        assert owner is not None
        return owner

    def add_link(
        self,
        link: Link,
        *,
        collection_id: str | None = None,
        item_id: str | None = None,
        timeout: float | None = None,
    ) -> None:
        """Add a link to a collection, or to an item when ``item_id`` is given.

        Raises:
            InvalidLinkError: If the link is invalid or uses a reserved rel.
        """
        parent = self._resolve(collection_id, item_id)
        owner = self._owner(parent)
        with self._locked(owner, timeout):
            self._check_live(owner)
            with self._rollback_on_store_error(parent):
                graph.add_link(parent, link)
                self._persist(parent)

    def remove_link(
        self,
        link: Link,
        *,
        collection_id: str | None = None,
        item_id: str | None = None,
        timeout: float | None = None,
    ) -> bool:
        """Remove a link; returns False (no error) if it was not present."""
        parent = self._resolve(collection_id, item_id)
        owner = self._owner(parent)
        with self._locked(owner, timeout):
            self._check_live(owner)
            with self._rollback_on_store_error(parent):
                removed = graph.remove_link(parent, link)
                if removed:
                    self._persist(parent)
        return removed

    def link_analysis_result(
        self,
        result: AnalysisResult,
        *,
        collection_id: str | None = None,
        item_id: str | None = None,
        timeout: float | None = None,
    ) -> Link:
        """Reference a COMPLETED analysis result with a derived_from link.

        Raises:
            ValidationError: If the result is not COMPLETED.
        """
        parent = self._resolve(collection_id, item_id)
        owner = self._owner(parent)
        with self._locked(owner, timeout):
            self._check_live(owner)
            with self._rollback_on_store_error(parent):
                link = graph.add_derived_from_link(parent, result)
                self._persist(parent)
        logger.debug("Linked analysis result %s to %s", result.result_id, parent.stac_id)
        return link

    # Metadata

    def set_property(
        self,
        key: str,
        value: str,
        *,
        collection_id: str | None = None,
        item_id: str | None = None,
        timeout: float | None = None,
    ) -> None:
        entity = self._resolve(collection_id, item_id)
        owner = self._owner(entity)
        with self._locked(owner, timeout):
            self._check_live(owner)
            with self._rollback_on_store_error(entity):
                metadata.set_property(entity, key, value)
                self._persist(entity)

    def remove_property(
        self,
        key: str,
        *,
        collection_id: str | None = None,
        item_id: str | None = None,
        timeout: float | None = None,
    ) -> bool:
        entity = self._resolve(collection_id, item_id)
        owner = self._owner(entity)
        with self._locked(owner, timeout):
            self._check_live(owner)
            with self._rollback_on_store_error(entity):
                removed = metadata.remove_property(entity, key)
                if removed:
                    self._persist(entity)
        return removed

    def add_keyword(
        self, collection_id: str, keyword: str, *, timeout: float | None = None
    ) -> bool:
        collection = self.get_collection(collection_id)
        with self._locked(collection, timeout):
            self._check_live(collection)
            with self._rollback_on_store_error(collection):
                added = metadata.add_keyword(collection, keyword)
                if added:
                    self._persist_collection(collection)
        return added

    def remove_keyword(
        self, collection_id: str, keyword: str, *, timeout: float | None = None
    ) -> bool:
        collection = self.get_collection(collection_id)
        with self._locked(collection, timeout):
            self._check_live(collection)
            with self._rollback_on_store_error(collection):
                removed = metadata.remove_keyword(collection, keyword)
                if removed:
                    self._persist_collection(collection)
        return removed

    def add_provider(
        self, collection_id: str, provider: Provider, *, timeout: float | None = None
    ) -> None:
        collection = self.get_collection(collection_id)
        with self._locked(collection, timeout):
            self._check_live(collection)
            with self._rollback_on_store_error(collection):
                metadata.add_provider(collection, provider)
                self._persist_collection(collection)

    def remove_provider(
        self, collection_id: str, provider: Provider, *, timeout: float | None = None
    ) -> bool:
        collection = self.get_collection(collection_id)
        with self._locked(collection, timeout):
            self._check_live(collection)
            with self._rollback_on_store_error(collection):
                removed = metadata.remove_provider(collection, provider)
                if removed:
                    self._persist_collection(collection)
        return removed

    # Snapshots

    def snapshot(self, *, timeout: float | None = None) -> CatalogSnapshot:
        """Return a consistent copy of the catalog, reusing it while unchanged."""
        self._require_open()
        with self._acquire(self._registry_lock, "catalog", timeout):
            collections = list(self._collections.values())
            key = tuple((c.stac_id, str(c.meta.internal_id), c.revision) for c in collections)
            if self._snapshot is not None and self._snapshot.key == key:
                return self._snapshot

            keys: list[tuple[str, str, int]] = []
            summaries: list[CollectionSummary] = []
            items: list[Item] = []
            for collection in collections:
                with self._locked(collection, timeout):
                    keys.append(
                        (collection.stac_id, str(collection.meta.internal_id), collection.revision)
                    )
                    summaries.append(CollectionSummary.of(collection))
                    items.extend(item.detached_copy() for item in collection.items)
            self._snapshot = CatalogSnapshot(
                key=tuple(keys), collections=tuple(summaries), items=tuple(items)
            )
        logger.debug("Built catalog snapshot: %d item(s)", len(items))
        return self._snapshot


def properties_map(values: dict[str, str] | None) -> dict[str, str]:
    return metadata.check_properties(values or {})


def assets_map(values: dict[str, Any] | None) -> dict[str, Asset]:
    """Accept Asset objects or asset dicts keyed by asset name."""
    result: dict[str, Asset] = {}
    for name, asset in (values or {}).items():
        result[name] = asset if isinstance(asset, Asset) else Asset.from_dict(asset)
    return result


def open_repository(
    catalog_path: Path,
    *,
    store: str | None = None,
    item_id_scope: str | None = None,
    lock_timeout: float | None = None,
) -> CatalogRepository:
    """Build and open a repository for a catalog directory.

    Settings not passed explicitly come from the environment or the
    catalog's config file (see ``geocatalog.config``).

    Raises:
        ConfigError: On an invalid or unreadable configuration.
        StoreError: If the stored catalog cannot be loaded.
    """
    settings = resolve_settings(
        catalog_path, store=store, item_id_scope=item_id_scope, lock_timeout=lock_timeout
    )
    repo = CatalogRepository(
        get_store(settings.store, root=catalog_path),
        item_id_scope=settings.item_id_scope,
        lock_timeout=settings.lock_timeout,
    )
    return repo.open()
