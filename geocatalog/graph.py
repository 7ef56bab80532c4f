"""Link graph operations: item membership and owned links.

These functions are the only supported way to change a collection's item
list or any entity's link list. They keep the back-reference invariant

    for every item in collection.items: item.collection is collection

and trigger extent recomputation when membership changes. Every operation
runs under the owning collection's lock.

Removals are idempotent: removing something that is not there is a no-op
that returns False.
"""

from __future__ import annotations

import contextlib
import logging
from typing import Any, Union

from geocatalog.errors import (
    ConsistencyError,
    InvalidLinkError,
    ItemAlreadyExistsError,
    ValidationError,
)
from geocatalog.extent import recompute_extent, recompute_spatial_extent
from geocatalog.models.analysis import AnalysisResult
from geocatalog.models.collection import ITEM_REL, Collection
from geocatalog.models.item import Item
from geocatalog.models.link import Link

logger = logging.getLogger(__name__)

LinkParent = Union[Collection, Item]


def lock_for(parent: LinkParent) -> Any:
    """The lock guarding a parent's links: its own (collection) or its owner's (item)."""
    if isinstance(parent, Collection):
        return parent.lock
    if parent.collection is not None:
        return parent.collection.lock
    return contextlib.nullcontext()


def add_item(collection: Collection, item: Item) -> None:
    """Append an item to a collection and set its back-reference.

    Recomputes the collection extent.

    Raises:
        ItemAlreadyExistsError: If the collection already has an item with this id.
        ValidationError: If the item is attached to a different collection.
    """
    with collection.lock:
        if item.collection is not None and item.collection is not collection:
            raise ValidationError(
                f"Item '{item.stac_id}' belongs to collection '{item.collection.stac_id}'; "
                f"remove it there before adding it to '{collection.stac_id}'"
            )
        if collection.find_item(item.stac_id) is not None:
            raise ItemAlreadyExistsError(item.stac_id, collection.stac_id)

        collection.items.append(item)
        item.collection = collection
        item.meta.touch()
        recompute_extent(collection)
        _check_member(collection, item)
        logger.debug("Added item %s to collection %s", item.stac_id, collection.stac_id)


def remove_item(collection: Collection, item: Item) -> bool:
    """Remove an item from a collection and clear its back-reference.

    Recomputes the collection extent when something was removed.

    Returns:
        True if the item was a member, False if nothing changed.
    """
    with collection.lock:
        for index, member in enumerate(collection.items):
            if member is item:
                break
        else:
            return False

        del collection.items[index]
        item.collection = None
        item.meta.touch()
        recompute_extent(collection)
        verify_back_references(collection)
        logger.debug("Removed item %s from collection %s", item.stac_id, collection.stac_id)
        return True


def attach_items(collection: Collection, items: list[Item]) -> None:
    """Attach detached items read back from a store, in order.

    Only the spatial extent is recomputed: the stored temporal extent is
    kept as written.

    Raises:
        ItemAlreadyExistsError: If two items share an id.
        ValidationError: If an item is already attached somewhere.
    """
    with collection.lock:
        for item in items:
            if item.collection is not None:
                raise ValidationError(f"Item '{item.stac_id}' is already attached")
            if collection.find_item(item.stac_id) is not None:
                raise ItemAlreadyExistsError(item.stac_id, collection.stac_id)
            collection.items.append(item)
            item.collection = collection
        recompute_spatial_extent(collection)
        verify_back_references(collection)


def detach_all(collection: Collection) -> list[Item]:
    """Cascade: detach every item and drop every link of a collection.

    Returns:
        The detached items.
    """
    with collection.lock:
        items = list(collection.items)
        for item in items:
            item.collection = None
        collection.items.clear()
        collection.links.clear()
        collection.touch()
    logger.debug("Detached %d item(s) from collection %s", len(items), collection.stac_id)
    return items


def add_link(parent: LinkParent, link: Link) -> None:
    """Append a link to a collection or item.

    Raises:
        InvalidLinkError: If the link is not a Link (blank rel/href are rejected
            when the Link is built), or uses the reserved ``item`` relation on
            a collection.
    """
    if not isinstance(link, Link):
        raise InvalidLinkError(f"expected Link, got {type(link).__name__}")
    if isinstance(parent, Collection) and link.rel == ITEM_REL:
        raise InvalidLinkError(
            "rel 'item' is derived from collection membership; use add_item instead"
        )
    with lock_for(parent):
        parent.links.append(link)
        parent.touch()
    logger.debug("Added %s link to %s -> %s", link.rel, parent.stac_id, link.href)


def remove_link(parent: LinkParent, link: Link) -> bool:
    """Remove the first link equal to ``link``.

    Returns:
        True if a link was removed, False if none matched.
    """
    with lock_for(parent):
        try:
            parent.links.remove(link)
        except ValueError:
            return False
        parent.touch()
    logger.debug("Removed %s link from %s -> %s", link.rel, parent.stac_id, link.href)
    return True


def add_derived_from_link(parent: LinkParent, result: AnalysisResult) -> Link:
    """Reference a completed analysis result from a collection or item.

    Adding the same result twice is a no-op returning the existing link.

    Raises:
        ValidationError: If the result is not COMPLETED.
    """
    link = result.to_link()
    with lock_for(parent):
        if link in parent.links:
            return link
        add_link(parent, link)
    return link


def verify_back_references(collection: Collection) -> None:
    """Check the back-reference invariant and id uniqueness for every member.

    Raises:
        ConsistencyError: On any violation. This is a programming defect.
    """
    with collection.lock:
        seen: set[str] = set()
        for item in collection.items:
            if item.collection is not collection:
                _fail(collection, f"item '{item.stac_id}' points at {item.collection_id!r}")
            if item.stac_id in seen:
                _fail(collection, f"item id '{item.stac_id}' appears more than once")
            seen.add(item.stac_id)


def _check_member(collection: Collection, item: Item) -> None:
    attached = item.collection is collection
    if not attached or not collection.items or collection.items[-1] is not item:
        _fail(collection, f"item '{item.stac_id}' was not attached correctly")


def _fail(collection: Collection, detail: str) -> None:
    message = f"Back-reference invariant broken in collection '{collection.stac_id}': {detail}"
    logger.critical(message)
    raise ConsistencyError(message, collection_id=collection.stac_id)
