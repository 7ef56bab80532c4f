"""Extent calculation for collections.

Extents are pure aggregates over the current member items: recomputing
always yields the same bounds for the same set of items, whatever order they
were added in. Recomputation runs on item add/remove (see
``geocatalog.graph``); edits to an attached item's geometry or timestamps
require an explicit call to :func:`recompute_extent`.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime

from geocatalog.geometry import BBox, union_bbox
from geocatalog.models.collection import Collection
from geocatalog.models.item import Item

logger = logging.getLogger(__name__)


def compute_bbox(items: Iterable[Item]) -> BBox | None:
    """Envelope of all item geometries, or None if no item has geometry."""
    return union_bbox(item.bbox for item in items if item.bbox is not None)


def compute_interval(items: Iterable[Item]) -> tuple[datetime | None, datetime | None]:
    """[min start, max end] over item intervals; (None, None) without timestamps."""
    starts: list[datetime] = []
    ends: list[datetime] = []
    for item in items:
        interval = item.interval
        if interval is not None:
            starts.append(interval[0])
            ends.append(interval[1])
    if not starts:
        return (None, None)
    return (min(starts), max(ends))


def recompute_spatial_extent(collection: Collection) -> BBox | None:
    """Set and return the collection's spatial extent from its items."""
    with collection.lock:
        bbox = compute_bbox(collection.items)
        collection.spatial_extent = bbox
        collection.touch()
    return bbox


def recompute_temporal_extent(collection: Collection) -> tuple[datetime | None, datetime | None]:
    """Set and return the collection's temporal extent from its items."""
    with collection.lock:
        start, end = compute_interval(collection.items)
        collection.set_temporal_range(start, end)
        collection.touch()
    return (start, end)


def recompute_extent(collection: Collection) -> None:
    """Recompute both spatial and temporal extents."""
    with collection.lock:
        recompute_spatial_extent(collection)
        recompute_temporal_extent(collection)
        logger.debug(
            "Recomputed extent of %s: bbox=%s interval=[%s, %s]",
            collection.stac_id,
            collection.spatial_extent,
            collection.start_datetime,
            collection.end_datetime,
        )
