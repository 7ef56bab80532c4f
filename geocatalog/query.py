"""Spatio-temporal query engine.

Queries run against a :class:`~geocatalog.repository.CatalogSnapshot`, so a
page never mixes states from before and after a concurrent mutation.

Matching rules:
    - bbox: the item geometry intersects the box (touching counts). Items
      without geometry never match a bbox filter.
    - time: see :meth:`geocatalog.temporal.TimeRange.overlaps`. Items without
      a timestamp never match a time filter.
    - properties: every key is present with an equal string value.

Ordering is total and deterministic: by (id, collection id), or by
(datetime, id, collection id) with undated items last. The cursor encodes
the sort key of the last returned item, so later pages start strictly after
it no matter what was inserted in between.
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
import threading
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Union

from shapely import STRtree

from geocatalog.errors import InvalidCursorError, ValidationError
from geocatalog.geometry import BBox, bbox_geometry, bboxes_intersect, parse_geometry, validate_bbox
from geocatalog.models.item import Item
from geocatalog.repository import CatalogRepository, CatalogSnapshot, CollectionSummary
from geocatalog.temporal import TimeRange

logger = logging.getLogger(__name__)

SORT_KEYS = ("id", "datetime")

DEFAULT_LIMIT = 100
MAX_LIMIT = 1000

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

SortKey = list[Union[str, int]]


def _coerce_time_range(value: TimeRange | str | None) -> TimeRange | None:
    if value is None or isinstance(value, TimeRange):
        return value
    if isinstance(value, str):
        return TimeRange.parse(value)
    raise ValidationError(f"time_range must be a TimeRange or string, got {type(value).__name__}")


def _check_limit(limit: int | None) -> None:
    if limit is not None and (not isinstance(limit, int) or limit < 1):
        raise ValidationError(f"limit must be a positive integer, got {limit!r}")


@dataclass(frozen=True)
class QueryFilter:
    """Item search criteria. Every criterion is optional; they combine with AND.

    Attributes:
        bbox: [west, south, east, north] (or a 6-element 3D box).
        time_range: TimeRange, or its "start/end" / instant string form.
        properties: Required property key/value pairs.
        collection_id: Restrict to one collection.
        asset_type: Require an asset with this media type.
        limit: Page size; the engine default when None.
        cursor: Token from a previous result's ``next_cursor``.
        sort_by: "id" or "datetime".
    """

    bbox: Sequence[float] | None = None
    time_range: TimeRange | str | None = None
    properties: Mapping[str, str] = field(default_factory=dict)
    collection_id: str | None = None
    asset_type: str | None = None
    limit: int | None = None
    cursor: str | None = None
    sort_by: str = "id"

    def __post_init__(self) -> None:
        if self.bbox is not None:
            object.__setattr__(self, "bbox", validate_bbox(self.bbox))
        object.__setattr__(self, "time_range", _coerce_time_range(self.time_range))
        object.__setattr__(self, "properties", dict(self.properties))
        _check_limit(self.limit)
        if self.sort_by not in SORT_KEYS:
            raise ValidationError(
                f"sort_by must be one of {', '.join(SORT_KEYS)}, got {self.sort_by!r}"
            )


@dataclass(frozen=True)
class CollectionFilter:
    """Collection search criteria, combined with AND.

    Attributes:
        bbox: Intersects the collection's spatial extent.
        time_range: Overlaps the collection's temporal extent; null extent
            bounds are unbounded.
        keyword: Collection has this keyword.
        provider: Collection has a provider with this name.
        license: Exact license id.
        title_contains: Case-insensitive title substring.
        limit: Page size.
        cursor: Token from a previous result.
    """

    bbox: Sequence[float] | None = None
    time_range: TimeRange | str | None = None
    keyword: str | None = None
    provider: str | None = None
    license: str | None = None
    title_contains: str | None = None
    limit: int | None = None
    cursor: str | None = None

    def __post_init__(self) -> None:
        if self.bbox is not None:
            object.__setattr__(self, "bbox", validate_bbox(self.bbox))
        object.__setattr__(self, "time_range", _coerce_time_range(self.time_range))
        _check_limit(self.limit)


@dataclass(frozen=True)
class QueryResult:
    """One page of matching items.

    Attributes:
        items: Matching items (snapshot copies) in sort order.
        next_cursor: Token for the next page, or None on the last page.
        matched: Total number of matches across all pages.
    """

    items: tuple[Item, ...] = ()
    next_cursor: str | None = None
    matched: int = 0

    def __len__(self) -> int:
        return len(self.items)

    @property
    def ids(self) -> list[str]:
        return [item.stac_id for item in self.items]


@dataclass(frozen=True)
class CollectionQueryResult:
    """One page of matching collections, ordered by id."""

    collections: tuple[CollectionSummary, ...] = ()
    next_cursor: str | None = None
    matched: int = 0

    def __len__(self) -> int:
        return len(self.collections)

    @property
    def ids(self) -> list[str]:
        return [c.stac_id for c in self.collections]


def encode_cursor(sort_by: str, key: SortKey) -> str:
    """Opaque URL-safe token for 'everything after this sort key'."""
    payload = json.dumps({"s": sort_by, "k": key}, separators=(",", ":"))
    return base64.urlsafe_b64encode(payload.encode("utf-8")).decode("ascii").rstrip("=")


def decode_cursor(cursor: str, sort_by: str) -> SortKey:
    """Decode a cursor produced by :func:`encode_cursor` for the same ordering.

    Raises:
        InvalidCursorError: If the token is malformed or was issued for a
            different ordering.
    """
    try:
        padded = cursor + "=" * (-len(cursor) % 4)
        data = json.loads(base64.urlsafe_b64decode(padded.encode("ascii")))
    except (binascii.Error, UnicodeError, ValueError) as e:
        raise InvalidCursorError(cursor) from e
    if not isinstance(data, dict) or data.get("s") != sort_by or not isinstance(data.get("k"), list):
        raise InvalidCursorError(cursor)
    return data["k"]


def _micros(value: datetime) -> int:
    return (value - _EPOCH) // timedelta(microseconds=1)


def sort_key(item: Item, sort_by: str) -> SortKey:
    collection_id = item.collection_id or ""
    if sort_by == "datetime":
        interval = item.interval
        if interval is None:
            return [1, 0, item.stac_id, collection_id]
        return [0, _micros(interval[0]), item.stac_id, collection_id]
    return [item.stac_id, collection_id]


def _paginate(
    keyed: list[tuple[SortKey, Any]], cursor: str | None, sort_by: str, limit: int
) -> tuple[list[Any], str | None]:
    keyed.sort(key=lambda pair: pair[0])
    if cursor is not None:
        after = decode_cursor(cursor, sort_by)
        try:
            keyed = [pair for pair in keyed if pair[0] > after]
        except TypeError as e:
            raise InvalidCursorError(cursor) from e
    page = keyed[:limit]
    next_cursor = encode_cursor(sort_by, page[-1][0]) if len(keyed) > limit else None
    return [value for _, value in page], next_cursor


class _SpatialIndex:
    """STRtree over the items of one snapshot that have geometry."""

    def __init__(self, items: Sequence[Item]) -> None:
        self.items = [item for item in items if item.geometry is not None]
        self.tree = STRtree([parse_geometry(item.geometry) for item in self.items])

    def intersecting(self, bbox: BBox) -> list[Item]:
        indices = self.tree.query(bbox_geometry(bbox), predicate="intersects")
        return [self.items[i] for i in sorted(indices)]


class QueryEngine:
    """Answers item and collection searches over a repository.

    Args:
        repository: An open repository.
        default_limit: Page size when a filter gives none.
        max_limit: Larger requested page sizes are clamped to this.
    """

    def __init__(
        self,
        repository: CatalogRepository,
        *,
        default_limit: int = DEFAULT_LIMIT,
        max_limit: int = MAX_LIMIT,
    ) -> None:
        if default_limit < 1 or max_limit < default_limit:
            raise ValidationError(
                f"need 1 <= default_limit <= max_limit, got {default_limit}, {max_limit}"
            )
        self._repository = repository
        self._default_limit = default_limit
        self._max_limit = max_limit
        self._index_lock = threading.Lock()
        self._index: tuple[tuple[Any, ...], _SpatialIndex] | None = None

    def _limit(self, requested: int | None) -> int:
        if requested is None:
            return self._default_limit
        if requested > self._max_limit:
            logger.debug("Clamping limit %d to %d", requested, self._max_limit)
            return self._max_limit
        return requested

    def _spatial_index(self, snapshot: CatalogSnapshot) -> _SpatialIndex:
        with self._index_lock:
            if self._index is None or self._index[0] != snapshot.key:
                self._index = (snapshot.key, _SpatialIndex(snapshot.items))
                logger.debug("Built spatial index over %d item(s)", len(self._index[1].items))
            return self._index[1]

    def query(self, query_filter: QueryFilter | None = None, **criteria: Any) -> QueryResult:
        """Search items.

        Accepts either a QueryFilter or its fields as keyword arguments.
        No match is an empty result, never an error.

        Raises:
            InvalidCursorError: If the cursor is malformed.
            ValidationError: On malformed criteria.
        """
        flt = query_filter if query_filter is not None else QueryFilter(**criteria)
        snapshot = self._repository.snapshot()

        if flt.bbox is not None:
            candidates = self._spatial_index(snapshot).intersecting(flt.bbox)
        else:
            candidates = list(snapshot.items)

        matches = [item for item in candidates if _item_matches(item, flt)]
        page, next_cursor = _paginate(
            [(sort_key(item, flt.sort_by), item) for item in matches],
            flt.cursor,
            flt.sort_by,
            self._limit(flt.limit),
        )
        logger.debug("Query matched %d item(s), returning %d", len(matches), len(page))
        return QueryResult(items=tuple(page), next_cursor=next_cursor, matched=len(matches))

    def query_collections(
        self, collection_filter: CollectionFilter | None = None, **criteria: Any
    ) -> CollectionQueryResult:
        """Search collections by extent, keyword, provider, license, or title."""
        flt = collection_filter if collection_filter is not None else CollectionFilter(**criteria)
        snapshot = self._repository.snapshot()
        matches = [c for c in snapshot.collections if _collection_matches(c, flt)]
        page, next_cursor = _paginate(
            [([c.stac_id], c) for c in matches], flt.cursor, "collection", self._limit(flt.limit)
        )
        return CollectionQueryResult(
            collections=tuple(page), next_cursor=next_cursor, matched=len(matches)
        )


def _item_matches(item: Item, flt: QueryFilter) -> bool:
    if flt.collection_id is not None and item.collection_id != flt.collection_id:
        return False
    if flt.time_range is not None:
        interval = item.interval
        if interval is None or not flt.time_range.overlaps(*interval):
            return False
    for key, value in flt.properties.items():
        if item.properties.get(key) != value:
            return False
    if flt.asset_type is not None and not any(
        asset.type == flt.asset_type for asset in item.assets.values()
    ):
        return False
    return True


def _collection_matches(collection: CollectionSummary, flt: CollectionFilter) -> bool:
    if flt.bbox is not None and (
        collection.spatial_extent is None
        or not bboxes_intersect(collection.spatial_extent, flt.bbox)
    ):
        return False
    if flt.time_range is not None and not flt.time_range.overlaps_open(
        collection.start_datetime, collection.end_datetime
    ):
        return False
    if flt.keyword is not None and flt.keyword not in collection.keywords:
        return False
    if flt.provider is not None and flt.provider not in collection.provider_names:
        return False
    if flt.license is not None and collection.license != flt.license:
        return False
    if flt.title_contains is not None and (
        flt.title_contains.casefold() not in collection.title.casefold()
    ):
        return False
    return True
