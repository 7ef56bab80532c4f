"""Item dataclass for STAC Item records.

An Item is a single geospatial asset record: geometry, acquisition time or
time range, asset references, free-form string properties, and links. It
holds a back-reference to its owning collection while attached.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any

from geocatalog.errors import InvalidTimeRangeError, ValidationError
from geocatalog.geometry import BBox, geometry_bbox
from geocatalog.models.base import STAC_VERSION, EntityMeta, validate_identifier
from geocatalog.models.link import Link
from geocatalog.temporal import format_datetime, parse_optional_datetime

if TYPE_CHECKING:
    from geocatalog.models.collection import Collection

# Properties keys that map onto Item fields rather than the free-form map
_RESERVED_PROPERTIES = frozenset(
    {"datetime", "start_datetime", "end_datetime", "title", "description", "created", "updated"}
)


@dataclass(frozen=True)
class Asset:
    """A STAC asset (file or URI reference).

    Attributes:
        href: Asset URL or path.
        type: Media type (e.g., "image/tiff; application=geotiff").
        title: Human-readable title.
        description: Longer description.
        roles: Asset roles (e.g., ("data",), ("thumbnail",)).
    """

    href: str
    type: str | None = None
    title: str | None = None
    description: str | None = None
    roles: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if not isinstance(self.href, str) or not self.href.strip():
            raise ValidationError("Asset href must be a non-empty string")
        object.__setattr__(self, "roles", tuple(self.roles))

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dict."""
        result: dict[str, Any] = {"href": self.href}
        if self.type is not None:
            result["type"] = self.type
        if self.title is not None:
            result["title"] = self.title
        if self.description is not None:
            result["description"] = self.description
        if self.roles:
            result["roles"] = list(self.roles)
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Asset:
        """Create Asset from dict."""
        return cls(
            href=data.get("href", ""),
            type=data.get("type"),
            title=data.get("title"),
            description=data.get("description"),
            roles=tuple(data.get("roles") or ()),
        )


@dataclass(eq=False)
class Item:
    """STAC Item record.

    Items compare by identity. The geometry is validated and its bbox
    derived whenever it is assigned; editing geometry or timestamps on an
    attached item does NOT refresh the collection extent (call
    ``extent.recompute_extent`` or ``CatalogRepository.recompute_extent``).

    Attributes:
        stac_id: Stable catalog identifier (immutable).
        geometry: GeoJSON geometry, or None.
        datetime: Acquisition timestamp.
        start_datetime: Start of the observation range.
        end_datetime: End of the observation range.
        title: Human-readable title.
        description: Item description.
        assets: Asset references keyed by asset name.
        properties: Free-form string properties.
        links: Owned links, in insertion order.
        collection: Owning collection, None while detached.
        meta: Internal id and timestamps.
    """

    stac_id: str
    geometry: dict[str, Any] | None = None
    datetime: datetime | None = None
    start_datetime: datetime | None = None
    end_datetime: datetime | None = None
    title: str | None = None
    description: str | None = None
    assets: dict[str, Asset] = field(default_factory=dict)
    properties: dict[str, str] = field(default_factory=dict)
    links: list[Link] = field(default_factory=list)
    collection: Collection | None = field(default=None, repr=False)
    meta: EntityMeta = field(default_factory=EntityMeta, repr=False)

    def __post_init__(self) -> None:
        """Validate id and temporal fields."""
        validate_identifier(self.stac_id, "item")
        self.set_times(self.datetime, self.start_datetime, self.end_datetime)

    def __setattr__(self, name: str, value: Any) -> None:
        if name == "stac_id" and "stac_id" in self.__dict__:
            raise ValidationError(f"Item id '{self.stac_id}' is immutable")
        if name == "geometry":
            bbox = geometry_bbox(value) if value is not None else None
            object.__setattr__(self, "_bbox", bbox)
        super().__setattr__(name, value)

    def assign_geometry(self, geometry: dict[str, Any] | None, bbox: BBox | None) -> None:
        """Set a geometry whose bbox was already derived, skipping re-validation."""
        object.__setattr__(self, "geometry", geometry)
        object.__setattr__(self, "_bbox", bbox)

    @property
    def bbox(self) -> BBox | None:
        """Envelope of the geometry, or None without geometry."""
        return self.__dict__.get("_bbox")

    @property
    def collection_id(self) -> str | None:
        return self.collection.stac_id if self.collection is not None else None

    def set_times(
        self,
        datetime_: datetime | str | None = None,
        start: datetime | str | None = None,
        end: datetime | str | None = None,
    ) -> None:
        """Replace the temporal fields, validating that start <= end.

        Raises:
            InvalidTimeRangeError: If only one range bound is given, or start > end.
        """
        dt = parse_optional_datetime(datetime_)
        start_dt = parse_optional_datetime(start)
        end_dt = parse_optional_datetime(end)
        if (start_dt is None) != (end_dt is None):
            raise InvalidTimeRangeError("start_datetime and end_datetime must be given together")
        if start_dt is not None and end_dt is not None and start_dt > end_dt:
            raise InvalidTimeRangeError(
                f"start {format_datetime(start_dt)} is after end {format_datetime(end_dt)}"
            )
        self.datetime = dt
        self.start_datetime = start_dt
        self.end_datetime = end_dt

    @property
    def interval(self) -> tuple[datetime, datetime] | None:
        """Temporal interval: the range if set, else the zero-width interval at datetime."""
        if self.start_datetime is not None and self.end_datetime is not None:
            return (self.start_datetime, self.end_datetime)
        if self.datetime is not None:
            return (self.datetime, self.datetime)
        return None

    def touch(self) -> None:
        """Record a modification on the item and its owning collection."""
        self.meta.touch()
        if self.collection is not None:
            self.collection.touch()

    def detached_copy(self) -> Item:
        """Copy with independent containers, sharing the collection reference.

        Used to build read snapshots; the copy is not a member of the collection.
        """
        copy = Item(
            stac_id=self.stac_id,
            datetime=self.datetime,
            start_datetime=self.start_datetime,
            end_datetime=self.end_datetime,
            title=self.title,
            description=self.description,
            assets=dict(self.assets),
            properties=dict(self.properties),
            links=list(self.links),
            meta=EntityMeta(
                internal_id=self.meta.internal_id,
                created=self.meta.created,
                updated=self.meta.updated,
            ),
        )
        copy.assign_geometry(self.geometry, self.bbox)
        copy.collection = self.collection
        return copy

    def to_dict(self) -> dict[str, Any]:
        """Convert to a STAC Item (GeoJSON Feature) dict."""
        properties: dict[str, Any] = dict(self.properties)
        properties["datetime"] = format_datetime(self.datetime)
        if self.start_datetime is not None:
            properties["start_datetime"] = format_datetime(self.start_datetime)
            properties["end_datetime"] = format_datetime(self.end_datetime)
        if self.title is not None:
            properties["title"] = self.title
        if self.description is not None:
            properties["description"] = self.description
        meta = self.meta.to_dict()
        properties["created"] = meta.pop("created")
        properties["updated"] = meta.pop("updated")

        result: dict[str, Any] = {
            "type": "Feature",
            "stac_version": STAC_VERSION,
            "id": self.stac_id,
            "geometry": self.geometry,
        }
        if self.bbox is not None:
            result["bbox"] = list(self.bbox)
        result["properties"] = properties
        result["links"] = [link.to_dict() for link in self.links]
        result["assets"] = {name: asset.to_dict() for name, asset in self.assets.items()}
        if self.collection is not None:
            result["collection"] = self.collection.stac_id
        result.update(meta)
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Item:
        """Create a detached Item from a STAC Item dict.

        Non-string property values are stored as their JSON text.
        """
        raw_props = dict(data.get("properties") or {})
        properties = {
            key: value if isinstance(value, str) else json.dumps(value)
            for key, value in raw_props.items()
            if key not in _RESERVED_PROPERTIES
        }
        meta = EntityMeta.from_dict({**data, **raw_props})
        return cls(
            stac_id=data.get("id", ""),
            geometry=data.get("geometry"),
            datetime=raw_props.get("datetime"),
            start_datetime=raw_props.get("start_datetime"),
            end_datetime=raw_props.get("end_datetime"),
            title=raw_props.get("title"),
            description=raw_props.get("description"),
            assets={
                name: Asset.from_dict(asset) for name, asset in (data.get("assets") or {}).items()
            },
            properties=properties,
            links=[Link.from_dict(link) for link in data.get("links", [])],
            meta=meta,
        )
