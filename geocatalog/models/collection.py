"""Collection dataclass for STAC Collection records.

A Collection groups items that share spatial/temporal/license metadata. It
owns its items and links; the item list is mutated only through
``geocatalog.graph`` so back-references and extents stay consistent.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from geocatalog.errors import InvalidTimeRangeError, ValidationError
from geocatalog.geometry import GLOBAL_BBOX, BBox, bbox_to_polygon
from geocatalog.models.base import STAC_VERSION, EntityMeta, validate_identifier
from geocatalog.models.item import Item
from geocatalog.models.link import Link
from geocatalog.temporal import format_datetime, parse_optional_datetime

# Default license when not specified
DEFAULT_LICENSE = "proprietary"

# Link relation derived from the item list when serialising
ITEM_REL = "item"


@dataclass(frozen=True)
class Provider:
    """A data provider.

    Attributes:
        name: Provider name.
        description: Free-text description.
        roles: Provider roles (licensor, producer, processor, host).
        url: Provider URL.
    """

    name: str
    description: str | None = None
    roles: tuple[str, ...] = ()
    url: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name.strip():
            raise ValidationError("Provider name must be a non-empty string")
        object.__setattr__(self, "roles", tuple(self.roles))

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dict."""
        result: dict[str, Any] = {"name": self.name}
        if self.description is not None:
            result["description"] = self.description
        if self.roles:
            result["roles"] = list(self.roles)
        if self.url is not None:
            result["url"] = self.url
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Provider:
        """Create Provider from dict."""
        return cls(
            name=data.get("name", ""),
            description=data.get("description"),
            roles=tuple(data.get("roles") or ()),
            url=data.get("url"),
        )


@dataclass(eq=False)
class Collection:
    """STAC Collection record.

    Collections compare by identity. ``revision`` increases on every
    mutation and ``lock`` serialises mutations of this collection.

    Attributes:
        stac_id: Stable catalog identifier (immutable after creation).
        title: Human-readable title.
        description: Collection description.
        license: SPDX license identifier or "proprietary".
        start_datetime: Temporal extent start (None = unbounded).
        end_datetime: Temporal extent end (None = unbounded).
        spatial_extent: Envelope of member geometries, None until computed.
        providers: Ordered providers; duplicates allowed.
        keywords: Ordered keywords with set semantics.
        items: Owned items, in insertion order.
        links: Owned links, in insertion order.
        properties: Free-form string properties.
        meta: Internal id and timestamps.
    """

    stac_id: str
    title: str
    description: str = ""
    license: str = DEFAULT_LICENSE
    start_datetime: datetime | None = None
    end_datetime: datetime | None = None
    spatial_extent: BBox | None = None
    providers: list[Provider] = field(default_factory=list)
    keywords: list[str] = field(default_factory=list)
    items: list[Item] = field(default_factory=list, repr=False)
    links: list[Link] = field(default_factory=list)
    properties: dict[str, str] = field(default_factory=dict)
    meta: EntityMeta = field(default_factory=EntityMeta, repr=False)
    revision: int = field(default=0, repr=False)
    lock: Any = field(default_factory=threading.RLock, repr=False)

    def __post_init__(self) -> None:
        """Validate id, title, and temporal range."""
        validate_identifier(self.stac_id, "collection")
        if not isinstance(self.title, str) or not self.title.strip():
            raise ValidationError(f"Collection '{self.stac_id}' requires a title")
        self.set_temporal_range(self.start_datetime, self.end_datetime)
        # Keywords keep set semantics even when passed in bulk
        self.keywords = list(dict.fromkeys(self.keywords))

    def __setattr__(self, name: str, value: Any) -> None:
        if name == "stac_id" and "stac_id" in self.__dict__:
            raise ValidationError(f"Collection id '{self.stac_id}' is immutable")
        super().__setattr__(name, value)

    def set_temporal_range(
        self, start: datetime | str | None, end: datetime | str | None
    ) -> None:
        """Replace the temporal extent.

        Raises:
            InvalidTimeRangeError: If start > end.
        """
        start_dt = parse_optional_datetime(start)
        end_dt = parse_optional_datetime(end)
        if start_dt is not None and end_dt is not None and start_dt > end_dt:
            raise InvalidTimeRangeError(
                f"start {format_datetime(start_dt)} is after end {format_datetime(end_dt)}"
            )
        self.start_datetime = start_dt
        self.end_datetime = end_dt

    @property
    def spatial_extent_geometry(self) -> dict[str, Any] | None:
        """The spatial extent as a GeoJSON polygon."""
        if self.spatial_extent is None:
            return None
        return bbox_to_polygon(self.spatial_extent)

    def touch(self) -> None:
        """Record a modification."""
        self.meta.touch()
        self.revision += 1

    def find_item(self, item_id: str) -> Item | None:
        """Return the member item with the given catalog id, if any."""
        for item in self.items:
            if item.stac_id == item_id:
                return item
        return None

    def to_dict(self, *, item_href: str = "./items/{id}.json") -> dict[str, Any]:
        """Convert to a STAC Collection dict.

        Item membership is written as ``rel="item"`` links after the owned
        links, in item order. A collection without a computed spatial extent
        advertises the global bbox, as STAC requires at least one box.

        Args:
            item_href: Format string for item link hrefs; ``{id}`` is replaced
                by the item id.
        """
        bbox = list(self.spatial_extent if self.spatial_extent is not None else GLOBAL_BBOX)
        links = [link.to_dict() for link in self.links]
        links.extend(
            Link(rel=ITEM_REL, href=item_href.format(id=item.stac_id), type="application/geo+json")
            .to_dict()
            for item in self.items
        )
        result: dict[str, Any] = {
            "type": "Collection",
            "stac_version": STAC_VERSION,
            "id": self.stac_id,
            "title": self.title,
            "description": self.description,
            "license": self.license,
            "extent": {
                "spatial": {"bbox": [bbox]},
                "temporal": {
                    "interval": [
                        [format_datetime(self.start_datetime), format_datetime(self.end_datetime)]
                    ]
                },
            },
            "links": links,
        }
        if self.keywords:
            result["keywords"] = list(self.keywords)
        if self.providers:
            result["providers"] = [p.to_dict() for p in self.providers]
        if self.properties:
            result["properties"] = dict(self.properties)
        result.update(self.meta.to_dict())
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Collection:
        """Create an empty Collection from a STAC Collection dict.

        ``rel="item"`` links are not kept as owned links; use
        :func:`item_order` to recover membership order. The spatial extent
        is left unset: it is derived from items once they are attached.
        """
        interval = [None, None]
        temporal = (data.get("extent") or {}).get("temporal") or {}
        if temporal.get("interval"):
            interval = temporal["interval"][0]
        return cls(
            stac_id=data.get("id", ""),
            title=data.get("title") or data.get("id", ""),
            description=data.get("description", ""),
            license=data.get("license", DEFAULT_LICENSE),
            start_datetime=interval[0],
            end_datetime=interval[1],
            providers=[Provider.from_dict(p) for p in data.get("providers") or []],
            keywords=list(data.get("keywords") or []),
            links=[
                Link.from_dict(link)
                for link in data.get("links", [])
                if link.get("rel") != ITEM_REL
            ],
            properties={str(k): str(v) for k, v in (data.get("properties") or {}).items()},
            meta=EntityMeta.from_dict(data),
        )


def item_order(data: dict[str, Any]) -> list[str]:
    """Item ids in membership order, read from a STAC Collection's item links."""
    order = []
    for link in data.get("links", []):
        if link.get("rel") == ITEM_REL:
            href = str(link.get("href", ""))
            name = href.rstrip("/").rsplit("/", 1)[-1]
            order.append(name[: -len(".json")] if name.endswith(".json") else name)
    return order
