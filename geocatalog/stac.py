"""STAC interop - converts catalog entities to pystac objects and back.

Key conventions:
- Exported catalogs are self-contained (relative links, portable)
- Items without any timestamp cannot be expressed as valid STAC and are
  skipped on export with a warning
- Free-form collection properties travel as the "properties" extra field
"""

from __future__ import annotations

import json
import logging
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import pystac

from geocatalog.errors import (
    CollectionAlreadyExistsError,
    ItemAlreadyExistsError,
    ItemNotFoundError,
    ValidationError,
)
from geocatalog.geometry import GLOBAL_BBOX
from geocatalog.models.collection import Collection, Provider
from geocatalog.models.item import Asset, Item
from geocatalog.models.link import Link
from geocatalog.repository import CatalogRepository

logger = logging.getLogger(__name__)

# pystac manages these relations itself
_STRUCTURAL_RELS = frozenset({"root", "parent", "child", "item", "self", "collection"})


def generate_stac_id(prefix: str) -> str:
    """Generate a unique catalog id of the form ``<prefix>-<uuid4>``."""
    return f"{prefix}-{uuid.uuid4()}"


@dataclass
class ExportResult:
    """Outcome of a catalog export.

    Attributes:
        catalog: The pystac catalog that was written.
        collections: Number of collections exported.
        items: Number of items exported.
        skipped: Ids of items left out because they have no timestamp.
    """

    catalog: pystac.Catalog
    collections: int = 0
    items: int = 0
    skipped: list[str] = field(default_factory=list)


def _pystac_link(link: Link) -> pystac.Link:
    return pystac.Link(rel=link.rel, target=link.href, media_type=link.type, title=link.title)


def to_pystac_item(item: Item) -> pystac.Item:
    """Convert an item to a pystac Item.

    Raises:
        ValidationError: If the item has neither datetime nor a range.
    """
    if item.interval is None:
        raise ValidationError(f"Item '{item.stac_id}' has no timestamp and is not valid STAC")

    properties: dict[str, Any] = dict(item.properties)
    if item.title is not None:
        properties["title"] = item.title
    if item.description is not None:
        properties["description"] = item.description

    result = pystac.Item(
        id=item.stac_id,
        geometry=item.geometry,
        bbox=list(item.bbox) if item.bbox is not None else None,
        datetime=item.datetime,
        properties=properties,
        start_datetime=item.start_datetime,
        end_datetime=item.end_datetime,
    )
    for name, asset in item.assets.items():
        result.add_asset(
            name,
            pystac.Asset(
                href=asset.href,
                title=asset.title,
                description=asset.description,
                media_type=asset.type,
                roles=list(asset.roles) or None,
            ),
        )
    for link in item.links:
        if link.rel not in _STRUCTURAL_RELS:
            result.add_link(_pystac_link(link))
    return result


def to_pystac_collection(collection: Collection) -> pystac.Collection:
    """Convert a collection (without its items) to a pystac Collection."""
    bbox = list(collection.spatial_extent or GLOBAL_BBOX)
    extent = pystac.Extent(
        spatial=pystac.SpatialExtent(bboxes=[bbox]),
        temporal=pystac.TemporalExtent(
            intervals=[[collection.start_datetime, collection.end_datetime]]
        ),
    )
    extra_fields: dict[str, Any] = {}
    if collection.properties:
        extra_fields["properties"] = dict(collection.properties)

    result = pystac.Collection(
        id=collection.stac_id,
        description=collection.description or collection.title,
        extent=extent,
        title=collection.title,
        license=collection.license,
        keywords=list(collection.keywords) or None,
        providers=[
            pystac.Provider(
                name=p.name,
                description=p.description,
                roles=list(p.roles) or None,
                url=p.url,
            )
            for p in collection.providers
        ]
        or None,
        extra_fields=extra_fields or None,
    )
    for link in collection.links:
        if link.rel not in _STRUCTURAL_RELS:
            result.add_link(_pystac_link(link))
    return result


def export_catalog(
    repository: CatalogRepository,
    dest_dir: Path,
    *,
    catalog_id: str = "geocatalog",
    description: str = "Exported geocatalog catalog",
) -> ExportResult:
    """Write every collection and item as a self-contained STAC catalog.

    Each collection is converted under its lock, so the export never
    contains a half-applied mutation of a single collection.
    """
    catalog = pystac.Catalog(id=catalog_id, description=description)
    result = ExportResult(catalog=catalog)

    for collection in repository.list_collections():
        with collection.lock:
            stac_collection = to_pystac_collection(collection)
            for item in collection.items:
                if item.interval is None:
                    logger.warning("Skipping item %s: no timestamp", item.stac_id)
                    result.skipped.append(item.stac_id)
                    continue
                stac_collection.add_item(to_pystac_item(item))
                result.items += 1
        catalog.add_child(stac_collection)
        result.collections += 1

    dest_dir.mkdir(parents=True, exist_ok=True)
    catalog.normalize_hrefs(str(dest_dir))
    catalog.save(catalog_type=pystac.CatalogType.SELF_CONTAINED)
    logger.debug(
        "Exported %d collection(s), %d item(s) to %s", result.collections, result.items, dest_dir
    )
    return result


def _as_text(value: Any) -> str:
    return value if isinstance(value, str) else json.dumps(value)


def _check_import_ids(
    repository: CatalogRepository,
    entries: list[tuple[pystac.Collection, list[pystac.Item]]],
) -> None:
    """Raise the conflict an import would hit, before anything is created."""
    taken = {collection.stac_id for collection in repository.list_collections()}
    item_owners: dict[Any, str] = {}
    for stac_collection, stac_items in entries:
        if stac_collection.id in taken:
            raise CollectionAlreadyExistsError(stac_collection.id)
        taken.add(stac_collection.id)
        for stac_item in stac_items:
            if repository.item_id_scope == "global":
                key: Any = stac_item.id
                try:
                    existing = repository.get_item(stac_item.id)
                except ItemNotFoundError:
                    pass
                else:
                    raise ItemAlreadyExistsError(stac_item.id, existing.collection_id)
            else:
                key = (stac_collection.id, stac_item.id)
            if key in item_owners:
                raise ItemAlreadyExistsError(stac_item.id, item_owners[key])
            item_owners[key] = stac_collection.id


def import_catalog(repository: CatalogRepository, catalog_file: Path) -> tuple[int, int]:
    """Create collections and items from a STAC catalog on disk.

    Non-string item properties are stored as their JSON text. Every id is
    checked for clashes first, so a conflicting import creates nothing.

    Returns:
        (collections created, items created)

    Raises:
        FileNotFoundError: If the catalog file doesn't exist.
        CollectionAlreadyExistsError, ItemAlreadyExistsError: On id clashes
            with existing catalog content or within the imported catalog.
    """
    if not catalog_file.exists():
        raise FileNotFoundError(f"Catalog not found: {catalog_file}")
    catalog = pystac.Catalog.from_file(str(catalog_file))
    entries = [
        (stac_collection, list(stac_collection.get_items()))
        for stac_collection in catalog.get_all_collections()
    ]
    _check_import_ids(repository, entries)

    collections = items = 0
    for stac_collection, stac_items in entries:
        temporal = stac_collection.extent.temporal.intervals[0]
        repository.create_collection(
            stac_collection.id,
            title=stac_collection.title,
            description=stac_collection.description or "",
            license=stac_collection.license,
            start_datetime=temporal[0],
            end_datetime=temporal[1],
            keywords=list(stac_collection.keywords or []),
            providers=[
                Provider(
                    name=p.name,
                    description=p.description,
                    roles=tuple(p.roles or ()),
                    url=p.url,
                )
                for p in stac_collection.providers or []
            ],
            properties={
                str(k): _as_text(v)
                for k, v in (stac_collection.extra_fields.get("properties") or {}).items()
            },
        )
        collections += 1
        for stac_item in stac_items:
            props = dict(stac_item.properties)
            repository.create_item(
                stac_collection.id,
                stac_item.id,
                geometry=stac_item.geometry,
                datetime=stac_item.datetime,
                start_datetime=props.pop("start_datetime", None),
                end_datetime=props.pop("end_datetime", None),
                title=props.pop("title", None),
                description=props.pop("description", None),
                assets={
                    name: Asset(
                        href=asset.href,
                        type=asset.media_type,
                        title=asset.title,
                        description=asset.description,
                        roles=tuple(asset.roles or ()),
                    )
                    for name, asset in stac_item.assets.items()
                },
                properties={
                    key: _as_text(value)
                    for key, value in props.items()
                    if key not in ("datetime", "created", "updated")
                },
                links=[
                    Link(rel=link.rel, href=link.href, type=link.media_type, title=link.title)
                    for link in stac_item.links
                    if link.rel not in _STRUCTURAL_RELS
                ],
            )
            items += 1
    logger.debug("Imported %d collection(s), %d item(s)", collections, items)
    return collections, items
