"""geocatalog CLI - command-line interface over a file-backed catalog.

The CLI is a thin wrapper around the Python API (see repository.py and
query.py). All business logic lives in the library; the CLI handles user
interaction, output formatting, and exit codes.
"""

from __future__ import annotations

import contextlib
import json
import logging
from collections.abc import Iterator
from pathlib import Path
from typing import Any

import click

from geocatalog.config import (
    coerce_setting,
    get_setting,
    list_settings,
    resolve_settings,
    set_setting,
    unset_setting,
)
from geocatalog.errors import GeocatError
from geocatalog.geometry import bbox_to_polygon, validate_bbox
from geocatalog.json_output import ErrorDetail, error_envelope, success_envelope
from geocatalog.models.collection import DEFAULT_LICENSE, Collection
from geocatalog.models.item import Item
from geocatalog.output import detail, error, info, success, warn
from geocatalog.query import QueryEngine, QueryFilter
from geocatalog.repository import CatalogRepository, open_repository
from geocatalog.stac import export_catalog, import_catalog
from geocatalog.temporal import format_datetime
from geocatalog.validation import Severity
from geocatalog.validation import check as check_catalog

logger = logging.getLogger(__name__)


def should_output_json(ctx: click.Context) -> bool:
    """True if the global --format option asked for JSON."""
    obj = ctx.find_root().obj or {}
    return obj.get("format", "text") == "json"


def output_json_envelope(envelope: Any) -> None:
    """Output a JSON envelope to stdout."""
    click.echo(envelope.to_json())


def _catalog_path(ctx: click.Context) -> Path:
    return ctx.find_root().obj["catalog"]


@contextlib.contextmanager
def _handle_errors(ctx: click.Context, command: str) -> Iterator[None]:
    """Report catalog errors in the selected format and exit with status 1."""
    try:
        yield
    except (GeocatError, FileNotFoundError) as err:
        if should_output_json(ctx):
            output_json_envelope(error_envelope(command, [ErrorDetail.from_exception(err)]))
        else:
            error(err.message if isinstance(err, GeocatError) else str(err))
        raise SystemExit(1) from err


@contextlib.contextmanager
def _open_repository(ctx: click.Context) -> Iterator[CatalogRepository]:
    catalog = _catalog_path(ctx)
    settings = resolve_settings(catalog)
    if not ctx.find_root().obj.get("verbose"):
        logging.getLogger("geocatalog").setLevel(settings.log_level)
    with open_repository(catalog) as repo:
        yield repo


def _parse_bbox(
    ctx: click.Context, param: click.Parameter, value: str | None
) -> tuple[float, ...] | None:
    if value is None:
        return None
    try:
        return validate_bbox([float(part) for part in value.split(",")])
    except (ValueError, GeocatError) as e:
        raise click.BadParameter(f"expected west,south,east,north: {e}") from e


def _parse_pairs(
    ctx: click.Context, param: click.Parameter, values: tuple[str, ...]
) -> dict[str, str]:
    pairs: dict[str, str] = {}
    for value in values:
        key, sep, text = value.partition("=")
        if not sep or not key:
            raise click.BadParameter(f"expected KEY=VALUE, got {value!r}")
        pairs[key] = text
    return pairs


@click.group()
@click.version_option(package_name="geocatalog")
@click.option(
    "--catalog",
    "catalog_path",
    type=click.Path(file_okay=False, path_type=Path),
    default=".",
    help="Path to catalog root (default: current directory).",
)
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["json", "text"]),
    default="text",
    help="Output format (json for machine parsing, text for humans).",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.pass_context
def cli(ctx: click.Context, catalog_path: Path, output_format: str, verbose: bool) -> None:
    """geocatalog - Manage a STAC catalog of collections and items."""
    ctx.ensure_object(dict)
    ctx.obj["catalog"] = catalog_path
    ctx.obj["format"] = output_format
    ctx.obj["verbose"] = verbose
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


# ─────────────────────────────────────────────────────────────────────────────
# Collections
# ─────────────────────────────────────────────────────────────────────────────


def _collection_summary(collection: Collection) -> dict[str, Any]:
    return {
        "id": collection.stac_id,
        "title": collection.title,
        "license": collection.license,
        "items": len(collection.items),
        "bbox": list(collection.spatial_extent) if collection.spatial_extent else None,
        "interval": [
            format_datetime(collection.start_datetime),
            format_datetime(collection.end_datetime),
        ],
    }


@cli.group()
def collection() -> None:
    """Manage collections."""


@collection.command("create")
@click.argument("collection_id")
@click.option("--title", "-t", help="Display title (defaults to the id).")
@click.option("--description", "-d", default="", help="Collection description.")
@click.option("--license", "license_", default=DEFAULT_LICENSE, show_default=True)
@click.option("--keyword", "-k", "keywords", multiple=True, help="Keyword (repeatable).")
@click.option("--property", "-p", "properties", multiple=True, callback=_parse_pairs,
              help="KEY=VALUE property (repeatable).")
@click.pass_context
def collection_create(
    ctx: click.Context,
    collection_id: str,
    title: str | None,
    description: str,
    license_: str,
    keywords: tuple[str, ...],
    properties: dict[str, str],
) -> None:
    """Create an empty collection.

    Examples:

        geocatalog collection create sat-2024 --title "Satellite scenes 2024"
    """
    with _handle_errors(ctx, "collection create"), _open_repository(ctx) as repo:
        created = repo.create_collection(
            collection_id,
            title=title,
            description=description,
            license=license_,
            keywords=list(keywords),
            properties=properties,
        )
        if should_output_json(ctx):
            output_json_envelope(
                success_envelope("collection create", _collection_summary(created))
            )
        else:
            success(f"Created collection {created.stac_id}")


@collection.command("list")
@click.pass_context
def collection_list(ctx: click.Context) -> None:
    """List collections."""
    with _handle_errors(ctx, "collection list"), _open_repository(ctx) as repo:
        collections = repo.list_collections()
        if should_output_json(ctx):
            output_json_envelope(
                success_envelope(
                    "collection list",
                    {
                        "collections": [_collection_summary(c) for c in collections],
                        "count": len(collections),
                    },
                )
            )
            return
        if not collections:
            info("No collections found")
            return
        for c in collections:
            info(f"{c.stac_id} ({len(c.items)} item(s))")
            if c.title != c.stac_id:
                detail(f"  Title: {c.title}")


@collection.command("show")
@click.argument("collection_id")
@click.pass_context
def collection_show(ctx: click.Context, collection_id: str) -> None:
    """Show a collection as STAC JSON (json) or a summary (text)."""
    with _handle_errors(ctx, "collection show"), _open_repository(ctx) as repo:
        found = repo.get_collection(collection_id)
        if should_output_json(ctx):
            output_json_envelope(success_envelope("collection show", found.to_dict()))
            return
        summary = _collection_summary(found)
        info(f"{found.stac_id}: {found.title}")
        detail(f"  License: {found.license}")
        detail(f"  Items: {summary['items']}")
        detail(f"  Bbox: {summary['bbox']}")
        detail(f"  Interval: {summary['interval'][0]} / {summary['interval'][1]}")
        if found.keywords:
            detail(f"  Keywords: {', '.join(found.keywords)}")
        for key, value in found.properties.items():
            detail(f"  {key}: {value}")


@collection.command("delete")
@click.argument("collection_id")
@click.pass_context
def collection_delete(ctx: click.Context, collection_id: str) -> None:
    """Delete a collection together with all of its items and links."""
    with _handle_errors(ctx, "collection delete"), _open_repository(ctx) as repo:
        count = repo.count_items(collection_id)
        repo.delete_collection(collection_id)
        if should_output_json(ctx):
            output_json_envelope(
                success_envelope(
                    "collection delete", {"id": collection_id, "items_deleted": count}
                )
            )
        else:
            success(f"Deleted collection {collection_id} ({count} item(s))")


@collection.command("recompute")
@click.argument("collection_id")
@click.pass_context
def collection_recompute(ctx: click.Context, collection_id: str) -> None:
    """Recompute a collection's spatial and temporal extent from its items."""
    with _handle_errors(ctx, "collection recompute"), _open_repository(ctx) as repo:
        updated = repo.recompute_extent(collection_id)
        if should_output_json(ctx):
            output_json_envelope(
                success_envelope("collection recompute", _collection_summary(updated))
            )
        else:
            success(f"Recomputed extent of {collection_id}")
            detail(f"  Bbox: {updated.spatial_extent}")


# ─────────────────────────────────────────────────────────────────────────────
# Items
# ─────────────────────────────────────────────────────────────────────────────


@cli.group()
def item() -> None:
    """Manage items."""


def _item_line(found: Item) -> str:
    when = format_datetime(found.datetime) or (
        f"{format_datetime(found.start_datetime)}/{format_datetime(found.end_datetime)}"
        if found.start_datetime is not None
        else "-"
    )
    return f"{found.collection_id}/{found.stac_id}  {when}"


@item.command("add")
@click.argument("collection_id")
@click.argument("item_id", required=False)
@click.option("--file", "item_file", type=click.Path(exists=True, dir_okay=False, path_type=Path),
              help="Read the item from a STAC Item JSON file.")
@click.option("--bbox", callback=_parse_bbox, help="Geometry as west,south,east,north.")
@click.option("--geometry", "geometry_json", help="GeoJSON geometry object.")
@click.option("--datetime", "datetime_", help="Acquisition time (ISO 8601).")
@click.option("--start", help="Range start (ISO 8601).")
@click.option("--end", help="Range end (ISO 8601).")
@click.option("--title", "-t", help="Display title.")
@click.option("--property", "-p", "properties", multiple=True, callback=_parse_pairs,
              help="KEY=VALUE property (repeatable).")
@click.pass_context
def item_add(
    ctx: click.Context,
    collection_id: str,
    item_id: str | None,
    item_file: Path | None,
    bbox: tuple[float, ...] | None,
    geometry_json: str | None,
    datetime_: str | None,
    start: str | None,
    end: str | None,
    title: str | None,
    properties: dict[str, str],
) -> None:
    """Add an item to a collection.

    Examples:

        geocatalog item add sat-2024 scene-1 --bbox 0,0,1,1 --datetime 2024-01-01T00:00:00Z

        geocatalog item add sat-2024 --file scene-2.json
    """
    with _handle_errors(ctx, "item add"), _open_repository(ctx) as repo:
        fields: dict[str, Any] = {}
        if item_file is not None:
            try:
                parsed = Item.from_dict(json.loads(item_file.read_text()))
            except json.JSONDecodeError as e:
                raise click.BadParameter(f"not valid JSON: {e}", param_hint="--file") from e
            item_id = item_id or parsed.stac_id
            fields = {
                "geometry": parsed.geometry,
                "datetime": parsed.datetime,
                "start_datetime": parsed.start_datetime,
                "end_datetime": parsed.end_datetime,
                "title": parsed.title,
                "description": parsed.description,
                "assets": parsed.assets,
                "properties": parsed.properties,
                "links": parsed.links,
            }
        if item_id is None:
            raise click.UsageError("ITEM_ID is required unless --file is given")
        if bbox is not None:
            fields["geometry"] = bbox_to_polygon(bbox)
        elif geometry_json is not None:
            try:
                fields["geometry"] = json.loads(geometry_json)
            except json.JSONDecodeError as e:
                raise click.BadParameter(f"not valid JSON: {e}", param_hint="--geometry") from e
        for name, value in (("datetime", datetime_), ("start_datetime", start),
                            ("end_datetime", end), ("title", title)):
            if value is not None:
                fields[name] = value
        if properties:
            fields["properties"] = {**fields.get("properties", {}), **properties}

        created = repo.create_item(collection_id, item_id, **fields)
        if should_output_json(ctx):
            output_json_envelope(success_envelope("item add", created.to_dict()))
        else:
            success(f"Added {created.stac_id} to collection {collection_id}")
            if created.bbox is not None:
                detail(f"  Bbox: {list(created.bbox)}")


@item.command("show")
@click.argument("item_id")
@click.option("--collection", "-c", "collection_id", help="Collection holding the item.")
@click.pass_context
def item_show(ctx: click.Context, item_id: str, collection_id: str | None) -> None:
    """Show an item as STAC JSON (json) or a summary (text)."""
    with _handle_errors(ctx, "item show"), _open_repository(ctx) as repo:
        found = repo.get_item(item_id, collection_id)
        if should_output_json(ctx):
            output_json_envelope(success_envelope("item show", found.to_dict()))
            return
        info(_item_line(found))
        if found.title:
            detail(f"  Title: {found.title}")
        detail(f"  Bbox: {list(found.bbox) if found.bbox else None}")
        for key, value in found.properties.items():
            detail(f"  {key}: {value}")
        for name, asset in found.assets.items():
            detail(f"  Asset {name}: {asset.href}")


@item.command("remove")
@click.argument("item_id")
@click.option("--collection", "-c", "collection_id", help="Collection holding the item.")
@click.pass_context
def item_remove(ctx: click.Context, item_id: str, collection_id: str | None) -> None:
    """Delete an item."""
    with _handle_errors(ctx, "item remove"), _open_repository(ctx) as repo:
        found = repo.get_item(item_id, collection_id)
        owner = found.collection_id
        repo.delete_item(item_id, collection_id=owner)
        if should_output_json(ctx):
            output_json_envelope(
                success_envelope("item remove", {"id": item_id, "collection": owner})
            )
        else:
            success(f"Removed {item_id} from collection {owner}")


# ─────────────────────────────────────────────────────────────────────────────
# Search
# ─────────────────────────────────────────────────────────────────────────────


@cli.command()
@click.option("--bbox", callback=_parse_bbox, help="west,south,east,north")
@click.option("--datetime", "time_range", help="Instant or START/END (either side may be '..').")
@click.option("--property", "-p", "properties", multiple=True, callback=_parse_pairs,
              help="KEY=VALUE equality filter (repeatable).")
@click.option("--collection", "-c", "collection_id", help="Restrict to one collection.")
@click.option("--limit", type=click.IntRange(min=1), help="Page size.")
@click.option("--cursor", help="Cursor from a previous page.")
@click.option("--sort", "sort_by", type=click.Choice(["id", "datetime"]), default="id",
              show_default=True)
@click.pass_context
def search(
    ctx: click.Context,
    bbox: tuple[float, ...] | None,
    time_range: str | None,
    properties: dict[str, str],
    collection_id: str | None,
    limit: int | None,
    cursor: str | None,
    sort_by: str,
) -> None:
    """Search items by bbox, time, and properties.

    Examples:

        geocatalog search --bbox 0,0,2,2

        geocatalog search --datetime 2024-05-01T00:00:00Z/2024-07-01T00:00:00Z --sort datetime
    """
    with _handle_errors(ctx, "search"), _open_repository(ctx) as repo:
        settings = resolve_settings(_catalog_path(ctx))
        engine = QueryEngine(
            repo, default_limit=settings.default_limit, max_limit=settings.max_limit
        )
        result = engine.query(
            QueryFilter(
                bbox=bbox,
                time_range=time_range,
                properties=properties,
                collection_id=collection_id,
                limit=limit,
                cursor=cursor,
                sort_by=sort_by,
            )
        )
        if should_output_json(ctx):
            output_json_envelope(
                success_envelope(
                    "search",
                    {
                        "items": [found.to_dict() for found in result.items],
                        "matched": result.matched,
                        "returned": len(result),
                        "next_cursor": result.next_cursor,
                    },
                )
            )
            return
        if not result.items:
            info("No items matched")
            return
        for found in result.items:
            info(_item_line(found))
        detail(f"  {len(result)} of {result.matched} item(s)")
        if result.next_cursor:
            detail(f"  Next page: --cursor {result.next_cursor}")


# ─────────────────────────────────────────────────────────────────────────────
# Check / export / import
# ─────────────────────────────────────────────────────────────────────────────


def _print_check_result(result: Any) -> None:
    msg = f"{result.rule_name}: {result.message}"
    if result.passed:
        success(msg)
    elif result.severity == Severity.ERROR:
        error(msg)
    elif result.severity == Severity.WARNING:
        warn(msg)
    else:
        info(msg)
    if not result.passed:
        for offender in result.offenders:
            detail(f"  {offender}")
        if result.fix_hint:
            detail(f"  Hint: {result.fix_hint}")


@cli.command()
@click.option("--all", "show_all", is_flag=True, help="Show passing rules too.")
@click.pass_context
def check(ctx: click.Context, show_all: bool) -> None:
    """Check catalog consistency (back-references, ids, extents, links)."""
    with _handle_errors(ctx, "check"), _open_repository(ctx) as repo:
        report = check_catalog(repo)

    if should_output_json(ctx):
        data = report.to_dict()
        if report.passed:
            output_json_envelope(success_envelope("check", data))
        else:
            errors = [
                ErrorDetail(type="ConsistencyError", message=r.message) for r in report.errors
            ]
            output_json_envelope(error_envelope("check", errors, data=data))
    else:
        for result in report.results:
            if show_all or not result.passed:
                _print_check_result(result)
        if report.passed:
            success("All checks passed")
        else:
            error(f"Check failed: {len(report.errors)} error(s)")

    if not report.passed:
        raise SystemExit(1)


@cli.command()
@click.argument("dest", type=click.Path(file_okay=False, path_type=Path))
@click.option("--catalog-id", default="geocatalog", show_default=True)
@click.pass_context
def export(ctx: click.Context, dest: Path, catalog_id: str) -> None:
    """Export the catalog as a self-contained STAC catalog in DEST."""
    with _handle_errors(ctx, "export"), _open_repository(ctx) as repo:
        result = export_catalog(repo, dest, catalog_id=catalog_id)
        if should_output_json(ctx):
            output_json_envelope(
                success_envelope(
                    "export",
                    {
                        "path": str(dest.resolve()),
                        "collections": result.collections,
                        "items": result.items,
                        "skipped": result.skipped,
                    },
                )
            )
            return
        success(f"Exported {result.collections} collection(s), {result.items} item(s) to {dest}")
        for skipped in result.skipped:
            warn(f"Skipped {skipped}: no timestamp")


@cli.command("import")
@click.argument("catalog_file", type=click.Path(dir_okay=False, path_type=Path))
@click.pass_context
def import_(ctx: click.Context, catalog_file: Path) -> None:
    """Import collections and items from a STAC catalog.json."""
    with _handle_errors(ctx, "import"), _open_repository(ctx) as repo:
        collections, items = import_catalog(repo, catalog_file)
        if should_output_json(ctx):
            output_json_envelope(
                success_envelope("import", {"collections": collections, "items": items})
            )
        else:
            success(f"Imported {collections} collection(s), {items} item(s)")


# ─────────────────────────────────────────────────────────────────────────────
# Config
# ─────────────────────────────────────────────────────────────────────────────


@cli.group()
def config() -> None:
    """Read and write catalog settings."""


@config.command("get")
@click.argument("key")
@click.pass_context
def config_get(ctx: click.Context, key: str) -> None:
    """Show the resolved value of a setting."""
    with _handle_errors(ctx, "config get"):
        value = get_setting(key, catalog_path=_catalog_path(ctx))
        if should_output_json(ctx):
            output_json_envelope(success_envelope("config get", {"key": key, "value": value}))
        elif value is None:
            info(f"{key} is not set")
        else:
            info(f"{key} = {value}")


@config.command("set")
@click.argument("key")
@click.argument("value")
@click.pass_context
def config_set(ctx: click.Context, key: str, value: str) -> None:
    """Write a setting to the catalog config file."""
    with _handle_errors(ctx, "config set"):
        set_setting(_catalog_path(ctx), key, value)
        stored = coerce_setting(key, value)
        if should_output_json(ctx):
            output_json_envelope(success_envelope("config set", {"key": key, "value": stored}))
        else:
            success(f"Set {key} = {stored}")


@config.command("unset")
@click.argument("key")
@click.pass_context
def config_unset(ctx: click.Context, key: str) -> None:
    """Remove a setting from the catalog config file."""
    with _handle_errors(ctx, "config unset"):
        removed = unset_setting(_catalog_path(ctx), key)
        if should_output_json(ctx):
            output_json_envelope(
                success_envelope("config unset", {"key": key, "removed": removed})
            )
        elif removed:
            success(f"Removed {key}")
        else:
            info(f"{key} was not set")


@config.command("list")
@click.pass_context
def config_list(ctx: click.Context) -> None:
    """List all settings with their sources."""
    with _handle_errors(ctx, "config list"):
        settings = list_settings(_catalog_path(ctx))
        if should_output_json(ctx):
            output_json_envelope(success_envelope("config list", {"settings": settings}))
            return
        for key, entry in settings.items():
            info(f"{key} = {entry['value']}")
            detail(f"  (from {entry['source']})")
