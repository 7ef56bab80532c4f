"""Geometry helpers built on shapely.

Items carry GeoJSON geometry dicts (the STAC wire shape); shapely is used to
validate them, derive bounding boxes, and answer intersection tests.

Bounding boxes are [west, south, east, north] in WGS84. Antimeridian-crossing
boxes (west > east) are rejected rather than split.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Any

from shapely.errors import ShapelyError
from shapely.geometry import box, shape
from shapely.geometry.base import BaseGeometry

from geocatalog.errors import InvalidBboxError, InvalidGeometryError

BBox = tuple[float, float, float, float]

GLOBAL_BBOX: BBox = (-180.0, -90.0, 180.0, 90.0)


def parse_geometry(geometry: Any) -> BaseGeometry:
    """Parse a GeoJSON geometry dict into a shapely geometry.

    Args:
        geometry: GeoJSON geometry object (dict with "type" and "coordinates").

    Returns:
        Non-empty shapely geometry.

    Raises:
        InvalidGeometryError: If the object is not a parseable, non-empty geometry.
    """
    if not isinstance(geometry, dict):
        raise InvalidGeometryError(f"expected a GeoJSON object, got {type(geometry).__name__}")
    if "type" not in geometry:
        raise InvalidGeometryError("missing 'type'")
    try:
        geom = shape(geometry)
    except (ShapelyError, KeyError, TypeError, ValueError, IndexError, AttributeError) as e:
        raise InvalidGeometryError(f"{geometry.get('type')}: {e}") from e
    if geom.is_empty:
        raise InvalidGeometryError(f"{geometry['type']} is empty")
    return geom


def validate_bbox(bbox: Sequence[float]) -> BBox:
    """Validate a bbox and normalize it to a 2D tuple.

    Accepts 4-element boxes and 6-element (3D) boxes; the vertical
    component of a 3D box is dropped.

    Raises:
        InvalidBboxError: On wrong arity, non-numeric values, out-of-range
            coordinates, or inverted axes.
    """
    if len(bbox) not in (4, 6):
        raise InvalidBboxError(f"bbox must have 4 or 6 elements, got {len(bbox)}")
    try:
        values = [float(v) for v in bbox]
    except (TypeError, ValueError) as e:
        raise InvalidBboxError(f"non-numeric value in {list(bbox)}") from e

    if len(values) == 6:
        west, south, east, north = values[0], values[1], values[3], values[4]
    else:
        west, south, east, north = values

    if west < -180 or west > 180 or east < -180 or east > 180:
        raise InvalidBboxError(f"longitude must be in [-180, 180], got west={west}, east={east}")
    if south < -90 or south > 90 or north < -90 or north > 90:
        raise InvalidBboxError(f"latitude must be in [-90, 90], got south={south}, north={north}")
    if south > north:
        raise InvalidBboxError(f"south must be <= north, got south={south}, north={north}")
    if west > east:
        raise InvalidBboxError(
            f"west must be <= east (antimeridian boxes are not supported), "
            f"got west={west}, east={east}"
        )
    return (west, south, east, north)


def geometry_bbox(geometry: dict[str, Any]) -> BBox:
    """Return the envelope of a GeoJSON geometry as a bbox."""
    minx, miny, maxx, maxy = parse_geometry(geometry).bounds
    return (minx, miny, maxx, maxy)


def union_bbox(bboxes: Iterable[BBox]) -> BBox | None:
    """Return the smallest bbox covering all given boxes, or None if empty."""
    result: BBox | None = None
    for west, south, east, north in bboxes:
        if result is None:
            result = (west, south, east, north)
        else:
            result = (
                min(result[0], west),
                min(result[1], south),
                max(result[2], east),
                max(result[3], north),
            )
    return result


def bbox_to_polygon(bbox: Sequence[float]) -> dict[str, Any]:
    """Convert a bbox to a closed GeoJSON Polygon.

    Args:
        bbox: [west, south, east, north].

    Returns:
        GeoJSON Polygon geometry.
    """
    west, south, east, north = bbox[0], bbox[1], bbox[2], bbox[3]
    return {
        "type": "Polygon",
        "coordinates": [
            [
                [west, south],
                [east, south],
                [east, north],
                [west, north],
                [west, south],
            ]
        ],
    }


def bbox_geometry(bbox: Sequence[float]) -> BaseGeometry:
    """Shapely polygon for a bbox (degenerate boxes become lines or points)."""
    return box(bbox[0], bbox[1], bbox[2], bbox[3])


def bboxes_intersect(a: Sequence[float], b: Sequence[float]) -> bool:
    """True if two bboxes share at least one point (touching counts)."""
    return a[0] <= b[2] and b[0] <= a[2] and a[1] <= b[3] and b[1] <= a[3]

