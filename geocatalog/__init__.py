"""geocatalog - A STAC catalog engine for collections, items, and links."""

from geocatalog.errors import GeocatError
from geocatalog.models import (
    AnalysisResult,
    Asset,
    Collection,
    Item,
    Link,
    Provider,
    ResultStatus,
)
from geocatalog.query import CollectionFilter, QueryEngine, QueryFilter, QueryResult
from geocatalog.repository import CatalogRepository, open_repository
from geocatalog.temporal import TimeRange

__all__ = [
    "AnalysisResult",
    "Asset",
    "CatalogRepository",
    "Collection",
    "CollectionFilter",
    "GeocatError",
    "Item",
    "Link",
    "Provider",
    "QueryEngine",
    "QueryFilter",
    "QueryResult",
    "ResultStatus",
    "TimeRange",
    "open_repository",
]
