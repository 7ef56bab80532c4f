"""Catalog entity models.

Entities are dataclasses with STAC JSON serialization (to_dict/from_dict).
Collection and Item compose a shared EntityMeta record for internal identity
and timestamps.
"""

from __future__ import annotations

from geocatalog.models.analysis import AnalysisResult, ResultStatus
from geocatalog.models.base import EntityMeta, validate_identifier
from geocatalog.models.collection import DEFAULT_LICENSE, Collection, Provider, item_order
from geocatalog.models.item import Asset, Item
from geocatalog.models.link import DERIVED_FROM, Link

__all__ = [
    # Shared
    "EntityMeta",
    "validate_identifier",
    # Link
    "Link",
    "DERIVED_FROM",
    # Collection
    "Collection",
    "Provider",
    "DEFAULT_LICENSE",
    "item_order",
    # Item
    "Item",
    "Asset",
    # Analysis
    "AnalysisResult",
    "ResultStatus",
]
