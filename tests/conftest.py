"""Shared pytest fixtures for geocatalog tests."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from geocatalog.backends import JsonFileStore, MemoryStore
from geocatalog.geometry import bbox_to_polygon
from geocatalog.repository import CatalogRepository

if TYPE_CHECKING:
    from collections.abc import Iterator


# =============================================================================
# Repositories
# =============================================================================


@pytest.fixture
def repo() -> Iterator[CatalogRepository]:
    """Open repository backed by an in-memory store (global item id scope)."""
    with CatalogRepository(MemoryStore()) as repository:
        yield repository


@pytest.fixture
def scoped_repo() -> Iterator[CatalogRepository]:
    """Open in-memory repository with per-collection item ids."""
    with CatalogRepository(MemoryStore(), item_id_scope="collection") as repository:
        yield repository


@pytest.fixture
def catalog_dir(tmp_path: Path) -> Path:
    """Empty catalog root directory."""
    root = tmp_path / "catalog"
    root.mkdir()
    return root


@pytest.fixture
def file_repo(catalog_dir: Path) -> Iterator[CatalogRepository]:
    """Open repository backed by a JsonFileStore in catalog_dir."""
    with CatalogRepository(JsonFileStore(catalog_dir)) as repository:
        yield repository


# =============================================================================
# Sample catalog
# =============================================================================


@pytest.fixture
def sat_2024(repo: CatalogRepository) -> CatalogRepository:
    """Repository with collection "sat-2024" holding I1 and I2.

    I1: bbox [0, 0, 1, 1], datetime 2024-01-01
    I2: bbox [5, 5, 6, 6], datetime 2024-06-01
    """
    repo.create_collection("sat-2024", title="Satellite scenes 2024")
    repo.create_item(
        "sat-2024",
        "I1",
        geometry=bbox_to_polygon([0, 0, 1, 1]),
        datetime="2024-01-01T00:00:00Z",
        properties={"platform": "sentinel-2a", "cloud": "low"},
    )
    repo.create_item(
        "sat-2024",
        "I2",
        geometry=bbox_to_polygon([5, 5, 6, 6]),
        datetime="2024-06-01T00:00:00Z",
        properties={"platform": "sentinel-2b", "cloud": "low"},
    )
    return repo
