"""Tests for STAC interop: pystac conversion, export and import."""

from __future__ import annotations

import json
import re
from pathlib import Path

import pystac
import pytest

from geocatalog.backends import MemoryStore
from geocatalog.errors import (
    CollectionAlreadyExistsError,
    ItemAlreadyExistsError,
    ValidationError,
)
from geocatalog.models.collection import Collection, Provider
from geocatalog.models.item import Asset, Item
from geocatalog.models.link import Link
from geocatalog.repository import CatalogRepository
from geocatalog.stac import (
    export_catalog,
    generate_stac_id,
    import_catalog,
    to_pystac_collection,
    to_pystac_item,
)


class TestGenerateStacId:
    """Tests for id generation."""

    @pytest.mark.unit
    def test_prefix_and_uuid(self) -> None:
        """Ids are <prefix>-<uuid4>."""
        assert re.fullmatch(r"scene-[0-9a-f-]{36}", generate_stac_id("scene"))

    @pytest.mark.unit
    def test_unique(self) -> None:
        """Two calls never collide."""
        assert generate_stac_id("x") != generate_stac_id("x")


class TestToPystac:
    """Tests for entity -> pystac conversion."""

    @pytest.mark.unit
    def test_item(self) -> None:
        """Items keep geometry, time, assets, properties and non-structural links."""
        item = Item(
            stac_id="I1",
            geometry={"type": "Point", "coordinates": [1, 2]},
            datetime="2024-06-01T00:00:00Z",  # type: ignore[arg-type]
            title="Scene",
            assets={"data": Asset(href="I1.tif", type="image/tiff", roles=("data",))},
            properties={"platform": "sentinel-2a"},
            links=[Link(rel="derived_from", href="runs/1"), Link(rel="self", href="x")],
        )
        stac_item = to_pystac_item(item)
        assert stac_item.id == "I1"
        assert stac_item.bbox == [1.0, 2.0, 1.0, 2.0]
        assert stac_item.properties["platform"] == "sentinel-2a"
        assert stac_item.properties["title"] == "Scene"
        assert stac_item.assets["data"].media_type == "image/tiff"
        assert [link.rel for link in stac_item.links] == ["derived_from"]

    @pytest.mark.unit
    def test_undated_item_rejected(self) -> None:
        """STAC items need a timestamp."""
        with pytest.raises(ValidationError, match="no timestamp"):
            to_pystac_item(Item(stac_id="I1"))

    @pytest.mark.unit
    def test_collection(self) -> None:
        """Collections carry extent, license, keywords, providers and properties."""
        collection = Collection(
            stac_id="sat-2024",
            title="Satellite scenes 2024",
            license="CC-BY-4.0",
            keywords=["optical"],
            providers=[Provider(name="ESA", roles=("producer",))],
            properties={"mission": "copernicus"},
        )
        stac_collection = to_pystac_collection(collection)
        assert stac_collection.license == "CC-BY-4.0"
        assert stac_collection.keywords == ["optical"]
        assert stac_collection.providers is not None
        assert stac_collection.providers[0].name == "ESA"
        assert stac_collection.extent.spatial.bboxes == [[-180.0, -90.0, 180.0, 90.0]]
        assert stac_collection.extra_fields["properties"] == {"mission": "copernicus"}


class TestExport:
    """Tests for export_catalog."""

    @pytest.mark.unit
    def test_writes_self_contained_catalog(
        self, sat_2024: CatalogRepository, tmp_path: Path
    ) -> None:
        """Export writes catalog, collection and item files with relative links."""
        result = export_catalog(sat_2024, tmp_path / "out")
        assert (result.collections, result.items, result.skipped) == (1, 2, [])

        catalog_file = tmp_path / "out" / "catalog.json"
        data = json.loads(catalog_file.read_text())
        assert all(not link["href"].startswith("/") for link in data["links"])

        catalog = pystac.Catalog.from_file(str(catalog_file))
        collection = next(iter(catalog.get_children()))
        assert collection.id == "sat-2024"
        assert sorted(item.id for item in collection.get_items()) == ["I1", "I2"]

    @pytest.mark.unit
    def test_skips_undated_items(self, sat_2024: CatalogRepository, tmp_path: Path) -> None:
        """Items without a timestamp are left out and reported."""
        sat_2024.create_item("sat-2024", "I3")
        result = export_catalog(sat_2024, tmp_path / "out")
        assert result.items == 2
        assert result.skipped == ["I3"]


class TestImport:
    """Tests for import_catalog."""

    @pytest.mark.unit
    def test_roundtrip(self, sat_2024: CatalogRepository, tmp_path: Path) -> None:
        """Exported catalogs import back with the same content."""
        sat_2024.add_keyword("sat-2024", "optical")
        sat_2024.add_link(Link(rel="derived_from", href="runs/1"), item_id="I1")
        export_catalog(sat_2024, tmp_path / "out")

        with CatalogRepository(MemoryStore()) as target:
            counts = import_catalog(target, tmp_path / "out" / "catalog.json")
            assert counts == (1, 2)

            collection = target.get_collection("sat-2024")
            assert collection.title == "Satellite scenes 2024"
            assert collection.keywords == ["optical"]
            assert collection.spatial_extent == (0.0, 0.0, 6.0, 6.0)

            item = target.get_item("I1")
            assert item.properties == {"platform": "sentinel-2a", "cloud": "low"}
            assert item.datetime == sat_2024.get_item("I1").datetime
            assert [link.rel for link in item.links] == ["derived_from"]

    @pytest.mark.unit
    def test_missing_file(self, repo: CatalogRepository, tmp_path: Path) -> None:
        """A missing catalog file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            import_catalog(repo, tmp_path / "nope.json")

    @pytest.mark.unit
    def test_id_clash(self, sat_2024: CatalogRepository, tmp_path: Path) -> None:
        """Importing into a catalog that already has the collection fails."""
        export_catalog(sat_2024, tmp_path / "out")
        with pytest.raises(CollectionAlreadyExistsError):
            import_catalog(sat_2024, tmp_path / "out" / "catalog.json")

    @pytest.mark.unit
    def test_item_clash_creates_nothing(
        self, sat_2024: CatalogRepository, tmp_path: Path
    ) -> None:
        """A taken item id fails the import before any collection is created."""
        export_catalog(sat_2024, tmp_path / "out")
        with CatalogRepository(MemoryStore()) as target:
            target.create_collection("other", title="Other scenes")
            target.create_item("other", "I2")
            with pytest.raises(ItemAlreadyExistsError, match="other"):
                import_catalog(target, tmp_path / "out" / "catalog.json")
            assert [c.stac_id for c in target.list_collections()] == ["other"]
            assert target.count_items("other") == 1
