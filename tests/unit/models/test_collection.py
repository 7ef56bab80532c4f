"""Unit tests for the Collection and Provider dataclasses.

Tests cover:
- Required fields and identifier validation
- Keyword set semantics and temporal range validation
- STAC JSON serialization, including derived item links
"""

from __future__ import annotations

import threading

import pytest

from geocatalog import graph
from geocatalog.errors import InvalidIdentifierError, InvalidTimeRangeError, ValidationError
from geocatalog.geometry import GLOBAL_BBOX, bbox_to_polygon
from geocatalog.models.collection import DEFAULT_LICENSE, Collection, Provider, item_order
from geocatalog.models.item import Item
from geocatalog.models.link import Link


class TestProvider:
    """Tests for the Provider value object."""

    @pytest.mark.unit
    def test_requires_name(self) -> None:
        """A provider needs a non-blank name."""
        with pytest.raises(ValidationError):
            Provider(name="")

    @pytest.mark.unit
    def test_value_equality(self) -> None:
        """Providers with the same fields are equal."""
        assert Provider(name="ESA", roles=("producer",)) == Provider(
            name="ESA", roles=["producer"]  # type: ignore[arg-type]
        )

    @pytest.mark.unit
    def test_to_dict_omits_unset_fields(self) -> None:
        """Only set fields are serialized."""
        assert Provider(name="ESA", url="https://esa.int").to_dict() == {
            "name": "ESA",
            "url": "https://esa.int",
        }


class TestCollectionCreation:
    """Tests for Collection construction."""

    @pytest.mark.unit
    def test_defaults(self) -> None:
        """A new collection is empty, proprietary, and unbounded in time."""
        collection = Collection(stac_id="sat-2024", title="Satellite scenes")
        assert collection.license == DEFAULT_LICENSE
        assert collection.items == []
        assert collection.spatial_extent is None
        assert (collection.start_datetime, collection.end_datetime) == (None, None)
        assert collection.meta.created == collection.meta.updated

    @pytest.mark.unit
    def test_requires_title(self) -> None:
        """A blank title is rejected."""
        with pytest.raises(ValidationError, match="requires a title"):
            Collection(stac_id="sat-2024", title="  ")

    @pytest.mark.unit
    def test_invalid_id(self) -> None:
        """Ids with illegal characters are rejected."""
        with pytest.raises(InvalidIdentifierError):
            Collection(stac_id="sat 2024", title="x")

    @pytest.mark.unit
    def test_id_is_immutable(self) -> None:
        """The catalog id cannot be reassigned."""
        collection = Collection(stac_id="sat-2024", title="x")
        with pytest.raises(ValidationError, match="immutable"):
            collection.stac_id = "other"

    @pytest.mark.unit
    def test_keywords_deduplicated_in_order(self) -> None:
        """Bulk keywords keep their first-seen order without repeats."""
        collection = Collection(stac_id="c", title="c", keywords=["b", "a", "b"])
        assert collection.keywords == ["b", "a"]

    @pytest.mark.unit
    def test_inverted_temporal_range(self) -> None:
        """start after end is rejected."""
        with pytest.raises(InvalidTimeRangeError):
            Collection(
                stac_id="c",
                title="c",
                start_datetime="2024-12-31",  # type: ignore[arg-type]
                end_datetime="2024-01-01",  # type: ignore[arg-type]
            )

    @pytest.mark.unit
    def test_touch_bumps_revision(self) -> None:
        """touch() records a modification."""
        collection = Collection(stac_id="c", title="c")
        before = collection.revision
        collection.touch()
        assert collection.revision == before + 1

    @pytest.mark.unit
    def test_each_collection_has_its_own_lock(self) -> None:
        """Locks are per collection and re-entrant."""
        a = Collection(stac_id="a", title="a")
        b = Collection(stac_id="b", title="b")
        assert a.lock is not b.lock
        assert isinstance(a.lock, type(threading.RLock()))


class TestCollectionSerialization:
    """Tests for to_dict/from_dict and item links."""

    @pytest.mark.unit
    def test_empty_collection_advertises_global_bbox(self) -> None:
        """STAC needs a bbox; empty collections use the whole world."""
        data = Collection(stac_id="c", title="c").to_dict()
        assert data["extent"]["spatial"]["bbox"] == [list(GLOBAL_BBOX)]
        assert data["extent"]["temporal"]["interval"] == [[None, None]]

    @pytest.mark.unit
    def test_item_links_follow_membership(self) -> None:
        """Members appear as rel=item links after owned links, in order."""
        collection = Collection(stac_id="c", title="c")
        graph.add_link(collection, Link(rel="license", href="https://example.com/license"))
        for item_id in ("b", "a"):
            graph.add_item(collection, Item(stac_id=item_id))
        links = collection.to_dict()["links"]
        assert [link["rel"] for link in links] == ["license", "item", "item"]
        assert [link["href"] for link in links[1:]] == ["./items/b.json", "./items/a.json"]

    @pytest.mark.unit
    def test_from_dict_drops_item_links(self) -> None:
        """Item links are membership, not owned links."""
        source = Collection(stac_id="c", title="c", keywords=["sar"])
        graph.add_item(source, Item(stac_id="i1", geometry=bbox_to_polygon([0, 0, 1, 1])))
        data = source.to_dict()

        restored = Collection.from_dict(data)
        assert restored.links == []
        assert restored.items == []
        assert restored.keywords == ["sar"]
        assert restored.meta.internal_id == source.meta.internal_id
        assert item_order(data) == ["i1"]

    @pytest.mark.unit
    def test_item_order_ignores_other_links(self) -> None:
        """item_order reads only rel=item hrefs."""
        data = {
            "links": [
                {"rel": "self", "href": "./collection.json"},
                {"rel": "item", "href": "./items/x.json"},
                {"rel": "item", "href": "https://host/items/y"},
            ]
        }
        assert item_order(data) == ["x", "y"]
