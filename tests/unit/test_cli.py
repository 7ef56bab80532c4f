"""Tests for the geocatalog CLI: collections, items, search, export/import.

Commands run against a file-backed catalog in a temporary directory. JSON
output is parsed from the envelope; text output is checked for key phrases.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest
from click.testing import CliRunner, Result

from geocatalog.cli import cli


@pytest.fixture
def runner() -> CliRunner:
    """Create a Click test runner."""
    return CliRunner()


def run(runner: CliRunner, catalog: Path, *args: str, fmt: str = "text") -> Result:
    return runner.invoke(cli, ["--catalog", str(catalog), "--format", fmt, *args])


def run_json(runner: CliRunner, catalog: Path, *args: str) -> dict[str, Any]:
    result = run(runner, catalog, *args, fmt="json")
    envelope: dict[str, Any] = json.loads(result.output)
    return envelope


@pytest.fixture
def populated(runner: CliRunner, catalog_dir: Path) -> Path:
    """Catalog with sat-2024 holding I1 and I2."""
    run(runner, catalog_dir, "collection", "create", "sat-2024", "--title", "Satellite scenes 2024")
    run(runner, catalog_dir, "item", "add", "sat-2024", "I1", "--bbox", "0,0,1,1",
        "--datetime", "2024-01-01T00:00:00Z", "-p", "platform=sentinel-2a")
    run(runner, catalog_dir, "item", "add", "sat-2024", "I2", "--bbox", "5,5,6,6",
        "--datetime", "2024-06-01T00:00:00Z", "-p", "platform=sentinel-2b")
    return catalog_dir


class TestCollectionCommands:
    """Tests for `geocatalog collection ...`."""

    @pytest.mark.unit
    def test_create(self, runner: CliRunner, catalog_dir: Path) -> None:
        """collection create writes the collection and reports success."""
        result = run(runner, catalog_dir, "collection", "create", "sat-2024", "-k", "optical")
        assert result.exit_code == 0, result.output
        assert "Created collection sat-2024" in result.output
        assert (catalog_dir / "collections" / "sat-2024" / "collection.json").is_file()

    @pytest.mark.unit
    def test_create_json(self, runner: CliRunner, catalog_dir: Path) -> None:
        """JSON output carries the collection summary."""
        envelope = run_json(runner, catalog_dir, "collection", "create", "sat-2024",
                            "--license", "CC-BY-4.0")
        assert envelope["success"] is True
        assert envelope["command"] == "collection create"
        assert envelope["data"]["id"] == "sat-2024"
        assert envelope["data"]["license"] == "CC-BY-4.0"
        assert envelope["data"]["items"] == 0

    @pytest.mark.unit
    def test_create_duplicate(self, runner: CliRunner, catalog_dir: Path) -> None:
        """A duplicate id fails with exit code 1 and an error code."""
        run(runner, catalog_dir, "collection", "create", "sat-2024")
        result = run(runner, catalog_dir, "collection", "create", "sat-2024", fmt="json")
        assert result.exit_code == 1
        envelope = json.loads(result.output)
        assert envelope["success"] is False
        assert envelope["errors"][0]["code"] == "GCAT-CF001"

    @pytest.mark.unit
    def test_create_invalid_id(self, runner: CliRunner, catalog_dir: Path) -> None:
        """Invalid ids are reported in text mode."""
        result = run(runner, catalog_dir, "collection", "create", "bad id")
        assert result.exit_code == 1
        assert "Invalid collection id" in result.output

    @pytest.mark.unit
    def test_list(self, runner: CliRunner, populated: Path) -> None:
        """collection list shows counts."""
        envelope = run_json(runner, populated, "collection", "list")
        assert envelope["data"]["count"] == 1
        summary = envelope["data"]["collections"][0]
        assert summary["items"] == 2
        assert summary["bbox"] == [0.0, 0.0, 6.0, 6.0]
        assert summary["interval"] == ["2024-01-01T00:00:00Z", "2024-06-01T00:00:00Z"]

    @pytest.mark.unit
    def test_list_empty(self, runner: CliRunner, catalog_dir: Path) -> None:
        """An empty catalog says so."""
        result = run(runner, catalog_dir, "collection", "list")
        assert result.exit_code == 0
        assert "No collections found" in result.output

    @pytest.mark.unit
    def test_show_json_is_stac(self, runner: CliRunner, populated: Path) -> None:
        """collection show --format json prints STAC Collection JSON."""
        envelope = run_json(runner, populated, "collection", "show", "sat-2024")
        data = envelope["data"]
        assert data["type"] == "Collection"
        assert [link["href"] for link in data["links"] if link["rel"] == "item"] == [
            "./items/I1.json",
            "./items/I2.json",
        ]

    @pytest.mark.unit
    def test_show_missing(self, runner: CliRunner, catalog_dir: Path) -> None:
        """Unknown collections exit 1 with a not-found message."""
        result = run(runner, catalog_dir, "collection", "show", "nope")
        assert result.exit_code == 1
        assert "Collection 'nope' not found" in result.output

    @pytest.mark.unit
    def test_delete_cascades(self, runner: CliRunner, populated: Path) -> None:
        """collection delete removes items too."""
        envelope = run_json(runner, populated, "collection", "delete", "sat-2024")
        assert envelope["data"] == {"id": "sat-2024", "items_deleted": 2}

        result = run(runner, populated, "item", "show", "I1", fmt="json")
        assert result.exit_code == 1
        assert json.loads(result.output)["errors"][0]["code"] == "GCAT-NF002"

        again = run(runner, populated, "collection", "delete", "sat-2024")
        assert again.exit_code == 1

    @pytest.mark.unit
    def test_recompute(self, runner: CliRunner, populated: Path) -> None:
        """collection recompute reports the refreshed extent."""
        envelope = run_json(runner, populated, "collection", "recompute", "sat-2024")
        assert envelope["data"]["bbox"] == [0.0, 0.0, 6.0, 6.0]


class TestItemCommands:
    """Tests for `geocatalog item ...`."""

    @pytest.mark.unit
    def test_add_json(self, runner: CliRunner, populated: Path) -> None:
        """item add prints the created STAC Item."""
        envelope = run_json(runner, populated, "item", "add", "sat-2024", "I3",
                            "--start", "2024-02-01T00:00:00Z", "--end", "2024-03-01T00:00:00Z",
                            "--title", "Mosaic")
        data = envelope["data"]
        assert data["id"] == "I3"
        assert data["collection"] == "sat-2024"
        assert data["properties"]["start_datetime"] == "2024-02-01T00:00:00Z"
        assert data["properties"]["title"] == "Mosaic"

    @pytest.mark.unit
    def test_add_from_file(self, runner: CliRunner, populated: Path, tmp_path: Path) -> None:
        """Items can be read from a STAC Item JSON file."""
        item_file = tmp_path / "scene.json"
        item_file.write_text(json.dumps({
            "type": "Feature",
            "id": "from-file",
            "geometry": {"type": "Point", "coordinates": [3, 3]},
            "properties": {"datetime": "2024-03-01T00:00:00Z", "eo:cloud_cover": 5},
            "assets": {"data": {"href": "scene.tif", "type": "image/tiff"}},
            "links": [],
        }))
        result = run(runner, populated, "item", "add", "sat-2024", "--file", str(item_file))
        assert result.exit_code == 0, result.output

        envelope = run_json(runner, populated, "item", "show", "from-file")
        assert envelope["data"]["properties"]["eo:cloud_cover"] == "5"
        assert envelope["data"]["assets"]["data"]["href"] == "scene.tif"

    @pytest.mark.unit
    def test_add_requires_id(self, runner: CliRunner, populated: Path) -> None:
        """Without --file an item id is needed."""
        result = run(runner, populated, "item", "add", "sat-2024")
        assert result.exit_code == 2
        assert "ITEM_ID is required" in result.output

    @pytest.mark.unit
    def test_add_bad_bbox(self, runner: CliRunner, populated: Path) -> None:
        """Malformed --bbox is a usage error."""
        result = run(runner, populated, "item", "add", "sat-2024", "I9", "--bbox", "0,0,1")
        assert result.exit_code == 2

    @pytest.mark.unit
    def test_add_duplicate_in_other_collection(self, runner: CliRunner, populated: Path) -> None:
        """Item ids are unique across the catalog by default."""
        run(runner, populated, "collection", "create", "other")
        result = run(runner, populated, "item", "add", "other", "I1", fmt="json")
        assert result.exit_code == 1
        assert json.loads(result.output)["errors"][0]["code"] == "GCAT-CF002"

    @pytest.mark.unit
    def test_show_text(self, runner: CliRunner, populated: Path) -> None:
        """item show prints a one-line summary and properties."""
        result = run(runner, populated, "item", "show", "I1")
        assert result.exit_code == 0
        assert "sat-2024/I1  2024-01-01T00:00:00Z" in result.output
        assert "platform: sentinel-2a" in result.output

    @pytest.mark.unit
    def test_remove(self, runner: CliRunner, populated: Path) -> None:
        """item remove deletes the item and shrinks the extent."""
        envelope = run_json(runner, populated, "item", "remove", "I2")
        assert envelope["data"] == {"id": "I2", "collection": "sat-2024"}
        listed = run_json(runner, populated, "collection", "list")
        assert listed["data"]["collections"][0]["bbox"] == [0.0, 0.0, 1.0, 1.0]
        assert not (populated / "collections" / "sat-2024" / "items" / "I2.json").exists()


class TestSearchCommand:
    """Tests for `geocatalog search`."""

    @pytest.mark.unit
    def test_bbox(self, runner: CliRunner, populated: Path) -> None:
        """--bbox selects intersecting items."""
        envelope = run_json(runner, populated, "search", "--bbox", "0,0,2,2")
        assert [item["id"] for item in envelope["data"]["items"]] == ["I1"]
        assert envelope["data"]["matched"] == 1

    @pytest.mark.unit
    def test_datetime(self, runner: CliRunner, populated: Path) -> None:
        """--datetime selects overlapping items."""
        envelope = run_json(runner, populated, "search", "--datetime",
                            "2024-05-01T00:00:00Z/2024-07-01T00:00:00Z")
        assert [item["id"] for item in envelope["data"]["items"]] == ["I2"]

    @pytest.mark.unit
    def test_property(self, runner: CliRunner, populated: Path) -> None:
        """--property filters on exact values."""
        envelope = run_json(runner, populated, "search", "-p", "platform=sentinel-2a")
        assert [item["id"] for item in envelope["data"]["items"]] == ["I1"]

    @pytest.mark.unit
    def test_pagination(self, runner: CliRunner, populated: Path) -> None:
        """--limit and --cursor page through results."""
        first = run_json(runner, populated, "search", "--limit", "1")
        cursor = first["data"]["next_cursor"]
        assert cursor is not None
        second = run_json(runner, populated, "search", "--limit", "1", "--cursor", cursor)
        assert [item["id"] for item in second["data"]["items"]] == ["I2"]
        assert second["data"]["next_cursor"] is None

    @pytest.mark.unit
    def test_invalid_cursor(self, runner: CliRunner, populated: Path) -> None:
        """A bad cursor is a validation error."""
        result = run(runner, populated, "search", "--cursor", "garbage", fmt="json")
        assert result.exit_code == 1
        assert json.loads(result.output)["errors"][0]["code"] == "GCAT-VAL007"

    @pytest.mark.unit
    def test_no_match_text(self, runner: CliRunner, populated: Path) -> None:
        """Empty results are not an error."""
        result = run(runner, populated, "search", "--bbox", "100,10,101,11")
        assert result.exit_code == 0
        assert "No items matched" in result.output

    @pytest.mark.unit
    def test_max_limit_from_config(self, runner: CliRunner, populated: Path) -> None:
        """Configured max_limit clamps --limit."""
        run(runner, populated, "config", "set", "default_limit", "1")
        run(runner, populated, "config", "set", "max_limit", "1")
        envelope = run_json(runner, populated, "search", "--limit", "50")
        assert envelope["data"]["returned"] == 1
        assert envelope["data"]["matched"] == 2


class TestExportImport:
    """Tests for `geocatalog export` and `geocatalog import`."""

    @pytest.mark.unit
    def test_roundtrip(self, runner: CliRunner, populated: Path, tmp_path: Path) -> None:
        """An exported catalog imports into an empty one."""
        out = tmp_path / "stac"
        exported = run_json(runner, populated, "export", str(out))
        assert exported["data"]["collections"] == 1
        assert exported["data"]["items"] == 2

        target = tmp_path / "target"
        target.mkdir()
        imported = run_json(runner, target, "import", str(out / "catalog.json"))
        assert imported["data"] == {"collections": 1, "items": 2}
        found = run_json(runner, target, "search", "--bbox", "0,0,2,2")
        assert [item["id"] for item in found["data"]["items"]] == ["I1"]

    @pytest.mark.unit
    def test_import_missing_file(self, runner: CliRunner, catalog_dir: Path) -> None:
        """A missing catalog.json exits 1."""
        result = run(runner, catalog_dir, "import", str(catalog_dir / "nope.json"))
        assert result.exit_code == 1
        assert "Catalog not found" in result.output
