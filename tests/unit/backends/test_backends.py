"""Tests for catalog store discovery and the CatalogStore protocol.

Tests cover:
- CatalogStore protocol compliance of the built-in stores
- get_store() with built-in names and entry-point plugins
- Error handling for broken plugins
"""

from __future__ import annotations

from pathlib import Path
from typing import Any
from unittest.mock import MagicMock, patch

import pytest

from geocatalog.backends import CatalogStore, JsonFileStore, MemoryStore, get_store
from geocatalog.errors import ConfigInvalidValueError


class TestCatalogStoreProtocol:
    """Tests for protocol compliance."""

    @pytest.mark.unit
    @pytest.mark.parametrize("store_class", [JsonFileStore, MemoryStore])
    def test_builtin_stores_are_compliant(self, store_class: type[Any]) -> None:
        """Both built-in stores satisfy the protocol."""
        assert isinstance(store_class(), CatalogStore)

    @pytest.mark.unit
    def test_partial_implementation_fails_isinstance(self) -> None:
        """A class missing methods is not a CatalogStore."""

        class ReadOnlyStore:
            def load(self) -> list[Any]:
                return []

        assert not isinstance(ReadOnlyStore(), CatalogStore)


class TestGetStore:
    """Tests for get_store()."""

    @pytest.mark.unit
    def test_default_is_file(self, tmp_path: Path) -> None:
        """The default store is a JsonFileStore rooted where asked."""
        store = get_store(root=tmp_path)
        assert isinstance(store, JsonFileStore)
        assert store.root == tmp_path

    @pytest.mark.unit
    def test_memory(self) -> None:
        """'memory' gives a MemoryStore and ignores root."""
        assert isinstance(get_store("memory", root="/unused"), MemoryStore)

    @pytest.mark.unit
    def test_new_instance_each_call(self) -> None:
        """Stores are not shared between calls."""
        assert get_store("memory") is not get_store("memory")

    @pytest.mark.unit
    def test_unknown_lists_available(self) -> None:
        """Unknown names fail with the list of available stores."""
        with patch("geocatalog.backends.entry_points") as mock_eps:
            mock_eps.return_value = []
            with pytest.raises(ConfigInvalidValueError, match="available: file, memory"):
                get_store("postgres")

    @pytest.mark.unit
    def test_discovers_entry_point(self) -> None:
        """Plugins registered under geocatalog.stores are loaded by name."""
        mock_store = MagicMock(spec=CatalogStore)
        mock_store_class = MagicMock(return_value=mock_store)
        mock_entry_point = MagicMock()
        mock_entry_point.name = "postgres"
        mock_entry_point.load.return_value = mock_store_class

        with patch("geocatalog.backends.entry_points") as mock_eps:
            mock_eps.return_value = [mock_entry_point]
            store = get_store("postgres", dsn="postgresql://localhost/catalog")

        mock_eps.assert_called_once_with(group="geocatalog.stores")
        mock_store_class.assert_called_once_with(dsn="postgresql://localhost/catalog")
        assert store is mock_store

    @pytest.mark.unit
    def test_entry_point_name_must_match(self) -> None:
        """Only the entry point with the requested name is loaded."""
        mock_entry_point = MagicMock()
        mock_entry_point.name = "sqlite"

        with patch("geocatalog.backends.entry_points") as mock_eps:
            mock_eps.return_value = [mock_entry_point]
            with pytest.raises(ConfigInvalidValueError, match="sqlite"):
                get_store("postgres")
        mock_entry_point.load.assert_not_called()


class TestGetStoreErrorHandling:
    """Tests for broken plugins."""

    @pytest.mark.unit
    def test_import_error_on_load(self) -> None:
        """Load failures are reported with the plugin name and cause."""
        mock_entry_point = MagicMock()
        mock_entry_point.name = "broken"
        mock_entry_point.load.side_effect = ImportError("psycopg not found")

        with patch("geocatalog.backends.entry_points") as mock_eps:
            mock_eps.return_value = [mock_entry_point]
            with pytest.raises(ConfigInvalidValueError) as exc_info:
                get_store("broken")

        message = str(exc_info.value)
        assert "broken" in message
        assert "psycopg not found" in message

    @pytest.mark.unit
    def test_exception_on_instantiation(self) -> None:
        """Constructor failures are reported."""
        mock_entry_point = MagicMock()
        mock_entry_point.name = "failing"
        mock_entry_point.load.return_value = MagicMock(side_effect=TypeError("missing dsn"))

        with patch("geocatalog.backends.entry_points") as mock_eps:
            mock_eps.return_value = [mock_entry_point]
            with pytest.raises(ConfigInvalidValueError, match="failed to instantiate"):
                get_store("failing")

    @pytest.mark.unit
    def test_validates_protocol_compliance(self) -> None:
        """Plugins that are not CatalogStores are rejected."""

        class NotAStore:
            def __init__(self, **_options: Any) -> None:
                pass

        mock_entry_point = MagicMock()
        mock_entry_point.name = "invalid"
        mock_entry_point.load.return_value = NotAStore

        with patch("geocatalog.backends.entry_points") as mock_eps:
            mock_eps.return_value = [mock_entry_point]
            with pytest.raises(ConfigInvalidValueError, match="does not implement CatalogStore"):
                get_store("invalid")
