"""Catalog stores for geocatalog.

This module provides the plugin discovery mechanism for catalog stores.
Two stores are built in: "file" (JsonFileStore, a directory of STAC JSON
files) and "memory" (MemoryStore). External packages can provide other
stores through the "geocatalog.stores" entry point.

Usage:
    from geocatalog.backends import get_store

    # Get the default file-based store
    store = get_store(root=catalog_path)

    # Get a specific store (if plugin is installed)
    store = get_store("postgres", dsn="...")

Plugin registration (in plugin's pyproject.toml):
    [project.entry-points."geocatalog.stores"]
    postgres = "geocatalog_pg:PostgresStore"
"""

from __future__ import annotations

import logging
from importlib.metadata import EntryPoint, entry_points
from typing import Any

from geocatalog.backends.json_file import JsonFileStore
from geocatalog.backends.memory import MemoryStore
from geocatalog.backends.protocol import CatalogStore, StoredCollection
from geocatalog.errors import ConfigInvalidValueError

__all__ = ["CatalogStore", "JsonFileStore", "MemoryStore", "StoredCollection", "get_store"]

logger = logging.getLogger(__name__)

BUILTIN_STORES = ("file", "memory")


def get_store(name: str = "file", **options: Any) -> CatalogStore:
    """Get a catalog store by name.

    Creates a NEW instance on each call. Keyword options are passed to the
    store constructor (built-in stores accept ``root``).

    Args:
        name: "file", "memory", or a plugin name.

    Returns:
        CatalogStore instance.

    Raises:
        ConfigInvalidValueError: If the store is unknown, fails to load or
            instantiate, or doesn't implement CatalogStore. The message lists
            the available stores.
    """
    if name == "file":
        logger.debug("Creating JsonFileStore instance")
        return JsonFileStore(**options)
    if name == "memory":
        logger.debug("Creating MemoryStore instance")
        return MemoryStore(**options)

    eps = entry_points(group="geocatalog.stores")
    for ep in eps:
        logger.debug("Found store plugin: %s", ep.name)
        if ep.name == name:
            return _load_plugin_store(ep, name, options)

    available = list(BUILTIN_STORES) + [ep.name for ep in eps]
    raise ConfigInvalidValueError("store", name, f"unknown store; available: {', '.join(available)}")


def _load_plugin_store(ep: EntryPoint, name: str, options: dict[str, Any]) -> CatalogStore:
    """Load and validate a plugin store from an entry point."""
    try:
        logger.debug("Loading store class from entry point: %s", name)
        store_class = ep.load()
    except Exception as e:
        logger.error("Failed to load store '%s': %s", name, e)
        raise ConfigInvalidValueError("store", name, f"failed to load: {e}") from e

    try:
        store = store_class(**options)
    except Exception as e:
        logger.error("Failed to instantiate store '%s': %s", name, e)
        raise ConfigInvalidValueError("store", name, f"failed to instantiate: {e}") from e

    if not isinstance(store, CatalogStore):
        logger.error("Store '%s' does not implement CatalogStore protocol", name)
        raise ConfigInvalidValueError("store", name, "does not implement CatalogStore protocol")

    logger.debug("Successfully loaded store: %s", name)
    return store
