"""Free-form metadata on collections and items.

Property maps are string -> string and are mutated one key at a time.
Keywords behave as an ordered set; providers are an ordered list that
allows duplicates.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Union

from geocatalog.errors import InvalidPropertyError, ValidationError
from geocatalog.graph import lock_for
from geocatalog.models.collection import Collection, Provider
from geocatalog.models.item import Item

Entity = Union[Collection, Item]


def _check_key(key: str) -> None:
    if not isinstance(key, str) or not key.strip():
        raise InvalidPropertyError("key must be a non-empty string")


def _check_value(key: str, value: object) -> None:
    if not isinstance(value, str):
        raise InvalidPropertyError(f"value for '{key}' must be a string, got {type(value).__name__}")


def check_properties(properties: Mapping[str, str]) -> dict[str, str]:
    """Validate a whole property map (used when an entity is created).

    Raises:
        InvalidPropertyError: On a blank key or a non-string value.
    """
    for key, value in properties.items():
        _check_key(key)
        _check_value(key, value)
    return dict(properties)


def set_property(entity: Entity, key: str, value: str) -> None:
    """Insert or replace a property.

    Raises:
        InvalidPropertyError: If the key is blank or the value is not a string.
    """
    _check_key(key)
    _check_value(key, value)
    with lock_for(entity):
        entity.properties[key] = value
        entity.touch()


def get_property(entity: Entity, key: str, default: str | None = None) -> str | None:
    """Return a property value, or default if the key is absent."""
    return entity.properties.get(key, default)


def remove_property(entity: Entity, key: str) -> bool:
    """Remove a property if present.

    Returns:
        True if the key existed, False otherwise (no error).
    """
    with lock_for(entity):
        if key not in entity.properties:
            return False
        del entity.properties[key]
        entity.touch()
        return True


def add_keyword(collection: Collection, keyword: str) -> bool:
    """Add a keyword; existing keywords are left as they are.

    Returns:
        True if the keyword was added, False if it was already present.
    """
    if not isinstance(keyword, str) or not keyword.strip():
        raise ValidationError("keyword must be a non-empty string")
    with collection.lock:
        if keyword in collection.keywords:
            return False
        collection.keywords.append(keyword)
        collection.touch()
        return True


def remove_keyword(collection: Collection, keyword: str) -> bool:
    """Remove a keyword if present."""
    with collection.lock:
        if keyword not in collection.keywords:
            return False
        collection.keywords.remove(keyword)
        collection.touch()
        return True


def add_provider(collection: Collection, provider: Provider) -> None:
    """Append a provider. Providers sharing a name are kept side by side."""
    if not isinstance(provider, Provider):
        raise ValidationError(f"expected Provider, got {type(provider).__name__}")
    with collection.lock:
        collection.providers.append(provider)
        collection.touch()


def remove_provider(collection: Collection, provider: Provider) -> bool:
    """Remove the first provider equal to ``provider``, if any."""
    with collection.lock:
        try:
            collection.providers.remove(provider)
        except ValueError:
            return False
        collection.touch()
        return True
