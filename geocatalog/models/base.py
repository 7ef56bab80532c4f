"""Shared identity/timestamp record and identifier rules.

EntityMeta is composed into Collection and Item (``entity.meta``) rather than
inherited, so each entity keeps a flat dataclass layout.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any
from uuid import UUID, uuid4

from geocatalog.errors import InvalidIdentifierError
from geocatalog.temporal import format_datetime, parse_datetime

# Valid STAC identifier pattern: alphanumeric, dots, hyphens, underscores
ID_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+$")

STAC_VERSION = "1.0.0"

# Extension-style field carrying the internal id through STAC JSON
INTERNAL_ID_FIELD = "geocatalog:internal_id"


def now_utc() -> datetime:
    """Get current UTC datetime."""
    return datetime.now(timezone.utc)


def validate_identifier(identifier: str, kind: str = "catalog") -> str:
    """Check a stable catalog id against ID_PATTERN.

    Raises:
        InvalidIdentifierError: If the id is empty or has illegal characters.
    """
    if not isinstance(identifier, str) or not ID_PATTERN.match(identifier):
        raise InvalidIdentifierError(str(identifier), kind)
    # "." and ".." would escape the store directory layout
    if not identifier.strip("."):
        raise InvalidIdentifierError(identifier, kind)
    return identifier


@dataclass
class EntityMeta:
    """Internal identity and bookkeeping timestamps.

    Attributes:
        internal_id: Store-level identifier, distinct from the stable catalog id.
        created: Creation timestamp (UTC).
        updated: Last modification timestamp (UTC); equals created initially.
    """

    internal_id: UUID = field(default_factory=uuid4)
    created: datetime = field(default_factory=now_utc)
    updated: datetime | None = None

    def __post_init__(self) -> None:
        if self.updated is None:
            self.updated = self.created

    def touch(self) -> None:
        """Record a modification."""
        self.updated = now_utc()

    def to_dict(self) -> dict[str, Any]:
        return {
            INTERNAL_ID_FIELD: str(self.internal_id),
            "created": format_datetime(self.created),
            "updated": format_datetime(self.updated),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> EntityMeta:
        """Rebuild from the fields written by to_dict (missing ones are regenerated)."""
        meta = cls()
        if data.get(INTERNAL_ID_FIELD):
            meta.internal_id = UUID(data[INTERNAL_ID_FIELD])
        if data.get("created"):
            meta.created = parse_datetime(data["created"])
            meta.updated = meta.created
        if data.get("updated"):
            meta.updated = parse_datetime(data["updated"])
        return meta
