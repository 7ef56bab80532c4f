"""Link dataclass for STAC link objects.

Links connect collections and items to related resources, both internal
catalog references and external URLs.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from geocatalog.errors import InvalidLinkError

# Relation used for links to analysis outputs
DERIVED_FROM = "derived_from"


@dataclass(frozen=True)
class Link:
    """A STAC link object.

    Links are value objects: two links with the same fields are equal, and
    removing a link removes the first equal entry from its parent.

    Attributes:
        rel: Link relationship (e.g., "self", "parent", "child", "derived_from").
        href: Link URL, relative path, or internal catalog reference.
        type: Media type of linked resource (optional).
        title: Human-readable link title (optional).
    """

    rel: str
    href: str
    type: str | None = None
    title: str | None = None

    def __post_init__(self) -> None:
        """Reject links with blank rel or href."""
        if not isinstance(self.rel, str) or not self.rel.strip():
            raise InvalidLinkError("rel must be a non-empty string")
        if not isinstance(self.href, str) or not self.href.strip():
            raise InvalidLinkError("href must be a non-empty string")

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dict.

        Returns:
            Dict with non-None fields only.
        """
        result: dict[str, Any] = {
            "rel": self.rel,
            "href": self.href,
        }
        if self.type is not None:
            result["type"] = self.type
        if self.title is not None:
            result["title"] = self.title
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Link:
        """Create Link from dict.

        Raises:
            InvalidLinkError: If rel or href is missing or blank.
        """
        return cls(
            rel=data.get("rel", ""),
            href=data.get("href", ""),
            type=data.get("type"),
            title=data.get("title"),
        )
