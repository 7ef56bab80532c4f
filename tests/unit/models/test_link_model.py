"""Unit tests for the Link value object."""

from __future__ import annotations

import pytest

from geocatalog.errors import InvalidLinkError
from geocatalog.models.link import Link


class TestLink:
    """Tests for Link validation and serialization."""

    @pytest.mark.unit
    @pytest.mark.parametrize(
        ("rel", "href"),
        [("", "https://example.com"), ("  ", "x"), ("via", ""), ("via", "   ")],
    )
    def test_blank_fields_rejected(self, rel: str, href: str) -> None:
        """rel and href must both be non-blank."""
        with pytest.raises(InvalidLinkError):
            Link(rel=rel, href=href)

    @pytest.mark.unit
    def test_value_equality(self) -> None:
        """Links with equal fields are equal and hash alike."""
        a = Link(rel="via", href="https://example.com", title="Source")
        b = Link(rel="via", href="https://example.com", title="Source")
        assert a == b
        assert len({a, b}) == 1

    @pytest.mark.unit
    def test_to_dict_omits_none(self) -> None:
        """Optional fields are left out when unset."""
        assert Link(rel="via", href="x").to_dict() == {"rel": "via", "href": "x"}

    @pytest.mark.unit
    def test_from_dict_missing_href(self) -> None:
        """A stored link without href is rejected on load."""
        with pytest.raises(InvalidLinkError, match="href"):
            Link.from_dict({"rel": "via"})

    @pytest.mark.unit
    def test_frozen(self) -> None:
        """Links cannot be modified after creation."""
        link = Link(rel="via", href="x")
        with pytest.raises(AttributeError):
            link.href = "y"  # type: ignore[misc]
