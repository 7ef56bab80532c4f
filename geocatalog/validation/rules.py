"""Catalog check rules.

Each rule inspects one aspect of an open repository and returns a single
CheckResult. Rules only read: they take each collection's lock while
looking at it and never modify anything.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence

from geocatalog.errors import ConsistencyError
from geocatalog.extent import compute_bbox, compute_interval
from geocatalog.graph import verify_back_references
from geocatalog.models.collection import ITEM_REL
from geocatalog.repository import CatalogRepository
from geocatalog.validation.results import CheckResult, Severity

# Extents are floats derived from float coordinates
_BBOX_TOLERANCE = 1e-9


class CheckRule(ABC):
    """Base class for all check rules.

    Subclasses must define:
        name: Unique identifier for the rule
        severity: ERROR, WARNING, or INFO
        description: Human-readable explanation for --verbose

    Subclasses must implement:
        check(): Run the rule and return a result
    """

    name: str
    severity: Severity
    description: str

    @abstractmethod
    def check(self, repository: CatalogRepository) -> CheckResult:
        """Run this rule against an open repository."""
        ...

    def _pass(self, message: str) -> CheckResult:
        return CheckResult(
            rule_name=self.name, passed=True, severity=self.severity, message=message
        )

    def _fail(
        self, message: str, offenders: Sequence[str], *, fix_hint: str | None = None
    ) -> CheckResult:
        return CheckResult(
            rule_name=self.name,
            passed=False,
            severity=self.severity,
            message=message,
            offenders=tuple(offenders),
            fix_hint=fix_hint,
        )


class BackReferenceRule(CheckRule):
    """Every member item points back at its collection, and ids are unique within it."""

    name = "back_references"
    severity = Severity.ERROR
    description = "Verify item back-references and per-collection id uniqueness"

    def check(self, repository: CatalogRepository) -> CheckResult:
        broken = []
        for collection in repository.list_collections():
            try:
                verify_back_references(collection)
            except ConsistencyError:
                broken.append(collection.stac_id)
        if broken:
            return self._fail(f"{len(broken)} collection(s) have broken membership", broken)
        return self._pass("All items point back at their collection")


class GlobalItemIdRule(CheckRule):
    """With the global id scope, no item id appears in two collections."""

    name = "global_item_ids"
    severity = Severity.ERROR
    description = "Verify item ids are unique across the catalog (global id scope only)"

    def check(self, repository: CatalogRepository) -> CheckResult:
        if repository.item_id_scope != "global":
            return self._pass("Item ids are scoped per collection")
        seen: dict[str, str] = {}
        duplicates = []
        for collection in repository.list_collections():
            with collection.lock:
                ids = [item.stac_id for item in collection.items]
            for item_id in ids:
                if item_id in seen:
                    duplicates.append(item_id)
                seen.setdefault(item_id, collection.stac_id)
        if duplicates:
            return self._fail(
                f"{len(duplicates)} item id(s) are used in more than one collection", duplicates
            )
        return self._pass(f"{len(seen)} item id(s), all unique")


class ReservedLinkRule(CheckRule):
    """Collections never own rel="item" links; membership is the item list."""

    name = "reserved_links"
    severity = Severity.ERROR
    description = "Verify collections carry no hand-made rel='item' links"

    def check(self, repository: CatalogRepository) -> CheckResult:
        offenders = []
        for collection in repository.list_collections():
            with collection.lock:
                if any(link.rel == ITEM_REL for link in collection.links):
                    offenders.append(collection.stac_id)
        if offenders:
            return self._fail(
                "Collections own rel='item' links outside the item list",
                offenders,
                fix_hint="Remove the links and add the items instead",
            )
        return self._pass("No reserved links")


class ExtentCurrentRule(CheckRule):
    """Stored extents match what the current items would produce.

    Extents go stale when attached items are edited in place without an
    explicit recompute.
    """

    name = "extent_current"
    severity = Severity.WARNING
    description = "Verify collection extents match their items"

    def check(self, repository: CatalogRepository) -> CheckResult:
        stale = []
        for collection in repository.list_collections():
            with collection.lock:
                if not collection.items:
                    continue
                bbox = compute_bbox(collection.items)
                interval = compute_interval(collection.items)
                if not _same_bbox(bbox, collection.spatial_extent) or interval != (
                    collection.start_datetime,
                    collection.end_datetime,
                ):
                    stale.append(collection.stac_id)
        if stale:
            return self._fail(
                f"{len(stale)} collection extent(s) are out of date",
                stale,
                fix_hint="Run: geocatalog collection recompute <id>",
            )
        return self._pass("All extents are current")


class ItemTimestampRule(CheckRule):
    """Items need a datetime or a range to be exported as STAC."""

    name = "item_timestamps"
    severity = Severity.WARNING
    description = "Find items without datetime or start/end range"

    def check(self, repository: CatalogRepository) -> CheckResult:
        undated = []
        for collection in repository.list_collections():
            with collection.lock:
                undated.extend(
                    f"{collection.stac_id}/{item.stac_id}"
                    for item in collection.items
                    if item.interval is None
                )
        if undated:
            return self._fail(
                f"{len(undated)} item(s) have no timestamp and will be skipped on export",
                undated,
            )
        return self._pass("All items have a timestamp")


class EmptyCollectionRule(CheckRule):
    """Collections without items advertise a global extent."""

    name = "empty_collections"
    severity = Severity.INFO
    description = "List collections that have no items"

    def check(self, repository: CatalogRepository) -> CheckResult:
        empty = [c.stac_id for c in repository.list_collections() if not c.items]
        if empty:
            return self._fail(f"{len(empty)} collection(s) have no items", empty)
        return self._pass("Every collection has items")


def _same_bbox(a: Sequence[float] | None, b: Sequence[float] | None) -> bool:
    if a is None or b is None:
        return a is None and b is None
    return all(abs(x - y) <= _BBOX_TOLERANCE for x, y in zip(a, b))
