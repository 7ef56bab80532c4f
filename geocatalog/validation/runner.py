"""Check runner that executes rules against an open repository."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from geocatalog.repository import CatalogRepository
from geocatalog.validation.results import CheckReport
from geocatalog.validation.rules import (
    BackReferenceRule,
    CheckRule,
    EmptyCollectionRule,
    ExtentCurrentRule,
    GlobalItemIdRule,
    ItemTimestampRule,
    ReservedLinkRule,
)

logger = logging.getLogger(__name__)

DEFAULT_RULES: tuple[CheckRule, ...] = (
    BackReferenceRule(),
    GlobalItemIdRule(),
    ReservedLinkRule(),
    ExtentCurrentRule(),
    ItemTimestampRule(),
    EmptyCollectionRule(),
)


def check(
    repository: CatalogRepository,
    *,
    rules: Sequence[CheckRule] | None = None,
) -> CheckReport:
    """Run check rules against a repository.

    Args:
        repository: An open repository.
        rules: Rules to run. Defaults to DEFAULT_RULES.
    """
    if rules is None:
        rules = DEFAULT_RULES

    report = CheckReport()
    for rule in rules:
        result = rule.check(repository)
        logger.debug("Rule %s: %s", rule.name, "pass" if result.passed else "fail")
        report.results.append(result)
    return report
