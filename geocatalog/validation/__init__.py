"""Consistency checks for geocatalog catalogs.

This module provides the public API for checking a catalog:
- check(): Run rules against an open repository
- CheckReport: Aggregate check results
- CheckRule: Base class for custom rules
"""

from geocatalog.validation.results import CheckReport, CheckResult, Severity
from geocatalog.validation.rules import CheckRule
from geocatalog.validation.runner import DEFAULT_RULES, check

__all__ = [
    "CheckReport",
    "CheckResult",
    "CheckRule",
    "DEFAULT_RULES",
    "Severity",
    "check",
]
