"""Catalog check result data structures.

Rules produce one CheckResult each; the runner aggregates them into a
CheckReport for CLI display and JSON export.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class Severity(Enum):
    """Severity level for check results.

    ERROR: The catalog is inconsistent (check fails)
    WARNING: Suspicious but usable (check passes with warnings)
    INFO: Suggestion for improvement (always passes)
    """

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


@dataclass(frozen=True)
class CheckResult:
    """Result from a single rule.

    Attributes:
        rule_name: Identifier for the rule that produced this result.
        passed: Whether the rule passed.
        severity: How serious a failure is.
        message: Human-readable summary.
        offenders: Ids of the collections/items that failed, if any.
        fix_hint: Optional suggestion for fixing the issue.
    """

    rule_name: str
    passed: bool
    severity: Severity
    message: str
    offenders: tuple[str, ...] = ()
    fix_hint: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dict."""
        d: dict[str, Any] = {
            "rule_name": self.rule_name,
            "passed": self.passed,
            "severity": self.severity.value,
            "message": self.message,
        }
        if self.offenders:
            d["offenders"] = list(self.offenders)
        if self.fix_hint is not None:
            d["fix_hint"] = self.fix_hint
        return d


@dataclass
class CheckReport:
    """All results of one catalog check."""

    results: list[CheckResult] = field(default_factory=list)

    def _failed(self, severity: Severity) -> list[CheckResult]:
        return [r for r in self.results if not r.passed and r.severity is severity]

    @property
    def passed(self) -> bool:
        """True if no ERROR-severity rule failed."""
        return not self.errors

    @property
    def errors(self) -> list[CheckResult]:
        return self._failed(Severity.ERROR)

    @property
    def warnings(self) -> list[CheckResult]:
        return self._failed(Severity.WARNING)

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dict for --format json output."""
        return {
            "passed": self.passed,
            "error_count": len(self.errors),
            "warning_count": len(self.warnings),
            "results": [r.to_dict() for r in self.results],
        }
