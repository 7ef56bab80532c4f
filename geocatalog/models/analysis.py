"""AnalysisResult record produced by the AI workflow subsystem.

The catalog does not run workflows; it consumes their result records and
lets collections/items reference completed results through
``rel="derived_from"`` links.

Status lifecycle::

    PENDING -> PROCESSING -> COMPLETED
       |           |-------> FAILED
       |           '-------> CANCELLED
       '--> FAILED | CANCELLED

Terminal records (COMPLETED, FAILED, CANCELLED) are immutable.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Any

from geocatalog.errors import InvalidStatusTransitionError, ValidationError
from geocatalog.geometry import parse_geometry
from geocatalog.models.base import now_utc
from geocatalog.models.link import DERIVED_FROM, Link
from geocatalog.temporal import TimeRange


class ResultStatus(Enum):
    """Processing state of an analysis result."""

    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL


_TERMINAL = frozenset({ResultStatus.COMPLETED, ResultStatus.FAILED, ResultStatus.CANCELLED})

_TRANSITIONS: dict[ResultStatus, frozenset[ResultStatus]] = {
    ResultStatus.PENDING: frozenset(
        {ResultStatus.PROCESSING, ResultStatus.FAILED, ResultStatus.CANCELLED}
    ),
    ResultStatus.PROCESSING: frozenset(
        {ResultStatus.COMPLETED, ResultStatus.FAILED, ResultStatus.CANCELLED}
    ),
    ResultStatus.COMPLETED: frozenset(),
    ResultStatus.FAILED: frozenset(),
    ResultStatus.CANCELLED: frozenset(),
}


@dataclass(eq=False)
class AnalysisResult:
    """Result of one AI workflow run.

    Attributes:
        result_id: Identifier assigned by the workflow subsystem.
        name: Display name.
        workflow_id: Workflow that produced the result.
        status: Current processing state.
        description: Free-text description.
        result_path: URI of the produced asset.
        area_of_interest: GeoJSON geometry analysed.
        time_range: Time window analysed.
        confidence_score: Model confidence in [0, 1].
        processing_time_ms: Wall time of the run.
        metrics: Named metric values.
        execution_date: When the run started.
        completion_date: When a terminal state was reached.
    """

    result_id: str
    name: str
    workflow_id: str
    status: ResultStatus = ResultStatus.PENDING
    description: str | None = None
    result_path: str | None = None
    area_of_interest: dict[str, Any] | None = None
    time_range: TimeRange | None = None
    confidence_score: float | None = None
    processing_time_ms: int | None = None
    metrics: dict[str, str] = field(default_factory=dict)
    execution_date: datetime = field(default_factory=now_utc)
    completion_date: datetime | None = None

    def __post_init__(self) -> None:
        if not self.result_id:
            raise ValidationError("Analysis result requires a result_id")
        if self.area_of_interest is not None:
            parse_geometry(self.area_of_interest)
        if self.confidence_score is not None and not 0.0 <= self.confidence_score <= 1.0:
            raise ValidationError(
                f"confidence_score must be in [0, 1], got {self.confidence_score}"
            )
        if self.status.is_terminal:
            self._freeze()

    def __setattr__(self, name: str, value: Any) -> None:
        if self.__dict__.get("_frozen"):
            raise ValidationError(
                f"Analysis result '{self.result_id}' is {self.status.value} and immutable"
            )
        super().__setattr__(name, value)

    def _freeze(self) -> None:
        self.metrics = MappingProxyType(dict(self.metrics))  # type: ignore[assignment]
        object.__setattr__(self, "_frozen", True)

    def transition(self, target: ResultStatus, *, at: datetime | None = None) -> None:
        """Move to a new status.

        Reaching a terminal status stamps completion_date and freezes the record.

        Raises:
            InvalidStatusTransitionError: If the edge is not in the lifecycle.
        """
        if target not in _TRANSITIONS[self.status]:
            raise InvalidStatusTransitionError(self.result_id, self.status.value, target.value)
        self.status = target
        if target.is_terminal:
            self.completion_date = at or now_utc()
            self._freeze()

    def to_link(self) -> Link:
        """A derived_from link pointing at this result's asset.

        Raises:
            ValidationError: Unless the result is COMPLETED.
        """
        if self.status is not ResultStatus.COMPLETED:
            raise ValidationError(
                f"Only completed analysis results can be linked; "
                f"'{self.result_id}' is {self.status.value}"
            )
        href = self.result_path or f"analysis-results/{self.result_id}"
        return Link(rel=DERIVED_FROM, href=href, title=self.name)
