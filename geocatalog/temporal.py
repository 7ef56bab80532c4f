"""Timestamp parsing and the time-range overlap rule.

All datetimes are normalized to timezone-aware UTC. Naive values are
interpreted as UTC.

Overlap uses half-open intervals: a record spanning [start, end] overlaps a
query [q.start, q.end) when ``start < q.end and end > q.start``. A record
with a single timestamp t is a zero-width interval and matches when
``q.start <= t < q.end``. Missing query bounds are unbounded.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone

from geocatalog.errors import InvalidTimeRangeError

# STAC API convention for an open interval bound
OPEN_BOUND = ".."


def parse_datetime(value: datetime | str) -> datetime:
    """Parse an ISO 8601 string (or pass through a datetime) as UTC.

    Raises:
        InvalidTimeRangeError: If the string is not ISO 8601.
    """
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(text)
        except ValueError as e:
            raise InvalidTimeRangeError(f"cannot parse timestamp {value!r}") from e
    else:
        raise InvalidTimeRangeError(f"expected datetime or ISO string, got {type(value).__name__}")

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_optional_datetime(value: datetime | str | None) -> datetime | None:
    """Like parse_datetime, but None and empty strings map to None."""
    if value is None or (isinstance(value, str) and value.strip() in ("", OPEN_BOUND)):
        return None
    return parse_datetime(value)


def format_datetime(value: datetime | None) -> str | None:
    """Format a UTC datetime as RFC 3339 with a trailing Z."""
    if value is None:
        return None
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass(frozen=True)
class TimeRange:
    """A time range with optional (unbounded) ends.

    Attributes:
        start: Inclusive lower bound, or None for unbounded.
        end: Exclusive upper bound, or None for unbounded.
    """

    start: datetime | None = None
    end: datetime | None = None

    def __post_init__(self) -> None:
        start = parse_optional_datetime(self.start)
        end = parse_optional_datetime(self.end)
        if start is not None and end is not None and start > end:
            raise InvalidTimeRangeError(
                f"start {format_datetime(start)} is after end {format_datetime(end)}"
            )
        object.__setattr__(self, "start", start)
        object.__setattr__(self, "end", end)

    @classmethod
    def parse(cls, text: str) -> TimeRange:
        """Parse "start/end" (either side may be ".." or empty) or a single instant.

        Examples:
            >>> TimeRange.parse("2024-05-01/2024-07-01")
            >>> TimeRange.parse("2024-05-01T00:00:00Z/..")
            >>> TimeRange.parse("2024-06-01")  # instant
        """
        if "/" in text:
            start_text, _, end_text = text.partition("/")
            return cls(parse_optional_datetime(start_text), parse_optional_datetime(end_text))
        instant = parse_datetime(text)
        return cls(instant, instant)

    @property
    def is_instant(self) -> bool:
        return self.start is not None and self.start == self.end

    @property
    def is_unbounded(self) -> bool:
        return self.start is None and self.end is None

    def overlaps(self, start: datetime, end: datetime) -> bool:
        """Check whether a record interval [start, end] overlaps this range.

        An instant query matches records whose closed interval contains it.
        """
        if self.is_instant:
            assert self.start is not None
            return start <= self.start <= end
        if start == end:
            return (self.start is None or self.start <= start) and (
                self.end is None or start < self.end
            )
        return (self.end is None or start < self.end) and (self.start is None or end > self.start)

    def overlaps_open(self, start: datetime | None, end: datetime | None) -> bool:
        """Overlap test against a record whose own bounds may be unbounded.

        Used for collection temporal extents, where a null bound means the
        collection is open on that side.
        """
        if self.end is not None and start is not None and start > self.end:
            return False
        if self.start is not None and end is not None and end < self.start:
            return False
        return True

    def to_interval(self) -> list[str | None]:
        """STAC interval form: [start, end] ISO strings or null."""
        return [format_datetime(self.start), format_datetime(self.end)]
