"""Structured error codes for geocatalog.

All errors follow the format GCAT-{category}{number}:
- GCAT-NF*: Referenced collection/item is absent
- GCAT-CF*: Duplicate identifier on create/add
- GCAT-VAL*: Missing or malformed input
- GCAT-CON*: Internal invariant violated (programming defect)
- GCAT-LCK*: Lock acquisition timed out
- GCAT-STO*: Store (persistence) failures
- GCAT-CFG*: Configuration errors
"""

from __future__ import annotations

from typing import Any


class GeocatError(Exception):
    """Base class for all geocatalog errors.

    All errors have:
    - code: Structured error code (e.g., GCAT-NF001)
    - message: Human-readable error message
    """

    code: str = "GCAT-000"

    # Reserved attribute names that cannot be overwritten by context
    _RESERVED_ATTRS = frozenset({"code", "message", "context", "args"})

    def __init__(self, message: str, **context: Any) -> None:
        """Initialize a geocatalog error.

        Args:
            message: Human-readable error message.
            **context: Additional context stored as error attributes.
                Reserved keys (code, message, context, args) are ignored.
        """
        self.message = message
        self.context = context
        for key, value in context.items():
            if key not in self._RESERVED_ATTRS:
                setattr(self, key, value)
        super().__init__(f"[{self.code}] {message}")

    def to_dict(self) -> dict[str, Any]:
        """Convert error to JSON-serializable dict."""
        return {
            "code": self.code,
            "message": self.message,
            "context": {key: _jsonable(value) for key, value in self.context.items()},
        }


def _jsonable(value: Any) -> Any:
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return str(value)


# Not found (GCAT-NF*)
class NotFoundError(GeocatError):
    """Base class for missing collections, items, and links."""

    code = "GCAT-NF000"


class CollectionNotFoundError(NotFoundError):
    """Raised when a collection is required but not found.

    Error code: GCAT-NF001
    """

    code = "GCAT-NF001"

    def __init__(self, collection_id: str) -> None:
        super().__init__(f"Collection '{collection_id}' not found", collection_id=collection_id)


class ItemNotFoundError(NotFoundError):
    """Raised when an item is required but not found.

    Error code: GCAT-NF002
    """

    code = "GCAT-NF002"

    def __init__(self, item_id: str, collection_id: str | None = None) -> None:
        if collection_id is None:
            message = f"Item '{item_id}' not found"
        else:
            message = f"Item '{item_id}' not found in collection '{collection_id}'"
        super().__init__(message, item_id=item_id, collection_id=collection_id)


# Conflicts (GCAT-CF*)
class ConflictError(GeocatError):
    """Base class for duplicate identifiers."""

    code = "GCAT-CF000"


class CollectionAlreadyExistsError(ConflictError):
    """Raised when attempting to create a collection that already exists.

    Error code: GCAT-CF001
    """

    code = "GCAT-CF001"

    def __init__(self, collection_id: str) -> None:
        super().__init__(
            f"Collection '{collection_id}' already exists", collection_id=collection_id
        )


class ItemAlreadyExistsError(ConflictError):
    """Raised when an item id is already taken within its scope.

    Error code: GCAT-CF002
    """

    code = "GCAT-CF002"

    def __init__(self, item_id: str, collection_id: str | None = None) -> None:
        if collection_id is None:
            message = f"Item '{item_id}' already exists in the catalog"
        else:
            message = f"Item '{item_id}' already exists in collection '{collection_id}'"
        super().__init__(message, item_id=item_id, collection_id=collection_id)


# Validation (GCAT-VAL*)
class ValidationError(GeocatError, ValueError):
    """Base class for missing or malformed input."""

    code = "GCAT-VAL000"


class InvalidIdentifierError(ValidationError):
    """Raised when a catalog identifier is empty or uses illegal characters.

    Error code: GCAT-VAL001
    """

    code = "GCAT-VAL001"

    def __init__(self, identifier: str, kind: str = "catalog") -> None:
        super().__init__(
            f"Invalid {kind} id '{identifier}': must match pattern ^[A-Za-z0-9_.-]+$",
            identifier=identifier,
            kind=kind,
        )


class InvalidLinkError(ValidationError):
    """Raised when a link is missing rel/href or uses a reserved rel.

    Error code: GCAT-VAL002
    """

    code = "GCAT-VAL002"

    def __init__(self, reason: str) -> None:
        super().__init__(f"Invalid link: {reason}", reason=reason)


class InvalidGeometryError(ValidationError):
    """Raised when a GeoJSON geometry cannot be parsed or is empty.

    Error code: GCAT-VAL003
    """

    code = "GCAT-VAL003"

    def __init__(self, reason: str) -> None:
        super().__init__(f"Invalid geometry: {reason}", reason=reason)


class InvalidBboxError(ValidationError):
    """Raised when a bounding box is invalid.

    Error code: GCAT-VAL004
    """

    code = "GCAT-VAL004"

    def __init__(self, reason: str) -> None:
        super().__init__(f"Invalid bounding box: {reason}", reason=reason)


class InvalidTimeRangeError(ValidationError):
    """Raised when a time range is malformed or has start > end.

    Error code: GCAT-VAL005
    """

    code = "GCAT-VAL005"

    def __init__(self, reason: str) -> None:
        super().__init__(f"Invalid time range: {reason}", reason=reason)


class InvalidPropertyError(ValidationError):
    """Raised when a property key or value is not a usable string.

    Error code: GCAT-VAL006
    """

    code = "GCAT-VAL006"

    def __init__(self, reason: str) -> None:
        super().__init__(f"Invalid property: {reason}", reason=reason)


class InvalidCursorError(ValidationError):
    """Raised when a pagination cursor cannot be decoded.

    Error code: GCAT-VAL007
    """

    code = "GCAT-VAL007"

    def __init__(self, cursor: str) -> None:
        super().__init__(f"Invalid pagination cursor: {cursor!r}", cursor=cursor)


class InvalidStatusTransitionError(ValidationError):
    """Raised when an analysis result is moved along an illegal edge.

    Error code: GCAT-VAL008
    """

    code = "GCAT-VAL008"

    def __init__(self, result_id: str, current: str, target: str) -> None:
        super().__init__(
            f"Analysis result '{result_id}' cannot move from {current} to {target}",
            result_id=result_id,
            current=current,
            target=target,
        )


# Consistency (GCAT-CON*)
class ConsistencyError(GeocatError):
    """Raised when an internal invariant is broken.

    Always a programming defect; never triggered by user input.

    Error code: GCAT-CON001
    """

    code = "GCAT-CON001"


# Locking (GCAT-LCK*)
class LockTimeoutError(GeocatError, TimeoutError):
    """Raised when a collection lock cannot be acquired in time.

    Error code: GCAT-LCK001
    """

    code = "GCAT-LCK001"

    def __init__(self, resource: str, timeout: float) -> None:
        super().__init__(
            f"Timed out after {timeout}s waiting for lock on '{resource}'",
            resource=resource,
            timeout=timeout,
        )


# Store (GCAT-STO*)
class StoreError(GeocatError):
    """Raised when the backing store fails to read or write.

    Error code: GCAT-STO001
    """

    code = "GCAT-STO001"


class StoreNotOpenError(StoreError):
    """Raised when a repository is used before open() or after close().

    Error code: GCAT-STO002
    """

    code = "GCAT-STO002"

    def __init__(self) -> None:
        super().__init__("Catalog repository is not open")


# Configuration (GCAT-CFG*)
class ConfigError(GeocatError):
    """Base class for configuration-related errors."""

    code = "GCAT-CFG000"


class ConfigParseError(ConfigError):
    """Raised when a configuration file cannot be parsed.

    Error code: GCAT-CFG001
    """

    code = "GCAT-CFG001"

    def __init__(self, path: str, parse_error: str) -> None:
        super().__init__(
            f"Failed to parse config file {path}: {parse_error}",
            path=path,
            parse_error=parse_error,
        )


class ConfigInvalidValueError(ConfigError):
    """Raised when a setting has a value outside its allowed domain.

    Error code: GCAT-CFG002
    """

    code = "GCAT-CFG002"

    def __init__(self, key: str, value: object, detail: str) -> None:
        super().__init__(
            f"Invalid value {value!r} for setting '{key}': {detail}",
            key=key,
            value=value,
            detail=detail,
        )
