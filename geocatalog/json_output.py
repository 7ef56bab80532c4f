"""JSON output envelope for consistent CLI output formatting.

Every command run with ``--format json`` prints exactly one envelope:

    {
        "success": true|false,
        "command": "command_name",
        "data": { ... },
        "errors": [ ... ]  # Only present when success=false
    }

Usage:
    from geocatalog.json_output import success_envelope, error_envelope, ErrorDetail

    envelope = success_envelope("search", {"items": [...], "next_cursor": None})
    print(envelope.to_json())

    envelope = error_envelope("item show", [ErrorDetail.from_exception(err)])
    print(envelope.to_json())
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

from geocatalog.errors import GeocatError


@dataclass
class ErrorDetail:
    """One entry in the errors array.

    Attributes:
        type: Error class name (e.g., "CollectionNotFoundError")
        message: Human-readable error description
        code: Structured error code (e.g., "GCAT-NF001") for catalog errors
        context: Error context values (ids, paths) for catalog errors
    """

    type: str
    message: str
    code: str | None = None
    context: dict[str, Any] | None = None

    @classmethod
    def from_exception(cls, err: BaseException) -> ErrorDetail:
        if isinstance(err, GeocatError):
            payload = err.to_dict()
            return cls(
                type=type(err).__name__,
                message=payload["message"],
                code=payload["code"],
                context=payload["context"] or None,
            )
        return cls(type=type(err).__name__, message=str(err))

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"type": self.type, "message": self.message}
        if self.code is not None:
            result["code"] = self.code
        if self.context is not None:
            result["context"] = self.context
        return result


@dataclass
class OutputEnvelope:
    """Wrapper structure for all JSON command output.

    Attributes:
        success: True if command completed without errors
        command: Name of the command that produced this output
        data: Command-specific payload
        errors: Error entries; present only when success=False
    """

    success: bool
    command: str
    data: dict[str, Any] | None
    errors: list[ErrorDetail] | None = field(default=None)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "success": self.success,
            "command": self.command,
            "data": self.data,
        }
        if self.errors is not None:
            result["errors"] = [e.to_dict() for e in self.errors]
        return result

    def to_json(self, *, indent: int | None = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, default=str)


def success_envelope(command: str, data: dict[str, Any]) -> OutputEnvelope:
    """Create a success envelope with the given command and data."""
    return OutputEnvelope(success=True, command=command, data=data)


def error_envelope(
    command: str,
    errors: list[ErrorDetail],
    *,
    data: dict[str, Any] | None = None,
) -> OutputEnvelope:
    """Create an error envelope; data defaults to an empty dict."""
    return OutputEnvelope(
        success=False,
        command=command,
        data=data if data is not None else {},
        errors=errors,
    )
