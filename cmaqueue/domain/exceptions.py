"""Exception types shared across the queueing layers.

Remote failures arrive as RemoteApiError (raised by the remote adapter with a
JSON payload as message). Terminal failures that could be decoded are
surfaced as the compact ClassifiedRemoteError.
"""

import json
from typing import Any, Dict, Optional


class QueueError(Exception):
    """Base class for all cmaqueue errors."""


class InvalidInputError(QueueError, TypeError):
    """Raised when a value of the wrong shape is handed to the queue layers.

    Always raised before any remote call is issued.
    """


class UnknownCommandError(InvalidInputError):
    """Raised when a command name is not present in a command table."""

    def __init__(self, command: str, available: Any = ()):
        self.command = command
        self.available = tuple(available)
        super().__init__(
            f"Unknown command '{command}'. Available commands: {', '.join(self.available) or 'none'}"
        )


class ConfigurationError(QueueError):
    """Raised when required configuration (space id, access token) is missing."""


class RemoteApiError(QueueError):
    """Error returned by the remote content-management API.

    The message is the JSON-encoded error payload, the way the remote client
    library reports it; ``name`` carries the API's error identifier.
    """

    def __init__(self, message: str, name: Optional[str] = None, payload: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.name = name or self.__class__.__name__
        self.payload = payload or {}

    @classmethod
    def from_payload(cls, payload: Dict[str, Any], name: Optional[str] = None) -> "RemoteApiError":
        return cls(to_pretty_json(payload), name=name, payload=payload)


class ClassifiedRemoteError(QueueError):
    """Compact terminal error holding only the useful fields of a remote failure.

    Attributes:
        status: HTTP-like status code, or None when absent from the payload.
        status_text: Status text, or None.
        message: API message, or None. The exception text itself is the
            pretty-printed JSON of the present fields.
        details: API error details, or None.
        kind: Name of the original error.
    """

    FIELDS = ("status", "statusText", "message", "details")

    def __init__(self, fields: Dict[str, Any], kind: str):
        self.fields = {key: fields[key] for key in self.FIELDS if key in fields}
        self.kind = kind
        super().__init__(to_pretty_json(self.fields))

    @property
    def status(self) -> Optional[int]:
        return self.fields.get("status")

    @property
    def status_text(self) -> Optional[str]:
        return self.fields.get("statusText")

    @property
    def message(self) -> Optional[str]:
        return self.fields.get("message")

    @property
    def details(self) -> Optional[Any]:
        return self.fields.get("details")

    @property
    def name(self) -> str:
        return self.kind


def to_pretty_json(value: Any) -> str:
    """Serializes a value as two-space indented JSON safe to embed in JS/HTML."""
    return (
        json.dumps(value, indent=2, ensure_ascii=False, default=str)
        .replace("\u2028", "\\u2028")
        .replace("\u2029", "\\u2029")
    )
