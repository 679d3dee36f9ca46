"""Defines common Value Objects used across the queueing contexts.

These objects represent simple values like locale tags, command names and
progress labels, plus the envelope shape the remote content API expects.
"""

from typing import Any, Awaitable, Callable, Dict, NewType, TypedDict, TypeVar

# === Core Value Objects ===

Locale = NewType("Locale", str)                # e.g. 'en-US'
CommandName = NewType("CommandName", str)      # e.g. 'create_entry', 'publish'
ProgressLabel = NewType("ProgressLabel", str)  # Text shown next to the progress bar
ContentTypeId = NewType("ContentTypeId", str)
SpaceId = NewType("SpaceId", str)

DEFAULT_LOCALE = Locale("en-US")

# === Work items ===

T = TypeVar("T")
R = TypeVar("R")

# A per-item async operation. May be invoked more than once per item under retry.
Operation = Callable[[Any], Awaitable[Any]]

# Field name -> value, as supplied by callers before localization
FlatFields = Dict[str, Any]


class LocalizedEntry(TypedDict):
    """Localization envelope: {'fields': {field: {locale: value}}}."""
    fields: Dict[str, Dict[str, Any]]
