"""Wraps flat field maps into the locale-keyed envelope of the content API.

    {"title": "Hello"}  ->  {"fields": {"title": {"en-US": "Hello"}}}

A single mapping produces a single envelope; a list produces a list of the
same length and order.
"""

import logging
from collections.abc import Mapping
from typing import Any, Dict, List, Union

from cmaqueue.domain.exceptions import InvalidInputError
from cmaqueue.domain.models.common import DEFAULT_LOCALE, FlatFields, LocalizedEntry

logger = logging.getLogger(__name__)


def set_locale(locale: str, value: Any) -> Dict[str, Any]:
    return {locale: value}


def localize_one(item: Mapping, locale: str) -> LocalizedEntry:
    if not isinstance(item, Mapping):
        raise InvalidInputError(f"Expected a mapping of field names to values, got {type(item).__name__}")
    return {"fields": {key: set_locale(locale, value) for key, value in item.items()}}


def localize(
    items: Union[FlatFields, List[FlatFields]],
    locale: str = DEFAULT_LOCALE,
) -> Union[LocalizedEntry, List[LocalizedEntry]]:
    """Localizes one flat item or a list of them.

    Args:
        items: A mapping, or a list/tuple of mappings.
        locale: Locale tag every field value is keyed under.

    Returns:
        A single envelope for a single mapping, a list of envelopes for a list.

    Raises:
        InvalidInputError: If items (or any element) is not a mapping.
    """
    if isinstance(items, Mapping):
        return localize_one(items, locale)
    if isinstance(items, (list, tuple)):
        return [localize_one(item, locale) for item in items]
    raise InvalidInputError(f"localize expects an object or an array of objects, got {type(items).__name__}")


class FieldLocalizer:
    """Localizer bound to the locale configured for a client."""

    def __init__(self, locale: str = DEFAULT_LOCALE):
        self.locale = locale
        logger.debug(f"FieldLocalizer initialized with locale: {locale}")

    def __call__(self, items: Union[FlatFields, List[FlatFields]]) -> Union[LocalizedEntry, List[LocalizedEntry]]:
        return localize(items, self.locale)
