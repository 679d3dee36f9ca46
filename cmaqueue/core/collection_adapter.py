"""Normalizes the two accepted collection shapes into one item sequence.

Callers may pass a bare array of items or a paged collection (an object or
mapping with an ``items`` array). The shape is decided here, once.
"""

import logging
from collections.abc import Mapping
from typing import Any, List

from cmaqueue.domain.exceptions import InvalidInputError
from cmaqueue.domain.models.collection import ItemArray, ItemCollection, ItemPage

logger = logging.getLogger(__name__)

INVALID_COLLECTION_MESSAGE = "expects either an array of items or a paged collection"


def _page_field(value: Any, name: str) -> Any:
    if isinstance(value, Mapping):
        return value.get(name)
    return getattr(value, name, None)


def classify_collection(value: Any) -> ItemCollection:
    """Tags ``value`` as an ItemArray or an ItemPage.

    Raises:
        InvalidInputError: If value is neither shape.
    """
    if isinstance(value, (list, tuple)):
        return ItemArray(items=list(value))

    # A mapping's .items is the dict method, so only look at its "items" key
    items = value.get("items") if isinstance(value, Mapping) else getattr(value, "items", None)
    if isinstance(items, (list, tuple)):
        return ItemPage(
            items=list(items),
            total=_page_field(value, "total"),
            skip=_page_field(value, "skip"),
            limit=_page_field(value, "limit"),
        )

    logger.debug(f"Rejecting collection of type {type(value).__name__}")
    raise InvalidInputError(INVALID_COLLECTION_MESSAGE)


def to_item_sequence(value: Any) -> List[Any]:
    """Returns the ordered items of an array or a paged collection."""
    collection = classify_collection(value)
    if isinstance(collection, ItemPage) and collection.total is not None and collection.total > len(collection.items):
        logger.warning(
            f"Paged collection holds {len(collection.items)} of {collection.total} items; "
            f"only the loaded page will be queued."
        )
    return collection.items
