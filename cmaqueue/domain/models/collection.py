"""Collection shapes handed to the queue.

A caller may pass either a bare list of items or a paged collection returned
by the remote API. The two are told apart once, at the boundary, and carried
as a tagged variant afterwards.
"""

from dataclasses import dataclass, field
from typing import Any, Generic, List, Optional, TypeVar, Union

T = TypeVar("T")


@dataclass
class ResourceCollection(Generic[T]):
    """A page of remote resources, as returned by list endpoints."""
    items: List[T] = field(default_factory=list)
    total: int = 0
    skip: int = 0
    limit: int = 100


@dataclass(frozen=True)
class ItemArray(Generic[T]):
    """A plain ordered sequence of items."""
    items: List[T]


@dataclass(frozen=True)
class ItemPage(Generic[T]):
    """Items taken from a paged collection."""
    items: List[T]
    total: Optional[int] = None
    skip: Optional[int] = None
    limit: Optional[int] = None


ItemCollection = Union[ItemArray, ItemPage]
