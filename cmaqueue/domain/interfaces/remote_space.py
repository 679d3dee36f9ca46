"""Interfaces for the remote content-management API.

The queue layers only need a handle on one space, the list/create calls on
it, and the lifecycle calls on a single entry or asset. Errors from any of
these calls are expected to be RemoteApiError with a JSON payload message.
"""

import abc
from typing import Any, Dict, Optional

from ..models.collection import ResourceCollection


class RemoteResource(abc.ABC):
    """A single entry or asset held by the remote space."""

    @property
    @abc.abstractmethod
    def id(self) -> str:
        pass

    @property
    @abc.abstractmethod
    def version(self) -> Optional[int]:
        pass

    @abc.abstractmethod
    async def publish(self) -> "RemoteResource":
        pass

    @abc.abstractmethod
    async def unpublish(self) -> "RemoteResource":
        pass

    @abc.abstractmethod
    async def archive(self) -> "RemoteResource":
        pass

    @abc.abstractmethod
    async def unarchive(self) -> "RemoteResource":
        pass

    @abc.abstractmethod
    async def update(self) -> "RemoteResource":
        """Sends the resource's current fields back to the API."""
        pass

    @abc.abstractmethod
    async def delete(self) -> None:
        pass


class RemoteSpace(abc.ABC):
    """Handle on one space of the remote API."""

    @abc.abstractmethod
    async def get_entries(self, query: Optional[Dict[str, Any]] = None) -> ResourceCollection:
        pass

    @abc.abstractmethod
    async def get_assets(self, query: Optional[Dict[str, Any]] = None) -> ResourceCollection:
        pass

    @abc.abstractmethod
    async def get_content_types(self, query: Optional[Dict[str, Any]] = None) -> ResourceCollection:
        pass

    @abc.abstractmethod
    async def get_entry(self, entry_id: str) -> RemoteResource:
        pass

    @abc.abstractmethod
    async def get_asset(self, asset_id: str) -> RemoteResource:
        pass

    @abc.abstractmethod
    async def create_entry(self, content_type_id: str, data: Dict[str, Any]) -> RemoteResource:
        """Creates an entry of the given content type.

        Args:
            content_type_id: Id of the content type the entry belongs to.
            data: Localized payload, e.g. {'fields': {'title': {'en-US': 'x'}}}.
        """
        pass

    @abc.abstractmethod
    async def create_asset(self, data: Dict[str, Any]) -> RemoteResource:
        pass


class RemoteClient(abc.ABC):
    """Entry point to the remote API: resolves space handles."""

    @abc.abstractmethod
    async def get_space(self, space_id: str) -> RemoteSpace:
        pass

    async def close(self) -> None:
        pass
