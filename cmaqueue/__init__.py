"""cmaqueue: batching and retry layer for a remote content-management API.

Typical use::

    from cmaqueue import ClientOptions, QueueClient

    client = QueueClient(ClientOptions(space_id="...", access_token="..."))
    entries = client.localize([{"title": "Hello"}, {"title": "World"}])

    async def create(space):
        return await space.queue("create_entry", "post", entries)

    created = await client.with_space(create)
    await client.queue_over_collection("publish", created)
"""

from cmaqueue.core.collection_adapter import to_item_sequence
from cmaqueue.core.queue_client import QueueClient, QueuedSpace
from cmaqueue.domain.exceptions import (
    ClassifiedRemoteError,
    ConfigurationError,
    InvalidInputError,
    QueueError,
    RemoteApiError,
    UnknownCommandError,
)
from cmaqueue.domain.models.options import ClientOptions, QueueOptions, RetryOptions
from cmaqueue.domain.models.queue import ProgressState, RetryPolicy
from cmaqueue.infrastructure.localization.field_localizer import localize

__version__ = "0.1.0"

__all__ = [
    "QueueClient",
    "QueuedSpace",
    "ClientOptions",
    "RetryOptions",
    "QueueOptions",
    "RetryPolicy",
    "ProgressState",
    "localize",
    "to_item_sequence",
    "QueueError",
    "InvalidInputError",
    "UnknownCommandError",
    "ConfigurationError",
    "RemoteApiError",
    "ClassifiedRemoteError",
]
