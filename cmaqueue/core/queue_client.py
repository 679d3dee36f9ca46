"""Client facade: queueing, retries and localization around one remote space.

Composes the field localizer, the collection adapter and the bounded queue
with the remote client. Remote operations are looked up in explicit command
tables, so the queue itself only ever receives a plain ``item -> awaitable``
function.
"""

import inspect
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence

from cmaqueue.core.collection_adapter import to_item_sequence
from cmaqueue.domain.exceptions import ConfigurationError, InvalidInputError, UnknownCommandError
from cmaqueue.domain.interfaces.progress import ProgressReporter
from cmaqueue.domain.interfaces.remote_space import RemoteClient, RemoteResource, RemoteSpace
from cmaqueue.domain.models.common import Operation
from cmaqueue.domain.models.options import ClientOptions
from cmaqueue.domain.models.queue import RetryPolicy
from cmaqueue.infrastructure.cli.progress import NullProgressReporter, RichProgressReporter
from cmaqueue.infrastructure.localization.field_localizer import FieldLocalizer
from cmaqueue.infrastructure.resilience.api_retry import ApiRetryService, policy_from_options
from cmaqueue.infrastructure.resilience.queue_engine import BoundedQueue

logger = logging.getLogger(__name__)

# --- Command tables ---

# Space commands take any leading arguments, followed by the queued item
SPACE_COMMANDS: Dict[str, Callable[..., Awaitable[Any]]] = {
    "create_entry": lambda space, content_type_id, data: space.create_entry(content_type_id, data),
    "create_asset": lambda space, data: space.create_asset(data),
    "get_entry": lambda space, entry_id: space.get_entry(entry_id),
    "get_asset": lambda space, asset_id: space.get_asset(asset_id),
}

ITEM_COMMANDS: Dict[str, Callable[[RemoteResource], Awaitable[Any]]] = {
    "publish": lambda resource: resource.publish(),
    "unpublish": lambda resource: resource.unpublish(),
    "archive": lambda resource: resource.archive(),
    "unarchive": lambda resource: resource.unarchive(),
    "update": lambda resource: resource.update(),
    "delete": lambda resource: resource.delete(),
}


def lookup_command(table: Dict[str, Callable[..., Any]], command: str) -> Callable[..., Any]:
    try:
        return table[command]
    except KeyError:
        raise UnknownCommandError(command, sorted(table)) from None


class QueuedSpace:
    """A remote space handle with a ``queue`` method added.

    Attribute access falls through to the wrapped space, so callbacks can use
    ``space.get_entries()`` and ``space.queue(...)`` side by side.
    """

    def __init__(self, space: RemoteSpace, client: "QueueClient"):
        self.space = space
        self._client = client

    def __getattr__(self, name: str) -> Any:
        return getattr(self.space, name)

    async def queue(self, command: str, *args: Any) -> List[Any]:
        """Runs a space command once per item.

        The items are always the last argument; any leading arguments are
        passed to every call, e.g.
        ``await space.queue("create_entry", "post", entries)``.
        """
        if not args:
            raise InvalidInputError("queue() needs the items as its last argument")
        *leading, items = args
        command_fn = lookup_command(SPACE_COMMANDS, command)

        async def operation(item: Any) -> Any:
            return await command_fn(self.space, *leading, item)

        return await self._client.queue(items, operation, label=f"<Space.{command}>")


class QueueClient:
    """Batching and retry layer in front of the remote content-management API."""

    def __init__(
        self,
        options: Optional[ClientOptions] = None,
        remote_client: Optional[RemoteClient] = None,
        progress_reporter: Optional[ProgressReporter] = None,
        retry_policy: Optional[RetryPolicy] = None,
    ):
        """Initializes the client.

        Args:
            options: Client configuration; defaults apply when omitted.
            remote_client: Remote API client. Created from the options'
                access token on first use when omitted.
            progress_reporter: Overrides the reporter chosen from options.progress.
            retry_policy: Overrides the policy built from options.retry_options.
        """
        self.options = options or ClientOptions()
        self.localizer = FieldLocalizer(self.options.locale)
        self.retry_policy = retry_policy or policy_from_options(self.options.retry_options)
        if progress_reporter is None:
            progress_reporter = RichProgressReporter() if self.options.progress else NullProgressReporter()
        self.progress_reporter = progress_reporter
        self.retry_service = ApiRetryService(self.retry_policy)
        self.queue_engine = BoundedQueue(
            retry_service=self.retry_service,
            progress_reporter=self.progress_reporter,
            concurrency=self.options.queue_options.concurrency,
            delay=self.options.queue_options.delay,
        )
        self._remote_client = remote_client
        self._owns_remote_client = remote_client is None
        logger.info(
            f"QueueClient initialized: locale={self.options.locale}, "
            f"concurrency={self.options.queue_options.concurrency}, "
            f"retries={self.retry_policy.max_retries}, progress={self.options.progress}"
        )

    async def __aenter__(self) -> "QueueClient":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def close(self) -> None:
        if self._remote_client is not None and self._owns_remote_client:
            await self._remote_client.close()
            self._remote_client = None

    @property
    def remote_client(self) -> RemoteClient:
        if self._remote_client is None:
            if not self.options.access_token:
                raise ConfigurationError("No access token configured for the content management API.")
            # Imported here so callers injecting their own client never need httpx
            from cmaqueue.infrastructure.remote.contentful_client import ContentfulClient
            self._remote_client = ContentfulClient(
                access_token=self.options.access_token,
                environment=self.options.environment,
            )
        return self._remote_client

    # --- API ---

    def localize(self, items: Any) -> Any:
        """Wraps one flat item (or a list of them) in the localization envelope."""
        return self.localizer(items)

    async def with_space(self, callback: Callable[[QueuedSpace], Any]) -> Any:
        """Fetches the configured space and hands it to ``callback``.

        The space is fetched once per call. The callback may be a plain
        function or a coroutine function; its (awaited) result is returned.
        """
        if not self.options.space_id:
            raise ConfigurationError("No space id configured for the content management API.")
        space = await self.remote_client.get_space(self.options.space_id)
        logger.debug(f"Acquired space {self.options.space_id}")
        result = callback(QueuedSpace(space, self))
        if inspect.isawaitable(result):
            result = await result
        return result

    async def queue_over_collection(self, command: str, collection: Any) -> List[Any]:
        """Runs an item command (publish, delete, ...) over every item of a collection.

        Args:
            command: Name from ITEM_COMMANDS.
            collection: An array of resources or a paged collection of them.
        """
        items = to_item_sequence(collection)
        command_fn = lookup_command(ITEM_COMMANDS, command)
        return await self.queue(items, command_fn, label=f"<Entry.{command}>")

    async def queue(
        self,
        items: Sequence[Any],
        operation: Operation,
        label: Optional[str] = None,
        *,
        concurrency: Optional[int] = None,
        delay: Optional[float] = None,
        policy: Optional[RetryPolicy] = None,
    ) -> List[Any]:
        """Raw queue primitive: applies ``operation`` to each item.

        Returns the results in input order, or raises the first terminal failure.
        """
        return await self.queue_engine.run(
            items,
            operation,
            concurrency=concurrency,
            delay=delay,
            label=label or "Processing...",
            policy=policy,
        )
