import asyncio
from typing import Any, Dict, List, Optional

import pytest
from typer.testing import CliRunner

from cmaqueue.domain.exceptions import RemoteApiError
from cmaqueue.domain.interfaces.progress import ProgressReporter
from cmaqueue.domain.interfaces.remote_space import RemoteClient, RemoteResource, RemoteSpace
from cmaqueue.domain.models.collection import ResourceCollection
from cmaqueue.domain.models.queue import RetryPolicy
from cmaqueue.infrastructure.resilience.api_retry import constant_delay


class RecordingProgressReporter(ProgressReporter):
    """Progress reporter that records every call instead of drawing."""

    def __init__(self):
        self.created: List[Dict[str, Any]] = []
        self.ticks = 0
        self.finished = 0

    def create(self, total: int, label: str) -> Dict[str, Any]:
        handle = {'total': total, 'label': label, 'ticks': 0}
        self.created.append(handle)
        return handle

    def tick(self, handle: Dict[str, Any]) -> None:
        handle['ticks'] += 1
        self.ticks += 1

    def finish(self, handle: Dict[str, Any]) -> None:
        self.finished += 1


class FakeResource(RemoteResource):
    """In-memory entry recording which lifecycle calls it received."""

    def __init__(self, resource_id: str, version: int = 1, fail_with: Optional[BaseException] = None):
        self._id = resource_id
        self._version = version
        self.calls: List[str] = []
        self.fail_with = fail_with

    @property
    def id(self) -> str:
        return self._id

    @property
    def version(self) -> Optional[int]:
        return self._version

    async def _record(self, name: str) -> "FakeResource":
        self.calls.append(name)
        await asyncio.sleep(0)
        if self.fail_with is not None:
            raise self.fail_with
        return self

    async def publish(self):
        return await self._record('publish')

    async def unpublish(self):
        return await self._record('unpublish')

    async def archive(self):
        return await self._record('archive')

    async def unarchive(self):
        return await self._record('unarchive')

    async def update(self):
        return await self._record('update')

    async def delete(self):
        await self._record('delete')


class FakeSpace(RemoteSpace):
    """In-memory space that creates FakeResources."""

    def __init__(self, entries: Optional[List[FakeResource]] = None):
        self.entries = list(entries or [])
        self.created: List[Dict[str, Any]] = []

    async def get_entries(self, query=None):
        return ResourceCollection(items=list(self.entries), total=len(self.entries))

    async def get_assets(self, query=None):
        return ResourceCollection(items=[], total=0)

    async def get_content_types(self, query=None):
        return ResourceCollection(items=[], total=0)

    async def get_entry(self, entry_id):
        return next(entry for entry in self.entries if entry.id == entry_id)

    async def get_asset(self, asset_id):
        raise RemoteApiError.from_payload({'status': 404, 'statusText': 'Not Found'}, name='NotFound')

    async def create_entry(self, content_type_id, data):
        await asyncio.sleep(0)
        self.created.append({'content_type': content_type_id, 'data': data})
        entry = FakeResource(f"entry-{len(self.created)}")
        self.entries.append(entry)
        return entry

    async def create_asset(self, data):
        return FakeResource(f"asset-{len(self.created)}")


class FakeRemoteClient(RemoteClient):
    def __init__(self, space: FakeSpace):
        self.space = space
        self.requested_spaces: List[str] = []
        self.closed = False

    async def get_space(self, space_id):
        self.requested_spaces.append(space_id)
        return self.space

    async def close(self):
        self.closed = True


@pytest.fixture(scope="session")
def runner():
    """Provides a Typer CliRunner instance."""
    return CliRunner()


@pytest.fixture
def remote_error():
    """Factory for errors shaped like the remote client's JSON-payload errors."""
    def make(status: Optional[int] = None, name: str = 'RemoteApiError', **fields: Any) -> RemoteApiError:
        payload = dict(fields)
        if status is not None:
            payload['status'] = status
        return RemoteApiError.from_payload(payload, name=name)
    return make


@pytest.fixture
def progress_reporter():
    return RecordingProgressReporter()


@pytest.fixture
def no_wait_policy():
    """One retry, no backoff delay."""
    return RetryPolicy(max_retries=1, delay_strategy=constant_delay(0))


@pytest.fixture
def fake_space():
    return FakeSpace(entries=[FakeResource(f"e{i}") for i in range(3)])


@pytest.fixture
def fake_remote_client(fake_space):
    return FakeRemoteClient(fake_space)


@pytest.fixture
def make_resource():
    return FakeResource


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch, tmp_path):
    """Keeps real credentials, config files and .env files out of the tests."""
    for key in ("CONTENTFUL_SPACE", "CONTENTFUL_MANAGEMENT_ACCESS_TOKEN", "LOCALE", "PROGRESS",
                "QUEUE_CONCURRENCY", "QUEUE_DELAY", "RETRY_RETRIES", "LOGGING_LEVEL"):
        # setenv first so values loaded from .env files are removed again afterwards
        monkeypatch.setenv(key, "")
        monkeypatch.delenv(key)
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr("cmaqueue.infrastructure.config.settings.DEFAULT_CONFIG_FILE", tmp_path / "missing.yaml")
