import asyncio
import json

import httpx
import pytest

from cmaqueue.domain.exceptions import ClassifiedRemoteError, RemoteApiError
from cmaqueue.infrastructure.remote.contentful_client import ContentfulClient, ContentfulResource
from cmaqueue.infrastructure.resilience.error_classifier import classify


class RecordingTransport:
    """Builds an httpx.MockTransport that records requests and replays canned responses."""

    def __init__(self, responses):
        self.responses = list(responses)
        self.requests = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.responses.pop(0)

    def client(self) -> ContentfulClient:
        http_client = httpx.AsyncClient(
            base_url="https://api.contentful.com",
            transport=httpx.MockTransport(self.handler),
        )
        return ContentfulClient("token-123", environment="master", http_client=http_client)


def entry_data(entry_id="e1", version=3):
    return {"sys": {"id": entry_id, "version": version, "type": "Entry"}, "fields": {"title": {"en-US": "Hi"}}}


def test_missing_token_is_rejected():
    with pytest.raises(ValueError):
        ContentfulClient("")


def test_get_space_and_list_entries():
    transport = RecordingTransport([
        httpx.Response(200, json={"sys": {"id": "s1"}, "name": "Blog"}),
        httpx.Response(200, json={"items": [entry_data("a"), entry_data("b")], "total": 7, "skip": 0, "limit": 2}),
    ])

    async def run():
        client = transport.client()
        space = await client.get_space("s1")
        return space, await space.get_entries({"limit": 2})

    space, collection = asyncio.run(run())

    assert space.name == "Blog"
    assert [item.id for item in collection.items] == ["a", "b"]
    assert collection.total == 7
    assert transport.requests[0].url.path == "/spaces/s1"
    assert transport.requests[0].headers["Authorization"] == "Bearer token-123"
    assert transport.requests[1].url.path == "/spaces/s1/environments/master/entries"
    assert transport.requests[1].url.params["limit"] == "2"


def test_create_entry_sends_content_type_header():
    transport = RecordingTransport([
        httpx.Response(200, json={"sys": {"id": "s1"}}),
        httpx.Response(201, json=entry_data("new", 1)),
    ])
    body = {"fields": {"title": {"en-US": "Hi"}}}

    async def run():
        space = await transport.client().get_space("s1")
        return await space.create_entry("post", body)

    created = asyncio.run(run())

    request = transport.requests[1]
    assert request.method == "POST"
    assert request.headers["X-Contentful-Content-Type"] == "post"
    assert request.headers["Content-Type"] == "application/vnd.contentful.management.v1+json"
    assert json.loads(request.content) == body
    assert created.id == "new"


def test_publish_sends_version_and_refreshes():
    transport = RecordingTransport([httpx.Response(200, json=entry_data("e1", 4))])
    resource = ContentfulResource(transport.client(), "/spaces/s1/environments/master/entries", entry_data("e1", 3))

    result = asyncio.run(resource.publish())

    request = transport.requests[0]
    assert request.method == "PUT"
    assert request.url.path == "/spaces/s1/environments/master/entries/e1/published"
    assert request.headers["X-Contentful-Version"] == "3"
    assert result is resource
    assert resource.version == 4


def test_update_excludes_sys_and_delete_handles_empty_body():
    transport = RecordingTransport([httpx.Response(200, json=entry_data("e1", 4)), httpx.Response(204)])
    resource = ContentfulResource(transport.client(), "/entries", entry_data("e1", 3))

    async def run():
        await resource.update()
        return await resource.delete()

    assert asyncio.run(run()) is None
    assert json.loads(transport.requests[0].content) == {"fields": {"title": {"en-US": "Hi"}}}
    assert transport.requests[1].method == "DELETE"


def test_error_response_carries_json_payload():
    transport = RecordingTransport([httpx.Response(
        404,
        json={"sys": {"type": "Error", "id": "NotFound"}, "message": "The resource could not be found.",
              "details": {"type": "Entry"}, "requestId": "req-1"},
    )])

    with pytest.raises(RemoteApiError) as exc_info:
        asyncio.run(transport.client().get_space("nope"))

    error = exc_info.value
    assert error.name == "NotFound"
    payload = json.loads(str(error))
    assert payload["status"] == 404
    assert payload["statusText"] == "Not Found"
    assert payload["requestId"] == "req-1"
    assert payload["request"]["method"] == "GET"

    classification = classify(error)
    assert not classification.transient
    assert isinstance(classification.error, ClassifiedRemoteError)
    assert classification.error.fields == {
        "status": 404,
        "statusText": "Not Found",
        "message": "The resource could not be found.",
        "details": {"type": "Entry"},
    }


def test_server_errors_are_transient():
    transport = RecordingTransport([httpx.Response(503, text="upstream unavailable")])

    with pytest.raises(RemoteApiError) as exc_info:
        asyncio.run(transport.client().get_space("s1"))

    assert exc_info.value.name == "503 Service Unavailable"
    assert classify(exc_info.value).transient


def test_close_leaves_injected_client_open():
    transport = RecordingTransport([])
    client = transport.client()
    asyncio.run(client.close())
    assert not client._client.is_closed
