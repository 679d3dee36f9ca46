"""Asynchronous adapter for the Contentful Content Management API.

Implements the remote interfaces on top of httpx. Every non-2xx response is
raised as RemoteApiError whose message is the JSON error payload
({status, statusText, message, details, request, requestId}), the same
shape the official JavaScript client reports, so the error classifier can
read the status code back out of it.
"""

import logging
from typing import Any, Dict, Optional

import httpx

from cmaqueue.domain.exceptions import RemoteApiError
from cmaqueue.domain.interfaces.remote_space import RemoteClient, RemoteResource, RemoteSpace
from cmaqueue.domain.models.collection import ResourceCollection
from cmaqueue.domain.models.options import DEFAULT_ENVIRONMENT

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.contentful.com"
CONTENT_TYPE = "application/vnd.contentful.management.v1+json"
DEFAULT_TIMEOUT_S = 30.0


class ContentfulClient(RemoteClient):
    """Thin async HTTP client for the Content Management API."""

    def __init__(
        self,
        access_token: str,
        environment: str = DEFAULT_ENVIRONMENT,
        base_url: str = DEFAULT_BASE_URL,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = DEFAULT_TIMEOUT_S,
    ):
        """Initializes the client.

        Args:
            access_token: Content management (bearer) token.
            environment: Environment used for entry/asset endpoints.
            base_url: API root.
            http_client: Pre-configured httpx client; one is created (and
                owned) when omitted.
            timeout: Request timeout in seconds for the created client.
        """
        if not access_token:
            raise ValueError("Content management access token not provided.")
        self.environment = environment
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(base_url=base_url, timeout=timeout)
        self._headers = {
            "Authorization": f"Bearer {access_token}",
            "Content-Type": CONTENT_TYPE,
        }
        logger.info(f"ContentfulClient initialized for {base_url} (environment={environment})")

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()
        logger.debug("Closed content management HTTP client")

    async def request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Optional[Dict[str, Any]]:
        """Sends one request. Returns the decoded body, or None for empty responses.

        Raises:
            RemoteApiError: For any non-2xx response.
        """
        request_headers = {**self._headers, **(headers or {})}
        logger.debug(f"{method} {path} params={params}")
        response = await self._client.request(method, path, params=params, json=json, headers=request_headers)

        if not response.is_success:
            raise _error_from_response(response)
        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    async def get_space(self, space_id: str) -> "ContentfulSpace":
        data = await self.request("GET", f"/spaces/{space_id}")
        return ContentfulSpace(self, space_id, data or {})


def _error_from_response(response: httpx.Response) -> RemoteApiError:
    try:
        body = response.json()
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {}

    payload: Dict[str, Any] = {
        "status": response.status_code,
        "statusText": response.reason_phrase,
    }
    if "message" in body:
        payload["message"] = body["message"]
    if "details" in body:
        payload["details"] = body["details"]
    payload["request"] = {"url": str(response.request.url), "method": response.request.method}
    request_id = body.get("requestId") or response.headers.get("x-contentful-request-id")
    if request_id:
        payload["requestId"] = request_id

    name = (body.get("sys") or {}).get("id") or f"{response.status_code} {response.reason_phrase}"
    logger.debug(f"Remote API error {name}: status={response.status_code}")
    return RemoteApiError.from_payload(payload, name=name)


class ContentfulResource(RemoteResource):
    """An entry, asset or content type, addressed by its collection path."""

    def __init__(self, client: ContentfulClient, collection_path: str, data: Dict[str, Any]):
        self._client = client
        self._collection_path = collection_path
        self.data = data

    def __repr__(self) -> str:
        return f"<ContentfulResource {self._collection_path}/{self.id} v{self.version}>"

    @property
    def sys(self) -> Dict[str, Any]:
        return self.data.get("sys", {})

    @property
    def id(self) -> str:
        return self.sys.get("id", "")

    @property
    def version(self) -> Optional[int]:
        return self.sys.get("version")

    @property
    def fields(self) -> Dict[str, Any]:
        return self.data.setdefault("fields", {})

    @property
    def path(self) -> str:
        return f"{self._collection_path}/{self.id}"

    def _version_header(self) -> Dict[str, str]:
        return {"X-Contentful-Version": str(self.version)} if self.version is not None else {}

    async def _refresh(self, method: str, path: str, **kwargs: Any) -> "ContentfulResource":
        data = await self._client.request(method, path, **kwargs)
        if data:
            self.data = data
        return self

    async def publish(self) -> "ContentfulResource":
        return await self._refresh("PUT", f"{self.path}/published", headers=self._version_header())

    async def unpublish(self) -> "ContentfulResource":
        return await self._refresh("DELETE", f"{self.path}/published")

    async def archive(self) -> "ContentfulResource":
        return await self._refresh("PUT", f"{self.path}/archived", headers=self._version_header())

    async def unarchive(self) -> "ContentfulResource":
        return await self._refresh("DELETE", f"{self.path}/archived")

    async def update(self) -> "ContentfulResource":
        body = {key: value for key, value in self.data.items() if key != "sys"}
        return await self._refresh("PUT", self.path, json=body, headers=self._version_header())

    async def delete(self) -> None:
        await self._client.request("DELETE", self.path)


class ContentfulSpace(RemoteSpace):
    """Handle on one space (and the client's environment within it)."""

    def __init__(self, client: ContentfulClient, space_id: str, data: Optional[Dict[str, Any]] = None):
        self._client = client
        self.space_id = space_id
        self.data = data or {}
        self.base_path = f"/spaces/{space_id}/environments/{client.environment}"

    @property
    def name(self) -> Optional[str]:
        return self.data.get("name")

    async def _list(self, collection: str, query: Optional[Dict[str, Any]]) -> ResourceCollection:
        path = f"{self.base_path}/{collection}"
        body = await self._client.request("GET", path, params=query) or {}
        return ResourceCollection(
            items=[ContentfulResource(self._client, path, item) for item in body.get("items", [])],
            total=body.get("total", 0),
            skip=body.get("skip", 0),
            limit=body.get("limit", 100),
        )

    async def _get(self, collection: str, resource_id: str) -> ContentfulResource:
        path = f"{self.base_path}/{collection}"
        data = await self._client.request("GET", f"{path}/{resource_id}")
        return ContentfulResource(self._client, path, data or {})

    async def _create(self, collection: str, data: Dict[str, Any], headers: Optional[Dict[str, str]] = None) -> ContentfulResource:
        path = f"{self.base_path}/{collection}"
        created = await self._client.request("POST", path, json=data, headers=headers)
        return ContentfulResource(self._client, path, created or {})

    async def get_entries(self, query: Optional[Dict[str, Any]] = None) -> ResourceCollection:
        return await self._list("entries", query)

    async def get_assets(self, query: Optional[Dict[str, Any]] = None) -> ResourceCollection:
        return await self._list("assets", query)

    async def get_content_types(self, query: Optional[Dict[str, Any]] = None) -> ResourceCollection:
        return await self._list("content_types", query)

    async def get_entry(self, entry_id: str) -> ContentfulResource:
        return await self._get("entries", entry_id)

    async def get_asset(self, asset_id: str) -> ContentfulResource:
        return await self._get("assets", asset_id)

    async def create_entry(self, content_type_id: str, data: Dict[str, Any]) -> ContentfulResource:
        return await self._create("entries", data, headers={"X-Contentful-Content-Type": content_type_id})

    async def create_asset(self, data: Dict[str, Any]) -> ContentfulResource:
        return await self._create("assets", data)
