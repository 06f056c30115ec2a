"""REST client for the OpenShift build, image and core APIs."""

from __future__ import annotations

from typing import Any, AsyncIterator, TypeVar

import httpx
import structlog
from pydantic import BaseModel, ValidationError

from sourceclone.core.config import ClusterConfig
from sourceclone.core.exceptions import (
    AlreadyExistsError,
    ApiError,
    ConflictError,
    NotFoundError,
)
from sourceclone.core.types import Build, Event, ImageStream, ImageStreamTag, Pod

logger = structlog.get_logger(__name__)

_BUILDS = "/apis/build.openshift.io/v1/namespaces/{namespace}/builds"
_IMAGE_STREAMS = "/apis/image.openshift.io/v1/namespaces/{namespace}/imagestreams"
_IMAGE_STREAM_TAGS = "/apis/image.openshift.io/v1/namespaces/{namespace}/imagestreamtags"
_PODS = "/api/v1/namespaces/{namespace}/pods"
_EVENTS = "/api/v1/namespaces/{namespace}/events"


def _raise_for_status(response: httpx.Response) -> None:
    """Translate an error response into the matching :class:`ApiError`."""
    if response.is_success:
        return
    try:
        payload = response.json()
    except ValueError:
        payload = {}
    if not isinstance(payload, dict):
        payload = {}
    message = payload.get("message") or response.text or response.reason_phrase
    reason = payload.get("reason")
    status = response.status_code
    if status == 404:
        raise NotFoundError(message, code=reason or "NotFound", status_code=status)
    if status == 409 and reason == "AlreadyExists":
        raise AlreadyExistsError(message, code=reason, status_code=status)
    if status == 409:
        raise ConflictError(message, code=reason or "Conflict", status_code=status)
    raise ApiError(message, code=reason, status_code=status)


_M = TypeVar("_M", bound=BaseModel)


def _decode(model: type[_M], data: Any, url: str) -> _M:
    """Validate a response body, reporting a malformed one as :class:`ApiError`."""
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise ApiError(
            f"could not decode {model.__name__} from {url}: {exc}", code="InvalidResponse"
        ) from exc


class OpenShiftBuildClient:
    """:class:`~sourceclone.client.base.BuildClient` over the cluster REST API.

    Usage::

        async with OpenShiftBuildClient(ClusterConfig.from_env()) as client:
            build = await client.get_build("ci-op-1234", "src")
    """

    def __init__(self, config: ClusterConfig) -> None:
        self._config = config
        self._client: httpx.AsyncClient | None = None
        self._created: list[Build] = []

    @property
    def config(self) -> ClusterConfig:
        return self._config

    async def connect(self) -> None:
        """Open the underlying HTTP client."""
        headers = {"Accept": "application/json"}
        if self._config.token:
            headers["Authorization"] = f"Bearer {self._config.token}"
        self._client = httpx.AsyncClient(
            base_url=self._config.api_url,
            headers=headers,
            timeout=self._config.timeout,
            verify=self._config.verify,
        )
        logger.info("cluster.connected", api_url=self._config.api_url)

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> OpenShiftBuildClient:
        await self.connect()
        return self

    async def __aexit__(self, *_: Any) -> None:
        await self.close()

    def _ensure_connected(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError("OpenShiftBuildClient is not connected. Call connect() first.")
        return self._client

    async def _request(
        self,
        method: str,
        url: str,
        *,
        json: dict[str, Any] | None = None,
        params: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        client = self._ensure_connected()
        try:
            response = await client.request(method, url, json=json, params=params)
        except httpx.HTTPError as exc:
            raise ApiError(f"{method} {url}: {exc}") from exc
        _raise_for_status(response)
        if not response.content:
            return {}
        try:
            result = response.json()
        except ValueError as exc:
            raise ApiError(
                f"{method} {url}: invalid JSON response: {exc}", code="InvalidResponse"
            ) from exc
        if not isinstance(result, dict):
            raise ApiError(f"{method} {url}: expected a JSON object", code="InvalidResponse")
        return result

    # ------------------------------------------------------------------ #
    # Builds
    # ------------------------------------------------------------------ #

    async def create_build(self, build: Build) -> Build:
        url = _BUILDS.format(namespace=build.namespace)
        data = await self._request("POST", url, json=build.to_api())
        created = _decode(Build, data, url)
        self._created.append(created)
        return created

    async def get_build(self, namespace: str, name: str) -> Build:
        url = f"{_BUILDS.format(namespace=namespace)}/{name}"
        return _decode(Build, await self._request("GET", url), url)

    async def delete_build(
        self,
        namespace: str,
        name: str,
        *,
        uid: str | None = None,
        grace_period_seconds: int | None = None,
        propagation_policy: str | None = None,
    ) -> None:
        options: dict[str, Any] = {"kind": "DeleteOptions", "apiVersion": "v1"}
        if grace_period_seconds is not None:
            options["gracePeriodSeconds"] = grace_period_seconds
        if propagation_policy is not None:
            options["propagationPolicy"] = propagation_policy
        if uid is not None:
            options["preconditions"] = {"uid": uid}
        url = f"{_BUILDS.format(namespace=namespace)}/{name}"
        await self._request("DELETE", url, json=options)

    async def build_logs(self, namespace: str, name: str) -> AsyncIterator[str]:
        client = self._ensure_connected()
        url = f"{_BUILDS.format(namespace=namespace)}/{name}/log"
        try:
            async with client.stream("GET", url, params={"nowait": "true"}) as response:
                if not response.is_success:
                    await response.aread()
                    _raise_for_status(response)
                async for chunk in response.aiter_text():
                    yield chunk
        except httpx.HTTPError as exc:
            raise ApiError(f"GET {url}: {exc}") from exc

    def objects(self) -> list[Build]:
        return [b.model_copy(deep=True) for b in self._created]

    # ------------------------------------------------------------------ #
    # Images
    # ------------------------------------------------------------------ #

    async def get_image_stream(self, namespace: str, name: str) -> ImageStream:
        url = f"{_IMAGE_STREAMS.format(namespace=namespace)}/{name}"
        return _decode(ImageStream, await self._request("GET", url), url)

    async def get_image_stream_tag(self, namespace: str, name: str) -> ImageStreamTag:
        url = f"{_IMAGE_STREAM_TAGS.format(namespace=namespace)}/{name}"
        return _decode(ImageStreamTag, await self._request("GET", url), url)

    # ------------------------------------------------------------------ #
    # Pods and events
    # ------------------------------------------------------------------ #

    async def get_pod(self, namespace: str, name: str) -> Pod:
        url = f"{_PODS.format(namespace=namespace)}/{name}"
        return _decode(Pod, await self._request("GET", url), url)

    async def list_events(
        self, namespace: str, *, involved_object_uid: str
    ) -> list[Event]:
        url = _EVENTS.format(namespace=namespace)
        data = await self._request(
            "GET",
            url,
            params={"fieldSelector": f"involvedObject.uid={involved_object_uid}"},
        )
        return [_decode(Event, item, url) for item in data.get("items") or []]
