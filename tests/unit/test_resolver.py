"""Tests for builds/resolver.py — SourceResolver."""
from __future__ import annotations

import pytest

from sourceclone.builds.resolver import SourceResolver
from sourceclone.client.fake import InMemoryBuildClient
from sourceclone.core.config import ImageStreamTagReference
from sourceclone.core.exceptions import (
    ApiError,
    ImageResolutionError,
    NotFoundError,
    StreamUnresolvableError,
)
from sourceclone.core.types import ObjectReference

REF = ImageStreamTagReference(namespace="ci", name="clonerefs", tag="latest")


async def test_resolve_prefers_public_repository() -> None:
    client = InMemoryBuildClient()
    client.add_image_stream(
        "ci", "clonerefs", public="registry.ci.example.com/ci/clonerefs",
        internal="image-registry.svc:5000/ci/clonerefs",
    )
    client.add_image_stream_tag("ci", "clonerefs:latest", "sha256:abc")
    resolved = await SourceResolver(client).resolve(REF)
    assert resolved == ObjectReference(
        kind="DockerImage", name="registry.ci.example.com/ci/clonerefs@sha256:abc"
    )


async def test_resolve_falls_back_to_internal_repository() -> None:
    client = InMemoryBuildClient()
    client.add_image_stream("ci", "clonerefs", internal="image-registry.svc:5000/ci/clonerefs")
    client.add_image_stream_tag("ci", "clonerefs:latest", "sha256:abc")
    resolved = await SourceResolver(client).resolve(REF)
    assert resolved.name == "image-registry.svc:5000/ci/clonerefs@sha256:abc"


async def test_resolve_without_any_repository() -> None:
    client = InMemoryBuildClient()
    client.add_image_stream("ci", "clonerefs")
    with pytest.raises(StreamUnresolvableError, match="has no accessible image registry value"):
        await SourceResolver(client).resolve(REF)
    assert client.count("get_image_stream_tag") == 0


async def test_missing_stream_is_wrapped_with_context() -> None:
    with pytest.raises(ImageResolutionError, match="could not resolve remote image stream: ") as exc_info:
        await SourceResolver(InMemoryBuildClient()).resolve(REF)
    assert not isinstance(exc_info.value, StreamUnresolvableError)
    assert isinstance(exc_info.value.__cause__, NotFoundError)
    assert exc_info.value.details == {"reference": "ci/clonerefs:latest"}


async def test_missing_tag_is_wrapped_with_context() -> None:
    client = InMemoryBuildClient()
    client.add_image_stream("ci", "clonerefs", public="registry.ci.example.com/ci/clonerefs")
    with pytest.raises(ImageResolutionError, match="could not resolve remote image stream tag: "):
        await SourceResolver(client).resolve(REF)


async def test_transport_errors_are_not_retried() -> None:
    client = InMemoryBuildClient()
    client.add_image_stream("ci", "clonerefs", public="registry.ci.example.com/ci/clonerefs")
    client.add_image_stream_tag("ci", "clonerefs:latest", "sha256:abc")
    client.fail("get_image_stream", ApiError("connection refused"))
    with pytest.raises(ImageResolutionError, match="connection refused"):
        await SourceResolver(client).resolve(REF)
    assert client.count("get_image_stream") == 1
