from __future__ import annotations

from typing import AsyncIterator, Protocol, runtime_checkable

from sourceclone.core.types import Build, Event, ImageStream, ImageStreamTag, Pod


@runtime_checkable
class BuildClient(Protocol):
    """Structural type for the orchestration API the build steps talk to.

    Implementations raise :class:`~sourceclone.core.exceptions.NotFoundError`,
    :class:`~sourceclone.core.exceptions.AlreadyExistsError` and
    :class:`~sourceclone.core.exceptions.ConflictError` for the matching API
    responses, and :class:`~sourceclone.core.exceptions.ApiError` for any
    other failure.
    """

    async def create_build(self, build: Build) -> Build: ...

    async def get_build(self, namespace: str, name: str) -> Build: ...

    async def delete_build(
        self,
        namespace: str,
        name: str,
        *,
        uid: str | None = None,
        grace_period_seconds: int | None = None,
        propagation_policy: str | None = None,
    ) -> None: ...

    def build_logs(self, namespace: str, name: str) -> AsyncIterator[str]:
        """Stream the logs of a build without waiting for it to start."""
        ...

    async def get_image_stream(self, namespace: str, name: str) -> ImageStream: ...

    async def get_image_stream_tag(
        self, namespace: str, name: str
    ) -> ImageStreamTag: ...

    async def get_pod(self, namespace: str, name: str) -> Pod: ...

    async def list_events(
        self, namespace: str, *, involved_object_uid: str
    ) -> list[Event]: ...

    def objects(self) -> list[Build]:
        """Builds created through this client, in creation order."""
        ...
