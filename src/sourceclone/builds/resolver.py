from __future__ import annotations

import structlog

from sourceclone.client.base import BuildClient
from sourceclone.core.config import ImageStreamTagReference
from sourceclone.core.exceptions import ApiError, ImageResolutionError, StreamUnresolvableError
from sourceclone.core.types import ObjectReference

logger = structlog.get_logger(__name__)


class SourceResolver:
    """Resolve an image stream tag to a digest-pinned pull spec.

    Two point reads: the image stream for its registry address, then the tag
    for its image digest. Nothing is retried here.
    """

    def __init__(self, client: BuildClient) -> None:
        self._client = client

    async def resolve(self, reference: ImageStreamTagReference) -> ObjectReference:
        try:
            stream = await self._client.get_image_stream(reference.namespace, reference.name)
        except ApiError as exc:
            raise ImageResolutionError(
                f"could not resolve remote image stream: {exc}",
                details={"reference": str(reference)},
            ) from exc

        repository = (
            stream.status.public_docker_image_repository
            or stream.status.docker_image_repository
        )
        if not repository:
            raise StreamUnresolvableError(
                f"remote image stream {reference.name} has no accessible image registry value",
                details={"reference": str(reference)},
            )

        try:
            tag = await self._client.get_image_stream_tag(
                reference.namespace, f"{reference.name}:{reference.tag}"
            )
        except ApiError as exc:
            raise ImageResolutionError(
                f"could not resolve remote image stream tag: {exc}",
                details={"reference": str(reference)},
            ) from exc

        pull_spec = f"{repository}@{tag.image.digest}"
        logger.debug("resolver.resolved", reference=str(reference), pull_spec=pull_spec)
        return ObjectReference(kind="DockerImage", name=pull_spec)
