from __future__ import annotations

import structlog

from sourceclone.builds.assembler import BuildSpecAssembler
from sourceclone.builds.classifier import InfraFailureClassifier
from sourceclone.builds.lifecycle import BuildLifecycleController
from sourceclone.builds.resolver import SourceResolver
from sourceclone.client.base import BuildClient
from sourceclone.core.config import (
    CloneAuthConfig,
    ControllerSettings,
    ResourceConfiguration,
    SourceStepConfiguration,
)
from sourceclone.core.constants import CLONING_SOURCE_REASON, PIPELINE_IMAGE_STREAM
from sourceclone.core.exceptions import (
    ApiError,
    ImageResolutionError,
    for_reason,
)
from sourceclone.core.jobspec import JobSpec
from sourceclone.core.types import Build
from sourceclone.steps.base import (
    DeferredParameter,
    ParameterMap,
    StepLink,
    internal_image_link,
    pipeline_image_env_for,
)
from sourceclone.utils.logging import step_context

logger = structlog.get_logger(__name__)


class SourceStep:
    """Clones the job's source code into ``pipeline:<to_tag>``.

    Args:
        config: Base and target tags plus where to find clonerefs.
        resources: Resource requirements for the build.
        client: Orchestration API client.
        job_spec: The job being tested.
        clone_auth: Credentials for private repositories; anonymous HTTPS when ``None``.
        pull_secret: Registry pull secret name used by the build, if any.
        settings: Controller settings (poll interval, artifacts).
        classifier: Decides which failed builds are retried.
    """

    def __init__(
        self,
        config: SourceStepConfiguration,
        resources: ResourceConfiguration,
        client: BuildClient,
        job_spec: JobSpec,
        *,
        clone_auth: CloneAuthConfig | None = None,
        pull_secret: str | None = None,
        settings: ControllerSettings | None = None,
        classifier: InfraFailureClassifier | None = None,
    ) -> None:
        self._config = config
        self._resources = resources
        self._client = client
        self._job_spec = job_spec
        self._clone_auth = clone_auth
        self._pull_secret = pull_secret
        self._settings = settings or ControllerSettings()
        self._classifier = classifier

    def __repr__(self) -> str:
        return f"SourceStep(to={self._config.to_tag!r})"

    def inputs(self) -> list[str]:
        return self._job_spec.inputs()

    def validate(self) -> None:
        return None

    async def run(self) -> None:
        """Build the source image.

        Raises:
            StepError: Tagged ``cloning_source``, wrapping whatever went wrong.
                Cancellation propagates unwrapped.
        """
        with step_context(step=self.name(), namespace=self._job_spec.namespace):
            logger.info("step.running", description=self.description())
            try:
                await self._run()
            except Exception as exc:
                raise for_reason(CLONING_SOURCE_REASON, exc) from exc

    async def _run(self) -> None:
        try:
            clonerefs_ref = await SourceResolver(self._client).resolve(
                self._config.clonerefs_image
            )
        except ImageResolutionError as exc:
            raise type(exc)(
                f"could not resolve clonerefs source: {exc}", details=exc.details
            ) from exc

        assembler = BuildSpecAssembler(self._job_spec, self._resources, self._pull_secret)
        build = assembler.source_build(self._config, clonerefs_ref, self._clone_auth)
        controller = BuildLifecycleController(
            self._client, classifier=self._classifier, settings=self._settings
        )
        await controller.run(build)

    def requires(self) -> list[StepLink]:
        return [internal_image_link(self._config.from_tag)]

    def creates(self) -> list[StepLink]:
        return [internal_image_link(self._config.to_tag)]

    def provides(self) -> ParameterMap:
        return ParameterMap.of(
            DeferredParameter(pipeline_image_env_for(self._config.to_tag), self._image_digest)
        )

    async def _image_digest(self) -> str:
        """Digest of the image the build published as ``pipeline:<to_tag>``."""
        name = f"{PIPELINE_IMAGE_STREAM}:{self._config.to_tag}"
        try:
            tag = await self._client.get_image_stream_tag(self._job_spec.namespace, name)
        except ApiError as exc:
            raise ImageResolutionError(f"could not retrieve output image {name}: {exc}") from exc
        if not tag.image.digest:
            raise ImageResolutionError(f"image stream tag {name} has no image")
        return tag.image.digest

    def name(self) -> str:
        return self._config.to_tag

    def description(self) -> str:
        return (
            "Clone the correct source code into an image and tag it as "
            f"{self._config.to_tag}"
        )

    def objects(self) -> list[Build]:
        return self._client.objects()
