"""Create a build, retry it once after an infrastructure failure, and wait for it.

The controller walks one build through::

    Absent ──create──▶ Polling
       │ already exists
       ▼
    Existing ──terminal + infra failure──▶ Deleting ──gone──▶ Recreating ──▶ Polling
       │ anything else
       ▼
    Polling ──Complete──▶ Succeeded (logs harvested into artifacts)
            ──Failed/Error/Cancelled──▶ Failed (logs printed, BuildFailedError)

Cancelling the awaiting task unwinds the walk at the next suspension point;
the resulting :class:`asyncio.CancelledError` is never wrapped.
"""
from __future__ import annotations

import asyncio
import sys
from datetime import datetime, timedelta, timezone
from typing import TextIO

import structlog

from sourceclone.builds.artifacts import BuildLogArtifacts
from sourceclone.builds.classifier import InfraFailureClassifier
from sourceclone.builds.diagnostics import events_for_pod, reasons_for_unready_containers
from sourceclone.client.base import BuildClient
from sourceclone.core.config import ControllerSettings
from sourceclone.core.constants import BUILD_POD_NAME_ANNOTATION, BuildPhase
from sourceclone.core.exceptions import (
    AlreadyExistsError,
    ApiError,
    BackoffExhaustedError,
    BuildError,
    BuildFailedError,
    ConflictError,
    NotFoundError,
)
from sourceclone.core.types import Build
from sourceclone.utils.async_helpers import checkpoint

logger = structlog.get_logger(__name__)


def format_duration(duration: timedelta) -> str:
    """Render *duration* truncated to whole seconds, e.g. ``1h2m3s`` or ``45s``."""
    total = max(int(duration.total_seconds()), 0)
    hours, rest = divmod(total, 3600)
    minutes, seconds = divmod(rest, 60)
    if hours:
        return f"{hours}h{minutes}m{seconds}s"
    if minutes:
        return f"{minutes}m{seconds}s"
    return f"{seconds}s"


def build_duration(build: Build) -> timedelta:
    now = datetime.now(timezone.utc)
    start = build.status.start_timestamp or build.metadata.creation_timestamp or now
    end = build.status.completion_timestamp or now
    return end - start


def append_log_to_error(message: str, log: str) -> str:
    log = log.strip()
    if not log:
        return message
    return f"{message}\n\n{log}"


class BuildLifecycleController:
    """Drives one build from submission to a terminal phase.

    Args:
        client: Orchestration API client.
        classifier: Decides whether an existing failed build is retried.
        settings: Poll interval, deletion backoff and artifact directory.
        output: Stream failed build logs are copied to (default ``sys.stdout``).
    """

    def __init__(
        self,
        client: BuildClient,
        *,
        classifier: InfraFailureClassifier | None = None,
        settings: ControllerSettings | None = None,
        output: TextIO | None = None,
    ) -> None:
        self._client = client
        self._classifier = classifier or InfraFailureClassifier()
        self._settings = settings or ControllerSettings()
        self._output = output
        self._artifacts = (
            BuildLogArtifacts(self._settings.artifact_dir)
            if self._settings.artifact_dir is not None
            else None
        )

    def __repr__(self) -> str:
        return f"BuildLifecycleController(poll_interval={self._settings.poll_interval})"

    async def run(self, build: Build) -> None:
        """Submit *build* and wait until it completes.

        Raises:
            BuildError: If the build could not be created, read or replaced.
            BuildFailedError: If the build ends in a failure phase.
        """
        await self.submit(build)
        await self.wait_for_build(build.namespace, build.name)
        try:
            await self.gather_successful_build_log(build.namespace, build.name)
        except (ApiError, OSError) as exc:
            logger.warning(
                "build.log_gather_failed", build=build.name, error=str(exc)
            )

    # ------------------------------------------------------------------ #
    # Submission
    # ------------------------------------------------------------------ #

    async def submit(self, build: Build) -> None:
        """Create *build*, replacing an existing one that failed on infrastructure.

        An existing build that is still running, succeeded, or failed for
        any other reason is left alone; polling will report on it.
        """
        name, namespace = build.name, build.namespace
        try:
            await self._client.create_build(build)
            return
        except AlreadyExistsError:
            pass
        except ApiError as exc:
            raise BuildError(f"could not create build {name}: {exc}") from exc

        await checkpoint()
        try:
            existing = await self._client.get_build(namespace, name)
        except ApiError as exc:
            raise BuildError(f"could not get build {name}: {exc}") from exc

        status = existing.status
        if not (status.phase.is_terminal and self._classifier.is_infra_status(status)):
            return

        logger.warning(
            "build.infra_failure_retry",
            build=name,
            reason=status.reason,
        )
        await checkpoint()
        try:
            await self._client.delete_build(
                namespace,
                name,
                uid=existing.metadata.uid,
                grace_period_seconds=0,
                propagation_policy="Foreground",
            )
        except (NotFoundError, ConflictError):
            # Someone else already deleted or replaced it.
            pass
        except ApiError as exc:
            raise BuildError(f"could not delete build {name}: {exc}") from exc

        try:
            await self.wait_for_build_deletion(namespace, name)
        except (ApiError, BackoffExhaustedError) as exc:
            raise BuildError(
                f"could not wait for build {name} to be deleted: {exc}"
            ) from exc

        await checkpoint()
        try:
            await self._client.create_build(build)
        except AlreadyExistsError:
            pass
        except ApiError as exc:
            raise BuildError(f"could not recreate build {name}: {exc}") from exc

    async def wait_for_build_deletion(self, namespace: str, name: str) -> None:
        """Block until the build is gone, backing off between reads.

        Raises:
            BackoffExhaustedError: If the build still exists after every step.
            ApiError: If a read fails for any reason other than not-found.
        """

        async def _gone() -> bool:
            try:
                await self._client.get_build(namespace, name)
            except NotFoundError:
                return True
            return False

        await self._settings.deletion_backoff.wait_for(_gone)

    # ------------------------------------------------------------------ #
    # Polling
    # ------------------------------------------------------------------ #

    async def wait_for_build(self, namespace: str, name: str) -> None:
        """Poll the build until it reaches a terminal phase.

        Reads that fail once polling has started are logged and retried on
        the next tick.

        Raises:
            BuildError: If the first read fails.
            BuildFailedError: If the build ends in Failed, Error or Cancelled.
        """
        await checkpoint()
        try:
            build = await self._client.get_build(namespace, name)
        except NotFoundError as exc:
            raise BuildError(f"could not find build {name}") from exc
        except ApiError as exc:
            raise BuildError(f"could not get build: {exc}") from exc

        if build.status.phase == BuildPhase.COMPLETE:
            logger.info(
                "build.already_succeeded",
                build=name,
                duration=format_duration(build_duration(build)),
            )
            return
        if build.status.phase.is_failure:
            raise await self._failure(build)

        while True:
            await asyncio.sleep(self._settings.poll_interval)
            try:
                build = await self._client.get_build(namespace, name)
            except ApiError as exc:
                logger.warning("build.get_failed", build=name, error=str(exc))
                continue
            if build.status.phase == BuildPhase.COMPLETE:
                logger.info(
                    "build.succeeded",
                    build=name,
                    duration=format_duration(build_duration(build)),
                )
                return
            if build.status.phase.is_failure:
                raise await self._failure(build)

    async def _failure(self, build: Build) -> BuildFailedError:
        status = build.status
        logger.error("build.failed", build=build.name, phase=status.phase, reason=status.reason)
        await self.print_build_logs(build.namespace, build.name)
        await self.describe_build_pod(build)
        message = (
            f"the build {build.name} failed after {format_duration(build_duration(build))}"
            f" in phase {status.phase} with reason {status.reason}: {status.message}"
        )
        return BuildFailedError(
            append_log_to_error(message, status.log_snippet),
            name=build.name,
            phase=status.phase,
            reason=status.reason,
            log_snippet=status.log_snippet,
        )

    # ------------------------------------------------------------------ #
    # Diagnostics (best-effort)
    # ------------------------------------------------------------------ #

    async def print_build_logs(self, namespace: str, name: str) -> None:
        """Copy the build's logs to the output stream; failures are only logged."""
        output = self._output or sys.stdout
        try:
            async for chunk in self._client.build_logs(namespace, name):
                output.write(chunk)
            output.flush()
        except ApiError as exc:
            logger.error("build.logs_unavailable", build=name, error=str(exc))
        except OSError as exc:
            logger.error("build.logs_copy_failed", build=name, error=str(exc))

    async def describe_build_pod(self, build: Build) -> None:
        """Log why the build pod's containers are unready and the pod's events."""
        pod_name = build.metadata.annotations.get(
            BUILD_POD_NAME_ANNOTATION, f"{build.name}-build"
        )
        try:
            pod = await self._client.get_pod(build.namespace, pod_name)
        except ApiError as exc:
            logger.debug("build.pod_unavailable", build=build.name, pod=pod_name, error=str(exc))
            return
        reasons = reasons_for_unready_containers(pod)
        events = await events_for_pod(self._client, pod)
        if reasons or events:
            logger.info(
                "build.pod_diagnostics",
                build=build.name,
                pod=pod_name,
                containers=reasons.strip(),
                events=events,
            )

    async def gather_successful_build_log(self, namespace: str, name: str) -> None:
        """Write the build log into the artifact directory, when one is configured."""
        if self._artifacts is None:
            return
        path = await self._artifacts.write(name, self._client.build_logs(namespace, name))
        logger.debug("build.log_gathered", build=name, path=str(path))
