"""Decide whether a failed build failed because of the infrastructure."""
from __future__ import annotations

from collections.abc import Iterable

from pydantic import BaseModel

from sourceclone.core.constants import StatusReason
from sourceclone.core.types import BuildStatus

DEFAULT_INFRA_REASONS: frozenset[str] = frozenset(
    {
        StatusReason.CANNOT_CREATE_BUILD_POD,
        StatusReason.BUILD_POD_DELETED,
        StatusReason.BUILD_POD_EVICTED,
        StatusReason.EXCEEDED_RETRY_TIMEOUT,
        StatusReason.PUSH_IMAGE_TO_REGISTRY_FAILED,
        StatusReason.PULL_BUILDER_IMAGE_FAILED,
        StatusReason.FETCH_SOURCE_FAILED,
        StatusReason.BUILD_POD_EXISTS,
        StatusReason.NO_BUILD_CONTAINER_STATUS,
        StatusReason.FAILED_CONTAINER,
        StatusReason.OUT_OF_MEMORY_KILLED,
        StatusReason.CANNOT_RETRIEVE_SERVICE_ACCOUNT,
        StatusReason.FETCH_IMAGE_CONTENT_FAILED,
    }
)

DEFAULT_INFRA_LOG_HINTS: tuple[str, ...] = (
    "error: build error: no such image",
    "[Errno 256] No more mirrors to try.",
    "Error: Failed to synchronize cache for repo",
    "Could not resolve host: ",
    "net/http: TLS handshake timeout",
    "All mirrors were tried",
    "connection reset by peer",
)


class InfraFailureClassifier(BaseModel):
    """Predicate over a build's reason and log snippet.

    Both tables are plain data so callers can extend them::

        classifier = InfraFailureClassifier().extended(log_hints=["i/o timeout"])
        classifier.is_infra("DockerBuildFailed", "dial tcp: i/o timeout")  # True
    """

    model_config = {"frozen": True}

    infra_reasons: frozenset[str] = DEFAULT_INFRA_REASONS
    log_hints: tuple[str, ...] = DEFAULT_INFRA_LOG_HINTS

    def is_infra(self, reason: str, log_snippet: str = "") -> bool:
        if reason in self.infra_reasons:
            return True
        return any(hint in log_snippet for hint in self.log_hints)

    def is_infra_status(self, status: BuildStatus) -> bool:
        return self.is_infra(status.reason, status.log_snippet)

    def extended(
        self,
        *,
        reasons: Iterable[str] = (),
        log_hints: Iterable[str] = (),
    ) -> InfraFailureClassifier:
        """Return a copy that also recognizes *reasons* and *log_hints*."""
        return InfraFailureClassifier(
            infra_reasons=self.infra_reasons | frozenset(reasons),
            log_hints=self.log_hints + tuple(log_hints),
        )
