from __future__ import annotations

from typing import Any


class SourceCloneError(Exception):
    """Base exception for all sourceclone errors.

    Attributes:
        code: Optional machine-readable error code (e.g. ``"AlreadyExists"``).
        details: Arbitrary key/value context about the error.
        status_code: HTTP status code when the error originates from an
            orchestration API response (``None`` when not applicable).
    """

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: dict[str, Any] | None = None,
        *,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.details = details or {}
        self.status_code = status_code


class ConfigurationError(SourceCloneError): ...


class MalformedQuantityError(ConfigurationError):
    """A resource request or limit could not be parsed as a quantity."""

    def __init__(self, resource: str, raw: str, kind: str = "request") -> None:
        super().__init__(
            f"invalid resource {kind}: {resource}={raw!r} is not a valid quantity",
            code="MalformedQuantity",
            details={"resource": resource, "raw": raw, "kind": kind},
        )
        self.resource = resource
        self.raw = raw
        self.kind = kind


# ---------------------------------------------------------------------------
# Orchestration API errors
# ---------------------------------------------------------------------------


class ApiError(SourceCloneError): ...


class NotFoundError(ApiError): ...


class AlreadyExistsError(ApiError): ...


class ConflictError(ApiError): ...


# ---------------------------------------------------------------------------
# Resolution and build errors
# ---------------------------------------------------------------------------


class ImageResolutionError(SourceCloneError): ...


class StreamUnresolvableError(ImageResolutionError): ...


class BackoffExhaustedError(SourceCloneError): ...


class BuildError(SourceCloneError): ...


class BuildFailedError(BuildError):
    """A build reached a terminal failure phase.

    The message already carries the trailing log snippet, separated by a
    blank line, when the build reported one.
    """

    def __init__(
        self,
        message: str,
        *,
        name: str,
        phase: str,
        reason: str = "",
        log_snippet: str = "",
    ) -> None:
        super().__init__(
            message,
            code=reason or None,
            details={"name": name, "phase": phase, "reason": reason},
        )
        self.name = name
        self.phase = phase
        self.reason = reason
        self.log_snippet = log_snippet


class StepError(SourceCloneError):
    """A step failure tagged with a reason used for upstream aggregation."""

    def __init__(self, message: str, reason: str) -> None:
        super().__init__(message, code=reason)
        self.reason = reason


def for_reason(reason: str, exc: Exception) -> StepError:
    """Wrap *exc* in a :class:`StepError` carrying *reason*.

    The original exception is kept as ``__cause__``.
    """
    wrapped = StepError(str(exc), reason)
    wrapped.__cause__ = exc
    return wrapped
