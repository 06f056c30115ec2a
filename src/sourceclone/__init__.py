"""sourceclone: clone a job's source into the pipeline image stream."""

from sourceclone.__version__ import __version__

from sourceclone.builds.assembler import BuildSpecAssembler
from sourceclone.builds.classifier import InfraFailureClassifier
from sourceclone.builds.lifecycle import BuildLifecycleController
from sourceclone.builds.resolver import SourceResolver
from sourceclone.client.base import BuildClient
from sourceclone.client.fake import InMemoryBuildClient
from sourceclone.client.openshift import OpenShiftBuildClient
from sourceclone.core.config import (
    CloneAuthConfig,
    ClusterConfig,
    ControllerSettings,
    ImageStreamTagReference,
    ResourceConfiguration,
    ResourceRequirements,
    SourceStepConfiguration,
)
from sourceclone.core.constants import BuildPhase, CloneAuthType, StatusReason
from sourceclone.core.exceptions import (
    AlreadyExistsError,
    ApiError,
    BackoffExhaustedError,
    BuildError,
    BuildFailedError,
    ConfigurationError,
    ConflictError,
    ImageResolutionError,
    MalformedQuantityError,
    NotFoundError,
    SourceCloneError,
    StepError,
    StreamUnresolvableError,
)
from sourceclone.core.jobspec import JobSpec, Pull, Refs
from sourceclone.core.types import Build
from sourceclone.resilience.backoff import Backoff
from sourceclone.steps.source import SourceStep
from sourceclone.utils.logging import configure_logging

__all__ = [
    "__version__",
    # Step
    "SourceStep",
    # Builds
    "BuildSpecAssembler",
    "BuildLifecycleController",
    "InfraFailureClassifier",
    "SourceResolver",
    "Build",
    # Clients
    "BuildClient",
    "InMemoryBuildClient",
    "OpenShiftBuildClient",
    # Configuration
    "SourceStepConfiguration",
    "ImageStreamTagReference",
    "CloneAuthConfig",
    "ResourceConfiguration",
    "ResourceRequirements",
    "ControllerSettings",
    "ClusterConfig",
    "Backoff",
    "JobSpec",
    "Refs",
    "Pull",
    # Constants
    "BuildPhase",
    "StatusReason",
    "CloneAuthType",
    # Exceptions
    "SourceCloneError",
    "ConfigurationError",
    "MalformedQuantityError",
    "ApiError",
    "NotFoundError",
    "AlreadyExistsError",
    "ConflictError",
    "ImageResolutionError",
    "StreamUnresolvableError",
    "BackoffExhaustedError",
    "BuildError",
    "BuildFailedError",
    "StepError",
    "configure_logging",
]
