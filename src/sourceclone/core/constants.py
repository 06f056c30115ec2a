from __future__ import annotations

from enum import StrEnum


class BuildPhase(StrEnum):
    NEW = "New"
    PENDING = "Pending"
    RUNNING = "Running"
    COMPLETE = "Complete"
    FAILED = "Failed"
    ERROR = "Error"
    CANCELLED = "Cancelled"

    @property
    def is_terminal(self) -> bool:
        return self not in (BuildPhase.NEW, BuildPhase.PENDING, BuildPhase.RUNNING)

    @property
    def is_failure(self) -> bool:
        return self in (BuildPhase.FAILED, BuildPhase.ERROR, BuildPhase.CANCELLED)


class StatusReason(StrEnum):
    """Machine-readable reasons a build reports in ``status.reason``."""

    CANNOT_CREATE_BUILD_POD = "CannotCreateBuildPod"
    BUILD_POD_DELETED = "BuildPodDeleted"
    BUILD_POD_EVICTED = "BuildPodEvicted"
    EXCEEDED_RETRY_TIMEOUT = "ExceededRetryTimeout"
    PUSH_IMAGE_TO_REGISTRY_FAILED = "PushImageToRegistryFailed"
    PULL_BUILDER_IMAGE_FAILED = "PullBuilderImageFailed"
    FETCH_SOURCE_FAILED = "FetchSourceFailed"
    BUILD_POD_EXISTS = "BuildPodExists"
    NO_BUILD_CONTAINER_STATUS = "NoBuildContainerStatus"
    FAILED_CONTAINER = "FailedContainer"
    OUT_OF_MEMORY_KILLED = "OutOfMemoryKilled"
    CANNOT_RETRIEVE_SERVICE_ACCOUNT = "CannotRetrieveServiceAccount"
    FETCH_IMAGE_CONTENT_FAILED = "FetchImageContentFailed"
    DOCKER_BUILD_FAILED = "DockerBuildFailed"
    GENERIC_BUILD_FAILED = "GenericBuildFailed"


class CloneAuthType(StrEnum):
    SSH = "SSH"
    OAUTH = "OAuth"


# Image stream every pipeline image is tagged into.
PIPELINE_IMAGE_STREAM = "pipeline"

CI_ANNOTATION_PREFIX = "ci.openshift.io"
JOB_SPEC_ANNOTATION = f"{CI_ANNOTATION_PREFIX}/job-spec"
BUILD_POD_NAME_ANNOTATION = "openshift.io/build.pod-name"

JOB_LABEL = "job"
BUILD_ID_LABEL = "build-id"
CREATES_LABEL = "creates"
CREATED_BY_CI_LABEL = "created-by-ci"
PROW_JOB_ID_LABEL = "prow.k8s.io/id"
OPENSHIFT_CI_ENV_LABEL = "OPENSHIFT_CI"
REFS_ORG_LABEL = f"{CI_ANNOTATION_PREFIX}/refs.org"
REFS_REPO_LABEL = f"{CI_ANNOTATION_PREFIX}/refs.repo"
REFS_BRANCH_LABEL = f"{CI_ANNOTATION_PREFIX}/refs.branch"

MAX_LABEL_LENGTH = 63
LABEL_TRUNCATION_MARKER = "XXX"

GOPATH = "/go"
SSH_PRIVATE_KEY_PATH = "/sshprivatekey"
SSH_CONFIG_PATH = "/ssh_config"
OAUTH_TOKEN_PATH = "/oauth-token"

SSH_AUTH_PRIVATE_KEY = "ssh-privatekey"
OAUTH_SECRET_KEY = "oauth-token"

CLONE_HOST = "github.com"
CLONEREFS_OPTIONS_ENV = "CLONEREFS_OPTIONS"
CLONING_SOURCE_REASON = "cloning_source"
