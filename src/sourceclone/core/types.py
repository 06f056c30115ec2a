"""Wire models for the cluster objects this package reads and writes.

Field aliases follow the camelCase JSON the orchestration API speaks, so
``model_dump(by_alias=True, exclude_none=True)`` yields a request body and
``Model.model_validate(payload)`` reads a response.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from sourceclone.core.constants import BuildPhase


class _ApiModel(BaseModel):
    model_config = {"populate_by_name": True}

    def to_api(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class OwnerReference(_ApiModel):
    api_version: str = Field(alias="apiVersion")
    kind: str
    name: str
    uid: str
    controller: bool | None = None


class ObjectMeta(_ApiModel):
    name: str = ""
    namespace: str = ""
    uid: str | None = None
    labels: dict[str, str] = Field(default_factory=dict)
    annotations: dict[str, str] = Field(default_factory=dict)
    owner_references: list[OwnerReference] = Field(
        default_factory=list, alias="ownerReferences"
    )
    creation_timestamp: datetime | None = Field(default=None, alias="creationTimestamp")


class ObjectReference(_ApiModel):
    kind: str = ""
    namespace: str | None = None
    name: str = ""
    uid: str | None = None


class LocalObjectReference(_ApiModel):
    name: str


# ---------------------------------------------------------------------------
# Builds
# ---------------------------------------------------------------------------


class ImageSourcePath(_ApiModel):
    source_path: str = Field(alias="sourcePath")
    destination_dir: str = Field(alias="destinationDir")


class ImageSource(_ApiModel):
    from_: ObjectReference = Field(alias="from")
    as_: list[str] | None = Field(default=None, alias="as")
    paths: list[ImageSourcePath] = Field(default_factory=list)


class SecretBuildSource(_ApiModel):
    secret: LocalObjectReference
    destination_dir: str | None = Field(default=None, alias="destinationDir")


class BuildSource(_ApiModel):
    type: str = "Dockerfile"
    dockerfile: str | None = None
    context_dir: str | None = Field(default=None, alias="contextDir")
    images: list[ImageSource] = Field(default_factory=list)
    secrets: list[SecretBuildSource] = Field(default_factory=list)


class EnvVar(_ApiModel):
    """Build environment variable; the API omits ``value`` when it is empty."""

    name: str
    value: str = ""
    value_from: dict[str, Any] | None = Field(default=None, alias="valueFrom")


class DockerBuildStrategy(_ApiModel):
    dockerfile_path: str | None = Field(default=None, alias="dockerfilePath")
    from_: ObjectReference | None = Field(default=None, alias="from")
    pull_secret: LocalObjectReference | None = Field(default=None, alias="pullSecret")
    force_pull: bool = Field(default=False, alias="forcePull")
    no_cache: bool = Field(default=False, alias="noCache")
    env: list[EnvVar] = Field(default_factory=list)
    image_optimization_policy: str | None = Field(
        default=None, alias="imageOptimizationPolicy"
    )


class BuildStrategy(_ApiModel):
    type: str = "Docker"
    docker_strategy: DockerBuildStrategy = Field(
        default_factory=DockerBuildStrategy, alias="dockerStrategy"
    )


class ImageLabel(_ApiModel):
    name: str
    value: str


class BuildOutput(_ApiModel):
    to: ObjectReference | None = None
    image_labels: list[ImageLabel] = Field(default_factory=list, alias="imageLabels")


class ComputeResources(_ApiModel):
    """Resource requests and limits as the API expects them (quantity strings)."""

    requests: dict[str, str] | None = None
    limits: dict[str, str] | None = None


class BuildSpec(_ApiModel):
    resources: ComputeResources = Field(default_factory=ComputeResources)
    source: BuildSource = Field(default_factory=BuildSource)
    strategy: BuildStrategy = Field(default_factory=BuildStrategy)
    output: BuildOutput = Field(default_factory=BuildOutput)


class BuildStatus(_ApiModel):
    phase: BuildPhase = BuildPhase.NEW
    reason: str = ""
    message: str = ""
    log_snippet: str = Field(default="", alias="logSnippet")
    start_timestamp: datetime | None = Field(default=None, alias="startTimestamp")
    completion_timestamp: datetime | None = Field(
        default=None, alias="completionTimestamp"
    )


class Build(_ApiModel):
    api_version: str = Field(default="build.openshift.io/v1", alias="apiVersion")
    kind: str = "Build"
    metadata: ObjectMeta = Field(default_factory=ObjectMeta)
    spec: BuildSpec = Field(default_factory=BuildSpec)
    status: BuildStatus = Field(default_factory=BuildStatus)

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def namespace(self) -> str:
        return self.metadata.namespace


# ---------------------------------------------------------------------------
# Images
# ---------------------------------------------------------------------------


class ImageStreamStatus(_ApiModel):
    docker_image_repository: str = Field(default="", alias="dockerImageRepository")
    public_docker_image_repository: str = Field(
        default="", alias="publicDockerImageRepository"
    )


class ImageStream(_ApiModel):
    metadata: ObjectMeta = Field(default_factory=ObjectMeta)
    status: ImageStreamStatus = Field(default_factory=ImageStreamStatus)


class ImageRef(_ApiModel):
    """The image an image stream tag points at; ``name`` is its digest."""

    metadata: ObjectMeta = Field(default_factory=ObjectMeta)

    @property
    def digest(self) -> str:
        return self.metadata.name


class ImageStreamTag(_ApiModel):
    metadata: ObjectMeta = Field(default_factory=ObjectMeta)
    image: ImageRef = Field(default_factory=ImageRef)


# ---------------------------------------------------------------------------
# Pods and events (diagnostics only)
# ---------------------------------------------------------------------------


class ContainerStateWaiting(_ApiModel):
    reason: str = ""
    message: str = ""


class ContainerStateRunning(_ApiModel):
    started_at: datetime | None = Field(default=None, alias="startedAt")


class ContainerStateTerminated(_ApiModel):
    reason: str = ""
    message: str = ""
    exit_code: int = Field(default=0, alias="exitCode")


class ContainerState(_ApiModel):
    waiting: ContainerStateWaiting | None = None
    running: ContainerStateRunning | None = None
    terminated: ContainerStateTerminated | None = None


class ContainerStatus(_ApiModel):
    name: str
    ready: bool = False
    state: ContainerState = Field(default_factory=ContainerState)


class PodStatus(_ApiModel):
    phase: str = ""
    container_statuses: list[ContainerStatus] = Field(
        default_factory=list, alias="containerStatuses"
    )


class Pod(_ApiModel):
    metadata: ObjectMeta = Field(default_factory=ObjectMeta)
    status: PodStatus = Field(default_factory=PodStatus)


class EventSource(_ApiModel):
    component: str = ""


class Event(_ApiModel):
    metadata: ObjectMeta = Field(default_factory=ObjectMeta)
    involved_object: ObjectReference = Field(
        default_factory=ObjectReference, alias="involvedObject"
    )
    count: int = 0
    source: EventSource = Field(default_factory=EventSource)
    message: str = ""
