from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from sourceclone.core.constants import CLONE_HOST, CloneAuthType
from sourceclone.core.types import ImageSourcePath
from sourceclone.resilience.backoff import Backoff

_SERVICE_ACCOUNT_TOKEN = Path("/var/run/secrets/kubernetes.io/serviceaccount/token")


class ImageStreamTagReference(BaseModel):
    namespace: str
    name: str
    tag: str

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}:{self.tag}"


class SourceStepConfiguration(BaseModel):
    """Declarative configuration of the source-clone step.

    Attributes:
        from_tag: Pipeline image tag the source image is built on top of.
        to_tag: Pipeline image tag the source image is published as.
        clonerefs_image: Image stream tag carrying the clonerefs helper.
        clonerefs_path: Path of the helper binary inside that image.
    """

    model_config = {"frozen": True}

    from_tag: str = ""
    to_tag: str
    clonerefs_image: ImageStreamTagReference
    clonerefs_path: str


class CloneAuthConfig(BaseModel):
    """Credentials for cloning private repositories.

    Only the secret name is referenced; the secret itself must already exist
    in the build namespace.
    """

    model_config = {"frozen": True}

    secret_name: str
    type: CloneAuthType

    def clone_uri(self, org: str, repo: str, host: str = CLONE_HOST) -> str:
        if self.type == CloneAuthType.SSH:
            return f"ssh://git@{host}/{org}/{repo}.git"
        return f"https://{host}/{org}/{repo}.git"


class ResourceRequirements(BaseModel):
    requests: dict[str, str] = Field(default_factory=dict)
    limits: dict[str, str] = Field(default_factory=dict)


class ResourceConfiguration(BaseModel):
    """Per-step resource requirements, with ``"*"`` holding the defaults."""

    steps: dict[str, ResourceRequirements] = Field(default_factory=dict)

    def requirements_for_step(self, name: str) -> ResourceRequirements:
        """Merge the ``"*"`` defaults with the requirements for *name*.

        Values configured for the step itself win over the defaults.
        """
        merged = ResourceRequirements()
        for key in ("*", name):
            values = self.steps.get(key)
            if values is None:
                continue
            merged.requests.update(values.requests)
            merged.limits.update(values.limits)
        return merged


class ControllerSettings(BaseModel):
    poll_interval: float = Field(default=5.0, ge=0.0)
    """Seconds between build status reads while waiting for a terminal phase."""
    deletion_backoff: Backoff = Field(default_factory=Backoff)
    """Backoff used while waiting for a deleted build to disappear."""
    artifact_dir: Path | None = None
    """Directory successful build logs are written to; ``None`` disables it."""

    @classmethod
    def from_env(cls) -> ControllerSettings:
        """Create :class:`ControllerSettings` from the environment.

        Reads ``SOURCECLONE_POLL_INTERVAL`` and ``ARTIFACT_DIR``. Unset or empty
        variables keep their defaults.
        """
        kwargs: dict[str, Any] = {}

        interval = os.environ.get("SOURCECLONE_POLL_INTERVAL")
        if interval:
            kwargs["poll_interval"] = float(interval)

        artifact_dir = os.environ.get("ARTIFACT_DIR")
        if artifact_dir:
            kwargs["artifact_dir"] = Path(artifact_dir)

        return cls(**kwargs)


class ClusterConfig(BaseModel):
    api_url: str = "https://kubernetes.default.svc"
    token: str | None = None
    verify: bool | str = True
    timeout: float = Field(default=30.0, gt=0.0)

    @classmethod
    def from_env(cls) -> ClusterConfig:
        """Create a :class:`ClusterConfig` from the environment.

        * ``SOURCECLONE_API_URL``, else ``KUBERNETES_SERVICE_HOST`` and
          ``KUBERNETES_SERVICE_PORT`` → ``api_url``
        * ``SOURCECLONE_API_TOKEN``, else the mounted service-account token
          → ``token``
        """
        kwargs: dict[str, Any] = {}

        api_url = os.environ.get("SOURCECLONE_API_URL")
        host = os.environ.get("KUBERNETES_SERVICE_HOST")
        if api_url:
            kwargs["api_url"] = api_url
        elif host:
            port = os.environ.get("KUBERNETES_SERVICE_PORT", "443")
            kwargs["api_url"] = f"https://{host}:{port}"

        token = os.environ.get("SOURCECLONE_API_TOKEN")
        if token:
            kwargs["token"] = token
        elif _SERVICE_ACCOUNT_TOKEN.is_file():
            kwargs["token"] = _SERVICE_ACCOUNT_TOKEN.read_text().strip()

        return cls(**kwargs)


class ImageBuildInputs(BaseModel):
    """Content of one pipeline image made available to a dependent build.

    Attributes:
        paths: Paths copied out of the image into the build context.
        as_: Names the image is referenced as in the build's Dockerfile.
    """

    model_config = {"populate_by_name": True}

    paths: list[ImageSourcePath] = Field(default_factory=list)
    as_: list[str] = Field(default_factory=list, alias="as")
