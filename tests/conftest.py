"""Shared test fixtures."""
from __future__ import annotations

import pytest

from sourceclone.client.fake import InMemoryBuildClient
from sourceclone.core.config import (
    ControllerSettings,
    ImageStreamTagReference,
    ResourceConfiguration,
    ResourceRequirements,
    SourceStepConfiguration,
)
from sourceclone.core.jobspec import JobSpec, Refs
from sourceclone.core.types import OwnerReference
from sourceclone.resilience.backoff import Backoff

NAMESPACE = "ci-op-test"
CLONEREFS_REPOSITORY = "registry.ci.example.com/ci/clonerefs"
CLONEREFS_DIGEST = "sha256:0f5e2c1a"


@pytest.fixture
def job_spec() -> JobSpec:
    return JobSpec(
        job="pull-ci-o-r-main-unit",
        build_id="42",
        prow_job_id="b2c8a4e6-1c1f-11ef-9d3e-0a580a800123",
        namespace=NAMESPACE,
        refs=Refs(org="o", repo="r", base_ref="main", base_sha="deadbeef"),
        owner=OwnerReference(
            api_version="v1",
            kind="Namespace",
            name=NAMESPACE,
            uid="ns-uid-1",
        ),
        raw_spec='{"type":"presubmit","job":"pull-ci-o-r-main-unit"}',
    )


@pytest.fixture
def source_config() -> SourceStepConfiguration:
    return SourceStepConfiguration(
        from_tag="root",
        to_tag="src",
        clonerefs_image=ImageStreamTagReference(namespace="ci", name="clonerefs", tag="latest"),
        clonerefs_path="/clonerefs",
    )


@pytest.fixture
def resources() -> ResourceConfiguration:
    return ResourceConfiguration(
        steps={"*": ResourceRequirements(requests={"cpu": "100m", "memory": "200Mi"})}
    )


@pytest.fixture
def fast_settings() -> ControllerSettings:
    return ControllerSettings(poll_interval=0.0, deletion_backoff=Backoff(duration=0.0))


@pytest.fixture
def fake_client() -> InMemoryBuildClient:
    """Fake API with the clonerefs image stream already published."""
    client = InMemoryBuildClient()
    client.add_image_stream("ci", "clonerefs", public=CLONEREFS_REPOSITORY)
    client.add_image_stream_tag("ci", "clonerefs:latest", CLONEREFS_DIGEST)
    return client
