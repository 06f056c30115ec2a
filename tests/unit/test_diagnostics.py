"""Tests for builds/diagnostics.py — unready containers and pod events."""
from __future__ import annotations

from sourceclone.builds.diagnostics import events_for_pod, reasons_for_unready_containers
from sourceclone.client.fake import InMemoryBuildClient
from sourceclone.core.exceptions import ApiError
from sourceclone.core.types import (
    ContainerState,
    ContainerStateRunning,
    ContainerStateTerminated,
    ContainerStateWaiting,
    ContainerStatus,
    Event,
    EventSource,
    ObjectMeta,
    ObjectReference,
    Pod,
    PodStatus,
)


def _pod(*statuses: ContainerStatus) -> Pod:
    return Pod(
        metadata=ObjectMeta(name="src-build", namespace="ns", uid="pod-uid"),
        status=PodStatus(phase="Pending", container_statuses=list(statuses)),
    )


def test_ready_containers_are_skipped() -> None:
    assert reasons_for_unready_containers(_pod(ContainerStatus(name="docker-build", ready=True))) == ""


def test_waiting_container_reason_and_message() -> None:
    pod = _pod(
        ContainerStatus(
            name="docker-build",
            state=ContainerState(
                waiting=ContainerStateWaiting(reason="ImagePullBackOff", message="pull denied")
            ),
        )
    )
    assert reasons_for_unready_containers(pod) == (
        "\n* Container docker-build is not ready with reason ImagePullBackOff and message pull denied"
    )


def test_terminated_container_without_message() -> None:
    pod = _pod(
        ContainerStatus(
            name="git-clone",
            state=ContainerState(terminated=ContainerStateTerminated(reason="Error", exit_code=1)),
        )
    )
    assert reasons_for_unready_containers(pod) == (
        "\n* Container git-clone is not ready with reason Error"
    )


def test_running_and_unknown_states() -> None:
    pod = _pod(
        ContainerStatus(name="a", state=ContainerState(running=ContainerStateRunning())),
        ContainerStatus(name="b"),
    )
    assert reasons_for_unready_containers(pod) == (
        "\n* Container a is not ready with reason Running"
        "\n* Container b is not ready with reason unknown and message unknown"
    )


async def test_events_for_pod_lists_matching_events() -> None:
    client = InMemoryBuildClient()
    client.events = [
        Event(
            metadata=ObjectMeta(namespace="ns"),
            involved_object=ObjectReference(kind="Pod", uid="pod-uid"),
            count=3,
            source=EventSource(component="kubelet"),
            message="Back-off pulling image",
        ),
        Event(
            metadata=ObjectMeta(namespace="ns"),
            involved_object=ObjectReference(kind="Pod", uid="other"),
            count=1,
            message="unrelated",
        ),
    ]
    assert await events_for_pod(client, _pod()) == (
        "Found 1 events for Pod src-build:\n* 3x kubelet: Back-off pulling image"
    )


async def test_events_for_pod_swallow_api_errors() -> None:
    client = InMemoryBuildClient()
    client.fail("list_events", ApiError("forbidden", status_code=403))
    assert await events_for_pod(client, _pod()) == ""
