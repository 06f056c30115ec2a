"""Human-readable explanations of why a build pod is not making progress."""
from __future__ import annotations

import structlog

from sourceclone.client.base import BuildClient
from sourceclone.core.exceptions import ApiError
from sourceclone.core.types import Pod

logger = structlog.get_logger(__name__)


def reasons_for_unready_containers(pod: Pod) -> str:
    lines: list[str] = []
    for status in pod.status.container_statuses:
        if status.ready:
            continue
        state = status.state
        if state.waiting is not None:
            reason, message = state.waiting.reason, state.waiting.message
        elif state.running is not None:
            reason, message = "Running", ""
        elif state.terminated is not None:
            reason, message = state.terminated.reason, state.terminated.message
        else:
            reason, message = "unknown", "unknown"
        suffix = f" and message {message}" if message else ""
        lines.append(f"\n* Container {status.name} is not ready with reason {reason}{suffix}")
    return "".join(lines)


async def events_for_pod(client: BuildClient, pod: Pod) -> str:
    """Summarize the events recorded for *pod*; empty if they can't be listed."""
    try:
        events = await client.list_events(
            pod.metadata.namespace, involved_object_uid=pod.metadata.uid or ""
        )
    except ApiError as exc:
        logger.warning("diagnostics.events_unavailable", pod=pod.metadata.name, error=str(exc))
        return ""
    lines = [f"Found {len(events)} events for Pod {pod.metadata.name}:"]
    for event in events:
        lines.append(f"\n* {event.count}x {event.source.component}: {event.message}")
    return "".join(lines)
