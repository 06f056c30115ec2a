from __future__ import annotations

import itertools
from collections import deque
from datetime import datetime, timezone
from typing import AsyncIterator

from sourceclone.core.constants import BuildPhase
from sourceclone.core.exceptions import (
    AlreadyExistsError,
    ConflictError,
    NotFoundError,
)
from sourceclone.core.types import (
    Build,
    BuildStatus,
    Event,
    ImageRef,
    ImageStream,
    ImageStreamStatus,
    ImageStreamTag,
    ObjectMeta,
    Pod,
)


class InMemoryBuildClient:
    """In-memory :class:`~sourceclone.client.base.BuildClient` for testing.

    Honours the parts of the API contract the build steps rely on: creating
    an existing name fails with ``AlreadyExistsError``, deletes check the
    UID precondition, and reads of missing objects raise ``NotFoundError``.

    Usage::

        client = InMemoryBuildClient()
        client.script_build("src", [BuildPhase.RUNNING, BuildPhase.COMPLETE])
        await client.create_build(build)
        (await client.get_build("ns", "src")).status.phase  # Running
        (await client.get_build("ns", "src")).status.phase  # Complete

    Inject failures::

        client.fail("get_build", ApiError("etcd timeout"))
    """

    def __init__(self) -> None:
        self.builds: dict[tuple[str, str], Build] = {}
        self.image_streams: dict[tuple[str, str], ImageStream] = {}
        self.image_stream_tags: dict[tuple[str, str], ImageStreamTag] = {}
        self.pods: dict[tuple[str, str], Pod] = {}
        self.events: list[Event] = []
        self.logs: dict[tuple[str, str], str] = {}
        self.deletion_delay = 0
        self.calls: list[tuple[str, str]] = []
        self._created: list[Build] = []
        self._scripts: dict[str, list[BuildStatus]] = {}
        self._pending: dict[tuple[str, str], deque[BuildStatus]] = {}
        self._deleting: dict[tuple[str, str], int] = {}
        self._failures: dict[str, deque[Exception]] = {}
        self._uids = itertools.count(1)

    # ------------------------------------------------------------------ #
    # Setup helpers
    # ------------------------------------------------------------------ #

    def add_build(self, build: Build) -> Build:
        """Store *build* as if it had been created earlier by someone else."""
        stored = self._stamp(build)
        self.builds[(stored.namespace, stored.name)] = stored
        return stored

    def script_build(
        self, name: str, statuses: list[BuildStatus | BuildPhase]
    ) -> None:
        """Statuses reported by successive reads after each creation of *name*.

        The last status sticks once the script is exhausted.
        """
        self._scripts[name] = [
            s if isinstance(s, BuildStatus) else BuildStatus(phase=s) for s in statuses
        ]

    def add_image_stream(
        self, namespace: str, name: str, *, public: str = "", internal: str = ""
    ) -> None:
        self.image_streams[(namespace, name)] = ImageStream(
            metadata=ObjectMeta(name=name, namespace=namespace),
            status=ImageStreamStatus(
                public_docker_image_repository=public,
                docker_image_repository=internal,
            ),
        )

    def add_image_stream_tag(self, namespace: str, name: str, digest: str) -> None:
        self.image_stream_tags[(namespace, name)] = ImageStreamTag(
            metadata=ObjectMeta(name=name, namespace=namespace),
            image=ImageRef(metadata=ObjectMeta(name=digest)),
        )

    def add_pod(self, pod: Pod) -> None:
        self.pods[(pod.metadata.namespace, pod.metadata.name)] = pod

    def fail(self, method: str, exc: Exception, times: int = 1) -> None:
        """Make the next *times* calls to *method* raise *exc*."""
        self._failures.setdefault(method, deque()).extend([exc] * times)

    def count(self, method: str) -> int:
        return sum(1 for called, _ in self.calls if called == method)

    # ------------------------------------------------------------------ #
    # BuildClient implementation
    # ------------------------------------------------------------------ #

    async def create_build(self, build: Build) -> Build:
        self._record("create_build", build.name)
        key = (build.namespace, build.name)
        if key in self.builds:
            raise AlreadyExistsError(
                f'builds "{build.name}" already exists',
                code="AlreadyExists",
                status_code=409,
            )
        stored = self._stamp(build)
        stored.status = BuildStatus(phase=BuildPhase.NEW)
        self.builds[key] = stored
        self._pending[key] = deque(
            s.model_copy() for s in self._scripts.get(build.name, [])
        )
        self._created.append(stored.model_copy(deep=True))
        return stored.model_copy(deep=True)

    async def get_build(self, namespace: str, name: str) -> Build:
        self._record("get_build", name)
        key = (namespace, name)
        if key in self._deleting:
            if self._deleting[key] <= 0:
                del self._deleting[key]
                self.builds.pop(key, None)
            else:
                self._deleting[key] -= 1
        build = self.builds.get(key)
        if build is None:
            raise NotFoundError(f'builds "{name}" not found', code="NotFound", status_code=404)
        pending = self._pending.get(key)
        if pending:
            build.status = pending.popleft()
        return build.model_copy(deep=True)

    async def delete_build(
        self,
        namespace: str,
        name: str,
        *,
        uid: str | None = None,
        grace_period_seconds: int | None = None,
        propagation_policy: str | None = None,
    ) -> None:
        self._record("delete_build", name)
        key = (namespace, name)
        build = self.builds.get(key)
        if build is None or key in self._deleting:
            raise NotFoundError(f'builds "{name}" not found', code="NotFound", status_code=404)
        if uid is not None and build.metadata.uid != uid:
            raise ConflictError(
                f"Precondition failed: UID in precondition: {uid}, "
                f"UID in object meta: {build.metadata.uid}",
                code="Conflict",
                status_code=409,
            )
        self._pending.pop(key, None)
        self._deleting[key] = self.deletion_delay

    async def build_logs(self, namespace: str, name: str) -> AsyncIterator[str]:
        self._record("build_logs", name)
        key = (namespace, name)
        if key not in self.builds:
            raise NotFoundError(f'builds "{name}" not found', code="NotFound", status_code=404)
        for line in self.logs.get(key, "").splitlines(keepends=True):
            yield line

    async def get_image_stream(self, namespace: str, name: str) -> ImageStream:
        self._record("get_image_stream", name)
        try:
            return self.image_streams[(namespace, name)].model_copy(deep=True)
        except KeyError:
            raise NotFoundError(
                f'imagestreams.image.openshift.io "{name}" not found', status_code=404
            ) from None

    async def get_image_stream_tag(self, namespace: str, name: str) -> ImageStreamTag:
        self._record("get_image_stream_tag", name)
        try:
            return self.image_stream_tags[(namespace, name)].model_copy(deep=True)
        except KeyError:
            raise NotFoundError(
                f'imagestreamtags.image.openshift.io "{name}" not found', status_code=404
            ) from None

    async def get_pod(self, namespace: str, name: str) -> Pod:
        self._record("get_pod", name)
        try:
            return self.pods[(namespace, name)].model_copy(deep=True)
        except KeyError:
            raise NotFoundError(f'pods "{name}" not found', status_code=404) from None

    async def list_events(
        self, namespace: str, *, involved_object_uid: str
    ) -> list[Event]:
        self._record("list_events", involved_object_uid)
        return [
            e.model_copy(deep=True)
            for e in self.events
            if e.metadata.namespace == namespace
            and e.involved_object.uid == involved_object_uid
        ]

    def objects(self) -> list[Build]:
        return [b.model_copy(deep=True) for b in self._created]

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #

    def _record(self, method: str, name: str) -> None:
        self.calls.append((method, name))
        pending = self._failures.get(method)
        if pending:
            raise pending.popleft()

    def _stamp(self, build: Build) -> Build:
        stored = build.model_copy(deep=True)
        stored.metadata.uid = f"uid-{next(self._uids)}"
        if stored.metadata.creation_timestamp is None:
            stored.metadata.creation_timestamp = datetime.now(timezone.utc)
        return stored
