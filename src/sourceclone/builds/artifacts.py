"""Artifact sink for the logs of successful builds."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import AsyncIterator


class BuildLogArtifacts:
    """Writes build logs to ``<artifact_dir>/build-logs/<build>.log``.

    Uses :func:`asyncio.to_thread` so file I/O does not block the event
    loop.

    Args:
        artifact_dir: Root directory of the job's artifacts.
    """

    def __init__(self, artifact_dir: str | Path) -> None:
        self._dir = Path(artifact_dir) / "build-logs"

    def path_for(self, name: str) -> Path:
        return self._dir / f"{name}.log"

    def _write_sync(self, name: str, content: str) -> Path:
        self._dir.mkdir(parents=True, exist_ok=True)
        path = self.path_for(name)
        path.write_text(content, encoding="utf-8")
        return path

    async def write(self, name: str, chunks: AsyncIterator[str]) -> Path:
        """Drain *chunks* into the log file for build *name*."""
        content = "".join([chunk async for chunk in chunks])
        return await asyncio.to_thread(self._write_sync, name, content)
