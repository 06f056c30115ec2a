"""The seam between a step and the pipeline graph that schedules it."""
from __future__ import annotations

from typing import Awaitable, Callable, Protocol, runtime_checkable

from pydantic import BaseModel

from sourceclone.core.constants import PIPELINE_IMAGE_STREAM
from sourceclone.core.types import Build


class StepLink(BaseModel):
    """An image in the pipeline image stream that steps produce or consume."""

    model_config = {"frozen": True}

    image_stream: str = PIPELINE_IMAGE_STREAM
    tag: str


def internal_image_link(tag: str) -> StepLink:
    return StepLink(image_stream=PIPELINE_IMAGE_STREAM, tag=tag)


class DeferredParameter:
    """A named value that is only computed when a consumer reads it.

    Usage::

        param = DeferredParameter("LOCAL_IMAGE_SRC", resolve_digest)
        value = await param.get()   # resolve_digest() runs now, not earlier
    """

    def __init__(self, name: str, resolver: Callable[[], Awaitable[str]]) -> None:
        self.name = name
        self._resolver = resolver

    def __repr__(self) -> str:
        return f"DeferredParameter(name={self.name!r})"

    async def get(self) -> str:
        return await self._resolver()


class ParameterMap(dict[str, DeferredParameter]):
    """Parameters a step provides to the graph, keyed by name."""

    @classmethod
    def of(cls, *params: DeferredParameter) -> ParameterMap:
        return cls({p.name: p for p in params})

    async def resolve(self, name: str) -> str:
        return await self[name].get()


def pipeline_image_env_for(tag: str) -> str:
    """Parameter name under which the image built as ``pipeline:<tag>`` is published."""
    return f"LOCAL_IMAGE_{tag.replace('-', '_').upper()}"


@runtime_checkable
class Step(Protocol):
    """Structural type the pipeline graph schedules.

    ``requires`` and ``creates`` are known when the graph is built;
    ``provides`` hands out parameters whose values only exist after
    ``run`` has finished.
    """

    def inputs(self) -> list[str]: ...

    def validate(self) -> None: ...

    async def run(self) -> None: ...

    def requires(self) -> list[StepLink]: ...

    def creates(self) -> list[StepLink]: ...

    def provides(self) -> ParameterMap: ...

    def name(self) -> str: ...

    def description(self) -> str: ...

    def objects(self) -> list[Build]: ...
