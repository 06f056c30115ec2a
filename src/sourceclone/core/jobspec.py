"""Job metadata handed to a step by the pipeline executor."""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from sourceclone.core.types import OwnerReference


class Pull(BaseModel):
    number: int
    author: str = ""
    sha: str
    title: str = ""
    ref: str = ""

    def to_clonerefs(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "number": self.number,
            "author": self.author,
            "sha": self.sha,
        }
        if self.title:
            result["title"] = self.title
        if self.ref:
            result["ref"] = self.ref
        return result


class Refs(BaseModel):
    """One repository checkout: a base ref plus optional pull requests on top."""

    org: str
    repo: str
    base_ref: str = ""
    base_sha: str = ""
    pulls: list[Pull] = Field(default_factory=list)
    path_alias: str = ""
    workdir: bool = False
    clone_uri: str = ""
    skip_submodules: bool = False
    clone_depth: int = 0

    def __str__(self) -> str:
        parts = [f"{self.base_ref}:{self.base_sha}" if self.base_sha else self.base_ref]
        for pull in self.pulls:
            ref = f"{pull.number}:{pull.sha}"
            if pull.ref:
                ref = f"{ref}:{pull.ref}"
            parts.append(ref)
        return ",".join(parts)

    def to_clonerefs(self) -> dict[str, Any]:
        """Serialize to the JSON shape the clonerefs helper reads."""
        result: dict[str, Any] = {"org": self.org, "repo": self.repo}
        if self.base_ref:
            result["base_ref"] = self.base_ref
        if self.base_sha:
            result["base_sha"] = self.base_sha
        if self.pulls:
            result["pulls"] = [pull.to_clonerefs() for pull in self.pulls]
        if self.path_alias:
            result["path_alias"] = self.path_alias
        if self.workdir:
            result["workdir"] = True
        if self.clone_uri:
            result["clone_uri"] = self.clone_uri
        if self.skip_submodules:
            result["skip_submodules"] = True
        if self.clone_depth:
            result["clone_depth"] = self.clone_depth
        return result


class JobSpec(BaseModel):
    """Identity and source refs of the CI job a step runs for.

    Attributes:
        job: Name of the CI job.
        build_id: Build number of this job run.
        prow_job_id: Unique id of this job run.
        namespace: Namespace every object for this run is created in.
        refs: Primary repository refs, absent for periodic jobs.
        extra_refs: Additional repositories to check out.
        owner: Owner reference attached to created objects so the cluster
            garbage-collects them with the job.
        raw_spec: Serialized job specification, stored verbatim.
    """

    job: str
    build_id: str = ""
    prow_job_id: str = ""
    namespace: str
    refs: Refs | None = None
    extra_refs: list[Refs] = Field(default_factory=list)
    owner: OwnerReference | None = None
    raw_spec: str = ""

    def inputs(self) -> list[str]:
        """Return the refs this job checks out, in a form suitable for hashing."""
        if self.refs is not None:
            return [str(self.refs)]
        return [str(refs) for refs in self.extra_refs]
