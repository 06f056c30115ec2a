"""Assemble the build request that clones source into a pipeline image.

The generated Dockerfile copies the clonerefs helper into the base pipeline
image, runs it with a JSON configuration passed through the environment, and
removes any injected clone credential in the same build so it never lands in
an image layer.
"""
from __future__ import annotations

import json
import posixpath

import structlog

from sourceclone.builds.resources import resources_for
from sourceclone.core.config import (
    CloneAuthConfig,
    ImageBuildInputs,
    ResourceConfiguration,
    SourceStepConfiguration,
)
from sourceclone.core.constants import (
    BUILD_ID_LABEL,
    CLONE_HOST,
    CLONEREFS_OPTIONS_ENV,
    CREATED_BY_CI_LABEL,
    CREATES_LABEL,
    GOPATH,
    JOB_LABEL,
    JOB_SPEC_ANNOTATION,
    LABEL_TRUNCATION_MARKER,
    MAX_LABEL_LENGTH,
    OAUTH_SECRET_KEY,
    OAUTH_TOKEN_PATH,
    OPENSHIFT_CI_ENV_LABEL,
    PIPELINE_IMAGE_STREAM,
    PROW_JOB_ID_LABEL,
    REFS_BRANCH_LABEL,
    REFS_ORG_LABEL,
    REFS_REPO_LABEL,
    SSH_AUTH_PRIVATE_KEY,
    SSH_CONFIG_PATH,
    SSH_PRIVATE_KEY_PATH,
    CloneAuthType,
)
from sourceclone.core.jobspec import JobSpec, Refs
from sourceclone.core.types import (
    Build,
    BuildOutput,
    BuildSource,
    BuildSpec,
    BuildStrategy,
    DockerBuildStrategy,
    EnvVar,
    ImageLabel,
    ImageSource,
    ImageSourcePath,
    LocalObjectReference,
    ObjectMeta,
    ObjectReference,
    SecretBuildSource,
)

logger = structlog.get_logger(__name__)

# Image labels a base image may carry that must not leak into the source image.
_RESET_IMAGE_LABELS = (
    "vcs-type",
    "vcs-ref",
    "vcs-url",
    "io.openshift.build.name",
    "io.openshift.build.namespace",
    "io.openshift.build.commit.id",
    "io.openshift.build.commit.ref",
    "io.openshift.build.commit.message",
    "io.openshift.build.commit.author",
    "io.openshift.build.commit.date",
    "io.openshift.build.source-location",
    "io.openshift.build.source-context-dir",
)


def trim_labels(labels: dict[str, str]) -> dict[str, str]:
    """Return a copy of *labels* with every value cut to a valid label length."""
    keep = MAX_LABEL_LENGTH - len(LABEL_TRUNCATION_MARKER)
    return {
        key: value[:keep] + LABEL_TRUNCATION_MARKER
        if len(value) > MAX_LABEL_LENGTH
        else value
        for key, value in labels.items()
    }


def default_pod_labels(job_spec: JobSpec) -> dict[str, str]:
    labels = {
        JOB_LABEL: job_spec.job,
        BUILD_ID_LABEL: job_spec.build_id,
        PROW_JOB_ID_LABEL: job_spec.prow_job_id,
        CREATED_BY_CI_LABEL: "true",
        OPENSHIFT_CI_ENV_LABEL: "true",
    }
    refs = job_spec.refs
    if refs is None and job_spec.extra_refs:
        refs = job_spec.extra_refs[0]
    if refs is not None:
        labels[REFS_ORG_LABEL] = refs.org
        labels[REFS_REPO_LABEL] = refs.repo
        labels[REFS_BRANCH_LABEL] = refs.base_ref
    return trim_labels(labels)


def path_for_refs(base_dir: str, refs: Refs) -> str:
    clone_path = refs.path_alias or f"{CLONE_HOST}/{refs.org}/{refs.repo}"
    return posixpath.join(base_dir, "src", clone_path)


def clone_uri_for(refs: Refs, clone_auth: CloneAuthConfig | None) -> str:
    """URI clonerefs fetches *refs* from; anonymous clones use HTTPS."""
    if clone_auth is not None:
        return clone_auth.clone_uri(refs.org, refs.repo)
    return refs.clone_uri or f"https://{CLONE_HOST}/{refs.org}/{refs.repo}.git"


def determine_work_dir(base_dir: str, refs: list[Refs]) -> str:
    """Working directory of the checkout, laid out like a GOPATH import path.

    The first refs flagged ``workdir`` win; otherwise the first refs are used.
    """
    for ref in refs:
        if ref.workdir:
            return path_for_refs(base_dir, ref)
    if refs:
        return path_for_refs(base_dir, refs[0])
    return base_dir


def source_dockerfile(
    from_tag: str, work_dir: str, clone_auth: CloneAuthConfig | None
) -> str:
    commands = [
        "",
        f"FROM {PIPELINE_IMAGE_STREAM}:{from_tag}",
        "ADD ./clonerefs /clonerefs",
    ]
    secret_path = ""
    if clone_auth is not None:
        if clone_auth.type == CloneAuthType.SSH:
            commands.append(f"ADD {SSH_CONFIG_PATH} /etc/ssh/ssh_config")
            commands.append(f"COPY ./{SSH_AUTH_PRIVATE_KEY} {SSH_PRIVATE_KEY_PATH}")
            secret_path = SSH_PRIVATE_KEY_PATH
        elif clone_auth.type == CloneAuthType.OAUTH:
            commands.append(f"COPY ./{OAUTH_SECRET_KEY} {OAUTH_TOKEN_PATH}")
            secret_path = OAUTH_TOKEN_PATH

    commands.append(
        f"RUN umask 0002 && /clonerefs && find {GOPATH}/src -type d -not -perm -0775"
        " | xargs --max-procs 10 --max-args 100 --no-run-if-empty chmod g+xw"
    )
    commands.append(f"WORKDIR {work_dir}/")
    commands.append(f"ENV GOPATH={GOPATH}")
    # The credential is only needed by clonerefs; drop it before the layer is committed.
    if secret_path:
        commands.append(f"RUN rm -f {secret_path}")
    commands.append("")
    return "\n".join(commands)


def clonerefs_options(
    refs: list[Refs],
    *,
    key_files: list[str] | None = None,
    oauth_token_file: str = "",
) -> str:
    """Encode the clonerefs configuration as compact JSON."""
    options: dict[str, object] = {
        "src_root": GOPATH,
        "log": "/dev/null",
        "git_user_name": "ci-robot",
        "git_user_email": "ci-robot@openshift.io",
        "refs": [r.to_clonerefs() for r in refs],
    }
    if key_files:
        options["key_files"] = list(key_files)
    if oauth_token_file:
        options["oauth_token_file"] = oauth_token_file
    options["fail"] = True
    return json.dumps(options, separators=(",", ":"))


def add_labels_to_build(refs: Refs | None, build: Build, context_dir: str = "") -> None:
    """Set provenance image labels, replacing whatever the base image carried.

    Labels are only filled in for builds of a branch; builds with pull
    requests on top keep the empty reset values.
    """
    labels = dict.fromkeys(_RESET_IMAGE_LABELS, "")
    if refs is not None and not refs.pulls:
        vcs_url = f"https://{CLONE_HOST}/{refs.org}/{refs.repo}"
        labels.update(
            {
                "vcs-type": "git",
                "vcs-ref": refs.base_sha,
                "vcs-url": vcs_url,
                "io.openshift.build.commit.id": refs.base_sha,
                "io.openshift.build.commit.ref": refs.base_ref,
                "io.openshift.build.source-location": vcs_url,
                "io.openshift.build.source-context-dir": context_dir,
            }
        )
    build.spec.output.image_labels = [
        ImageLabel(name=name, value=labels[name]) for name in sorted(labels)
    ]


def build_inputs_from_step(inputs: dict[str, ImageBuildInputs]) -> list[ImageSource]:
    """Image sources for the pipeline images a build consumes, ordered by name."""
    sources: list[ImageSource] = []
    for name in sorted(inputs):
        value = inputs[name]
        if not value.as_ and not value.paths:
            continue
        sources.append(
            ImageSource(
                from_=ObjectReference(
                    kind="ImageStreamTag", name=f"{PIPELINE_IMAGE_STREAM}:{name}"
                ),
                as_=list(value.as_) or None,
                paths=[p.model_copy() for p in value.paths],
            )
        )
    return sources


class BuildSpecAssembler:
    """Builds the :class:`Build` objects for one job.

    Args:
        job_spec: The job the builds run for.
        resources: Resource requirements, looked up by target tag.
        pull_secret: Name of the registry pull secret, if one should be used.
    """

    def __init__(
        self,
        job_spec: JobSpec,
        resources: ResourceConfiguration,
        pull_secret: str | None = None,
    ) -> None:
        self._job_spec = job_spec
        self._resources = resources
        self._pull_secret = pull_secret

    def __repr__(self) -> str:
        return f"BuildSpecAssembler(namespace={self._job_spec.namespace!r})"

    def source_build(
        self,
        config: SourceStepConfiguration,
        clonerefs_ref: ObjectReference,
        clone_auth: CloneAuthConfig | None = None,
    ) -> Build:
        """Assemble the build that clones the job's refs into ``config.to_tag``.

        Raises:
            MalformedQuantityError: If a configured resource quantity is invalid.
        """
        candidates = ([self._job_spec.refs] if self._job_spec.refs else []) + list(
            self._job_spec.extra_refs
        )
        refs = [
            ref.model_copy(update={"clone_uri": clone_uri_for(ref, clone_auth)})
            for ref in candidates
        ]

        dockerfile = source_dockerfile(
            config.from_tag, determine_work_dir(GOPATH, refs), clone_auth
        )
        paths = [ImageSourcePath(source_path=config.clonerefs_path, destination_dir=".")]
        secrets: list[SecretBuildSource] = []
        key_files: list[str] = []
        oauth_token_file = ""
        if clone_auth is not None:
            secrets.append(
                SecretBuildSource(secret=LocalObjectReference(name=clone_auth.secret_name))
            )
            if clone_auth.type == CloneAuthType.SSH:
                paths.append(ImageSourcePath(source_path=SSH_CONFIG_PATH, destination_dir="."))
                key_files.append(SSH_PRIVATE_KEY_PATH)
            else:
                oauth_token_file = OAUTH_TOKEN_PATH

        source = BuildSource(
            type="Dockerfile",
            dockerfile=dockerfile,
            images=[ImageSource(from_=clonerefs_ref, paths=paths)],
            secrets=secrets,
        )

        build = self.build_from_source(config.from_tag, config.to_tag, source)
        build.spec.strategy.docker_strategy.env.append(
            EnvVar(
                name=CLONEREFS_OPTIONS_ENV,
                value=clonerefs_options(
                    refs, key_files=key_files, oauth_token_file=oauth_token_file
                ),
            )
        )
        return build

    def build_from_source(
        self,
        from_tag: str,
        to_tag: str,
        source: BuildSource,
        dockerfile_path: str = "",
    ) -> Build:
        """Assemble a Docker-strategy build publishing ``pipeline:<to_tag>``."""
        logger.info("build.assembling", tag=to_tag)
        namespace = self._job_spec.namespace
        build_resources = resources_for(self._resources.requirements_for_step(to_tag))

        from_ref = None
        if from_tag:
            from_ref = ObjectReference(
                kind="ImageStreamTag",
                namespace=namespace,
                name=f"{PIPELINE_IMAGE_STREAM}:{from_tag}",
            )

        labels = default_pod_labels(self._job_spec)
        labels.update(trim_labels({CREATES_LABEL: to_tag}))
        build = Build(
            metadata=ObjectMeta(
                name=to_tag,
                namespace=namespace,
                labels=labels,
                annotations={JOB_SPEC_ANNOTATION: self._job_spec.raw_spec},
            ),
            spec=BuildSpec(
                resources=build_resources.to_api(),
                source=source,
                strategy=BuildStrategy(
                    type="Docker",
                    docker_strategy=DockerBuildStrategy(
                        dockerfile_path=dockerfile_path or None,
                        from_=from_ref,
                        force_pull=True,
                        no_cache=True,
                        # mirrors the server default, set for documentation
                        env=[EnvVar(name="BUILD_LOGLEVEL", value="0")],
                        image_optimization_policy="SkipLayers",
                    ),
                ),
                output=BuildOutput(
                    to=ObjectReference(
                        kind="ImageStreamTag",
                        namespace=namespace,
                        name=f"{PIPELINE_IMAGE_STREAM}:{to_tag}",
                    )
                ),
            ),
        )
        if self._pull_secret:
            build.spec.strategy.docker_strategy.pull_secret = LocalObjectReference(
                name=self._pull_secret
            )
        if self._job_spec.owner is not None:
            build.metadata.owner_references.append(self._job_spec.owner.model_copy())

        add_labels_to_build(self._job_spec.refs, build, source.context_dir or "")
        return build
