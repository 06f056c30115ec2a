"""Build assembly, resolution and lifecycle control."""

from __future__ import annotations

from sourceclone.builds.assembler import BuildSpecAssembler
from sourceclone.builds.classifier import InfraFailureClassifier
from sourceclone.builds.lifecycle import BuildLifecycleController
from sourceclone.builds.resolver import SourceResolver
from sourceclone.builds.resources import Quantity, ResourceSpec, resources_for

__all__ = [
    "BuildSpecAssembler",
    "BuildLifecycleController",
    "InfraFailureClassifier",
    "SourceResolver",
    "Quantity",
    "ResourceSpec",
    "resources_for",
]
