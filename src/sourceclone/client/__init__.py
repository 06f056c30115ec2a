"""Clients for the orchestration API."""

from __future__ import annotations

from sourceclone.client.base import BuildClient
from sourceclone.client.fake import InMemoryBuildClient
from sourceclone.client.openshift import OpenShiftBuildClient

__all__ = ["BuildClient", "InMemoryBuildClient", "OpenShiftBuildClient"]
