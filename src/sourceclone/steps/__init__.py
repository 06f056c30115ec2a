"""Pipeline steps."""

from __future__ import annotations

from sourceclone.steps.base import DeferredParameter, ParameterMap, Step, StepLink
from sourceclone.steps.source import SourceStep

__all__ = ["Step", "StepLink", "DeferredParameter", "ParameterMap", "SourceStep"]
