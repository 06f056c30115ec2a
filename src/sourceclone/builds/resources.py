"""Translate human-readable resource quantities into a numeric resource spec."""
from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation

from pydantic import BaseModel, Field

from sourceclone.core.config import ResourceRequirements
from sourceclone.core.exceptions import MalformedQuantityError
from sourceclone.core.types import ComputeResources

_QUANTITY_RE = re.compile(
    r"^(?P<number>[+-]?(?:\d+(?:\.\d*)?|\.\d+))"
    r"(?P<suffix>Ki|Mi|Gi|Ti|Pi|Ei|n|u|m|k|M|G|T|P|E|[eE][+-]?\d+)?$"
)

_MULTIPLIERS: dict[str, Decimal] = {
    "": Decimal(1),
    "n": Decimal("1e-9"),
    "u": Decimal("1e-6"),
    "m": Decimal("1e-3"),
    "k": Decimal(10) ** 3,
    "M": Decimal(10) ** 6,
    "G": Decimal(10) ** 9,
    "T": Decimal(10) ** 12,
    "P": Decimal(10) ** 15,
    "E": Decimal(10) ** 18,
    "Ki": Decimal(2) ** 10,
    "Mi": Decimal(2) ** 20,
    "Gi": Decimal(2) ** 30,
    "Ti": Decimal(2) ** 40,
    "Pi": Decimal(2) ** 50,
    "Ei": Decimal(2) ** 60,
}


class Quantity(BaseModel):
    """A parsed quantity: the string it was written as and its numeric value."""

    model_config = {"frozen": True}

    raw: str
    value: Decimal

    def __str__(self) -> str:
        return self.raw


class ResourceSpec(BaseModel):
    """Validated resource requests and limits for one build."""

    model_config = {"frozen": True}

    requests: dict[str, Quantity] = Field(default_factory=dict)
    limits: dict[str, Quantity] = Field(default_factory=dict)

    def to_api(self) -> ComputeResources:
        return ComputeResources(
            requests={name: str(q) for name, q in self.requests.items()} or None,
            limits={name: str(q) for name, q in self.limits.items()} or None,
        )


def parse_quantity(raw: str) -> Quantity:
    """Parse *raw* using the Kubernetes quantity grammar (``500m``, ``1Gi``, ``2e3``).

    Raises:
        ValueError: If *raw* is not a valid quantity.
    """
    match = _QUANTITY_RE.match(raw.strip())
    if match is None:
        raise ValueError(f"unable to parse quantity {raw!r}")
    suffix = match.group("suffix") or ""
    try:
        number = Decimal(match.group("number"))
        if suffix[:1] in ("e", "E") and len(suffix) > 1:
            value = number.scaleb(int(suffix[1:]))
        else:
            value = number * _MULTIPLIERS[suffix]
    except (InvalidOperation, KeyError) as exc:
        raise ValueError(f"unable to parse quantity {raw!r}") from exc
    return Quantity(raw=raw.strip(), value=value)


def _translate(values: dict[str, str], kind: str) -> dict[str, Quantity]:
    parsed: dict[str, Quantity] = {}
    for name, raw in values.items():
        try:
            parsed[name] = parse_quantity(raw)
        except ValueError as exc:
            raise MalformedQuantityError(name, raw, kind) from exc
    return parsed


def resources_for(requirements: ResourceRequirements) -> ResourceSpec:
    """Build a :class:`ResourceSpec` from string-keyed request/limit maps.

    Raises:
        MalformedQuantityError: On the first value that does not parse. No
            partial spec is returned.
    """
    return ResourceSpec(
        requests=_translate(requirements.requests, "request"),
        limits=_translate(requirements.limits, "limit"),
    )
