"""Tests for builds/resources.py — quantity parsing and resource translation."""
from __future__ import annotations

from decimal import Decimal

import pytest
from pydantic import ValidationError

from sourceclone.builds.resources import Quantity, parse_quantity, resources_for
from sourceclone.core.config import ResourceRequirements
from sourceclone.core.exceptions import ConfigurationError, MalformedQuantityError


# ---------------------------------------------------------------------------
# parse_quantity
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("1", Decimal(1)),
        ("500m", Decimal("0.5")),
        ("250u", Decimal("0.00025")),
        ("1.5k", Decimal(1500)),
        ("2M", Decimal(2_000_000)),
        ("1Ki", Decimal(1024)),
        ("200Mi", Decimal(200 * 2**20)),
        ("1Gi", Decimal(2**30)),
        ("2e3", Decimal(2000)),
        ("1E", Decimal(10) ** 18),
        (".5", Decimal("0.5")),
    ],
)
def test_parse_quantity_values(raw: str, expected: Decimal) -> None:
    assert parse_quantity(raw).value == expected


def test_parse_quantity_keeps_raw_string() -> None:
    q = parse_quantity("  1Gi ")
    assert q.raw == "1Gi"
    assert str(q) == "1Gi"


@pytest.mark.parametrize("raw", ["", "abc", "1Gb", "1 Gi", "Gi", "1.2.3", "--1"])
def test_parse_quantity_rejects_garbage(raw: str) -> None:
    with pytest.raises(ValueError, match="unable to parse quantity"):
        parse_quantity(raw)


def test_quantity_is_frozen() -> None:
    q = parse_quantity("1")
    with pytest.raises(ValidationError):
        q.raw = "2"  # type: ignore[misc]


# ---------------------------------------------------------------------------
# resources_for
# ---------------------------------------------------------------------------


def test_resources_for_translates_requests_and_limits() -> None:
    spec = resources_for(
        ResourceRequirements(
            requests={"cpu": "100m", "memory": "200Mi"},
            limits={"memory": "4Gi"},
        )
    )
    assert spec.requests["cpu"] == Quantity(raw="100m", value=Decimal("0.1"))
    assert spec.limits["memory"].value == Decimal(4 * 2**30)


def test_resources_for_empty_maps_become_none_on_the_wire() -> None:
    wire = resources_for(ResourceRequirements()).to_api()
    assert wire.requests is None
    assert wire.limits is None
    assert wire.to_api() == {}


def test_resources_for_wire_form_keeps_the_written_strings() -> None:
    wire = resources_for(ResourceRequirements(requests={"cpu": "0.5"})).to_api()
    assert wire.requests == {"cpu": "0.5"}


def test_malformed_request_names_resource_and_raw_value() -> None:
    with pytest.raises(MalformedQuantityError) as exc_info:
        resources_for(ResourceRequirements(requests={"cpu": "100m", "memory": "lots"}))
    exc = exc_info.value
    assert exc.resource == "memory"
    assert exc.raw == "lots"
    assert exc.kind == "request"
    assert "memory" in str(exc)
    assert "'lots'" in str(exc)
    assert isinstance(exc, ConfigurationError)


def test_malformed_limit_is_reported_as_limit() -> None:
    with pytest.raises(MalformedQuantityError) as exc_info:
        resources_for(
            ResourceRequirements(requests={"cpu": "1"}, limits={"cpu": "one"})
        )
    assert exc_info.value.kind == "limit"
    assert exc_info.value.__cause__ is not None
