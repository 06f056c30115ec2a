"""Tests for resilience/backoff.py — Backoff.wait_for."""
from __future__ import annotations

import pytest

from sourceclone.core.exceptions import BackoffExhaustedError, NotFoundError
from sourceclone.resilience.backoff import Backoff


def _counter(succeed_on: int | None):
    calls = {"n": 0}

    async def condition() -> bool:
        calls["n"] += 1
        return succeed_on is not None and calls["n"] >= succeed_on

    return condition, calls


# ---------------------------------------------------------------------------
# Delay schedule
# ---------------------------------------------------------------------------


def test_default_schedule_doubles_from_ten_milliseconds() -> None:
    backoff = Backoff()
    assert backoff._compute_delay(0) == pytest.approx(0.01)
    assert backoff._compute_delay(1) == pytest.approx(0.02)
    assert backoff._compute_delay(3) == pytest.approx(0.08)


def test_default_worst_case_is_about_five_seconds() -> None:
    backoff = Backoff()
    total = sum(backoff._compute_delay(i) for i in range(backoff.steps - 1))
    assert total == pytest.approx(5.11)


def test_custom_schedule_is_deterministic() -> None:
    backoff = Backoff(duration=1.0, factor=3.0, steps=4)
    delays = [backoff._compute_delay(i) for i in range(3)]
    assert delays == [1.0, 3.0, 9.0]
    assert [backoff._compute_delay(i) for i in range(3)] == delays


def test_invalid_steps_rejected() -> None:
    with pytest.raises(ValueError):
        Backoff(steps=0)


# ---------------------------------------------------------------------------
# wait_for
# ---------------------------------------------------------------------------


async def test_wait_for_returns_on_first_true() -> None:
    condition, calls = _counter(succeed_on=1)
    await Backoff(duration=0.0).wait_for(condition)
    assert calls["n"] == 1


async def test_wait_for_keeps_checking_until_true() -> None:
    condition, calls = _counter(succeed_on=4)
    await Backoff(duration=0.0).wait_for(condition)
    assert calls["n"] == 4


async def test_wait_for_exhausts_after_steps_checks() -> None:
    condition, calls = _counter(succeed_on=None)
    with pytest.raises(BackoffExhaustedError, match="timed out waiting for the condition"):
        await Backoff(duration=0.0, steps=3).wait_for(condition)
    assert calls["n"] == 3


async def test_wait_for_propagates_condition_errors() -> None:
    async def condition() -> bool:
        raise NotFoundError("gone sideways")

    with pytest.raises(NotFoundError, match="gone sideways"):
        await Backoff(duration=0.0).wait_for(condition)
