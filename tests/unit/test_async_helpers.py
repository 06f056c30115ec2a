"""Tests for utils/async_helpers.py — checkpoint."""
from __future__ import annotations

import asyncio

import pytest

from sourceclone.utils.async_helpers import checkpoint


async def test_checkpoint_returns_normally() -> None:
    assert await checkpoint() is None


async def test_checkpoint_delivers_pending_cancellation() -> None:
    reached: list[str] = []

    async def body() -> None:
        task = asyncio.current_task()
        assert task is not None
        task.cancel()
        await checkpoint()
        reached.append("after")

    with pytest.raises(asyncio.CancelledError):
        await asyncio.create_task(body())
    assert reached == []
