from __future__ import annotations

import asyncio


async def checkpoint() -> None:
    """Yield to the event loop so a pending cancellation is delivered here.

    Call before an API request that must not be issued once the awaiting
    task has been cancelled.
    """
    await asyncio.sleep(0)
