"""Shared infrastructure for examples."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Coroutine

from kungfu import Error

from graphtxn.observability import configure_logging
from graphtxn.store import DEFAULT_SCHEMA, MemoryGateway


async def seeded_gateway() -> MemoryGateway:
    """Fresh in-memory store with the account schema installed."""
    gateway = MemoryGateway()
    result = await gateway.install_schema(DEFAULT_SCHEMA)
    if isinstance(result, Error):
        raise RuntimeError(str(result.value))
    return gateway


# Helpers
def banner(title: str) -> None:
    print(f"\n{'─' * 50}\n{title}\n{'─' * 50}")


def run(main: Callable[[], Coroutine[object, object, None]]) -> None:
    configure_logging("WARNING")
    asyncio.run(main())
