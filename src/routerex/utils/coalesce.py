"""In-flight request coalescing.

Concurrent callers asking for the same canonical key share one upstream
computation. The event loop is single-threaded and there is no await
between the lookup and the registration, so the map needs no lock.
"""

import asyncio
import json
import logging
from typing import Any, Awaitable, Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


def canonical_key(**fields: Any) -> str:
    """Build a stable key from request fields (order-independent)."""
    return json.dumps(fields, sort_keys=True, separators=(",", ":"), default=str)


class RequestCoalescer:
    """Run at most one computation per key at a time."""

    def __init__(self, name: str = "requests"):
        self.name = name
        self._in_flight: dict[str, asyncio.Future] = {}

    async def run(self, key: str, factory: Callable[[], Awaitable[T]]) -> T:
        """Await the shared computation for `key`, starting it if needed.

        Args:
            key: Canonical request key
            factory: Zero-argument coroutine function producing the result

        Returns:
            The computation's result (every waiter gets the same object)
        """
        existing = self._in_flight.get(key)
        if existing is not None:
            logger.debug(f"Coalescing {self.name} request: {key}")
            return await asyncio.shield(existing)

        task = asyncio.ensure_future(factory())
        self._in_flight[key] = task
        task.add_done_callback(lambda _t: self._release(key, task))
        return await asyncio.shield(task)

    def _release(self, key: str, task: asyncio.Future) -> None:
        if self._in_flight.get(key) is task:
            del self._in_flight[key]

    def in_flight(self, key: str) -> bool:
        return key in self._in_flight

    def __len__(self) -> int:
        return len(self._in_flight)

    def clear(self) -> None:
        """Forget in-flight entries (useful for testing)."""
        self._in_flight.clear()
