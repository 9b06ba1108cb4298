"""
In-memory rotation cursor storage.

Cursors are lost when the process exits and are not shared between worker
processes. Useful for single-process deployments and tests.
"""

import asyncio

from . import AtomicCounterStore


class InMemoryCounterStore(AtomicCounterStore):
    """Process-local counters guarded by an asyncio lock."""

    def __init__(self) -> None:
        self._values: dict[str, int] = {}
        self._lock = asyncio.Lock()

    async def advance_and_wrap(self, key: str, modulus: int) -> int:
        if modulus < 1:
            raise ValueError(f"modulus must be at least 1, got {modulus}")

        async with self._lock:
            if key in self._values:
                value = (self._values[key] + 1) % modulus
            else:
                value = 1
            self._values[key] = value
            return value

    def __repr__(self) -> str:
        return f"InMemoryCounterStore(keys={sorted(self._values)})"
