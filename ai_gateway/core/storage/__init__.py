"""
Storage abstraction for rotation cursors.

Rotation cursors live outside the request handler so concurrent requests,
and other gateway processes sharing a backend, hand out keys in a single
round-robin order. Any backend that can perform an atomic
insert-or-increment-modulo can implement AtomicCounterStore.
"""

from abc import ABC, abstractmethod


class AtomicCounterStore(ABC):
    """Abstract interface for per-key wrapping counters.

    Implementations must make ``advance_and_wrap`` a single linearizable
    operation. A read followed by a separate write is not acceptable.
    """

    @abstractmethod
    async def advance_and_wrap(self, key: str, modulus: int) -> int:
        """Advance the counter for ``key`` and return its new value.

        The first call for a key stores and returns 1. Later calls store and
        return ``(previous + 1) % modulus``.

        Args:
            key: Counter name, one per provider
            modulus: Current pool size (at least 1)

        Returns:
            The post-increment counter value
        """

    async def close(self) -> None:
        """Release backend resources. The default does nothing."""


from ai_gateway.core.storage.memory_store import InMemoryCounterStore  # noqa: E402
from ai_gateway.core.storage.sqlite_store import SqliteCounterStore  # noqa: E402


def create_counter_store(location: str) -> AtomicCounterStore:
    """Build the store named by the ROTATION_STORE setting.

    Args:
        location: "memory" for a process-local store, otherwise a SQLite file path
    """
    if location == "memory":
        return InMemoryCounterStore()
    return SqliteCounterStore(location)


__all__ = [
    "AtomicCounterStore",
    "InMemoryCounterStore",
    "SqliteCounterStore",
    "create_counter_store",
]
