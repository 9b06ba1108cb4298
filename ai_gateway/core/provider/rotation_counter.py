"""Round-robin cursor over a provider's key pool."""

import logging

from ai_gateway.core.exceptions import RotationStoreError
from ai_gateway.core.storage import AtomicCounterStore

logger = logging.getLogger(__name__)


class RotationCounter:
    """Hands out the next pool index for a provider.

    Responsibilities:
    - Advance the provider's shared cursor exactly once per acquisition
    - Convert the store's post-increment value to a zero-based index

    All atomicity is delegated to the AtomicCounterStore; this class keeps
    no state of its own.
    """

    def __init__(self, store: AtomicCounterStore) -> None:
        self.store = store

    async def advance(self, provider_name: str, pool_size: int) -> int:
        """Advance the cursor and return the index of the key to use.

        Args:
            provider_name: Counter key
            pool_size: Number of keys in the provider's pool

        Returns:
            An index in ``[0, pool_size)``

        Raises:
            ValueError: If pool_size is less than 1.
            RotationStoreError: If the store is unavailable or fails.
        """
        if pool_size < 1:
            raise ValueError(f"No API keys available for provider '{provider_name}'")

        try:
            value = await self.store.advance_and_wrap(provider_name, pool_size)
        except Exception as e:
            logger.error(f"Rotation store failed for provider '{provider_name}': {e}")
            raise RotationStoreError(provider_name, e) from e

        return (value - 1) % pool_size
