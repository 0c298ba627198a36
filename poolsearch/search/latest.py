"""Current price and reserve state of a pool, derived from its swap log."""

import structlog
from pydantic import BaseModel, Field

from ..core.address import decode_address
from ..core.errors import StorageUnavailable
from ..core.interfaces import SearchStore
from ..core.types import Pool, PoolData, SwapEvent

logger = structlog.get_logger(__name__)


class LatestState(BaseModel):
    """Price and reserves left by the most recent swap."""

    price_sol: float | None = Field(default=None, description="Latest price")
    base_reserve: float = Field(description="Base reserve")
    quote_reserve: float = Field(description="Quote reserve")
    swap: SwapEvent | None = Field(default=None, description="Source swap")

    @classmethod
    def initial(cls, pool: Pool) -> "LatestState":
        """State of a pool that has not traded yet."""
        return cls(
            price_sol=None,
            base_reserve=pool.initial_token_base_reserve,
            quote_reserve=pool.initial_token_quote_reserve,
        )

    def apply_to(self, pool: Pool) -> PoolData:
        """Pool record with this state's price and reserves attached."""
        return PoolData(
            **pool.model_dump(),
            price_sol=self.price_sol,
            base_reserve=self.base_reserve,
            quote_reserve=self.quote_reserve,
        )


class LatestSwapResolver:
    """Finds the most recent swap of a pool.

    Ordering is by timestamp, then slot, then insertion order, so ties resolve
    deterministically to the last recorded event.
    """

    def __init__(self, store: SearchStore) -> None:
        self.store = store

    async def latest_swap(self, pool_address: str) -> SwapEvent | None:
        """Most recent swap for a pool, or None if it never traded."""
        return await self.store.latest_swap(decode_address(pool_address))

    async def resolve(self, pool: Pool) -> LatestState:
        """Latest price/reserves, falling back to the pool's initial reserves."""
        try:
            swap = await self.latest_swap(pool.pool_address)
        except StorageUnavailable as e:
            logger.warning(
                "Latest swap lookup failed, using initial reserves",
                pool_address=pool.pool_address,
                error=str(e),
            )
            return LatestState.initial(pool)

        if swap is None:
            logger.debug("Pool has no swaps", pool_address=pool.pool_address)
            return LatestState.initial(pool)

        return LatestState(
            price_sol=swap.price_sol,
            base_reserve=swap.base_reserve,
            quote_reserve=swap.quote_reserve,
            swap=swap,
        )
