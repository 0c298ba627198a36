"""Token and pool lookups behind a classified query."""

import asyncio
from typing import Literal

import structlog
from pydantic import BaseModel, Field

from ..core.address import decode_address
from ..core.defaults import quote_token_fallback
from ..core.errors import IntegrityGap
from ..core.interfaces import SearchStore
from ..core.types import Pool, Token
from .classifier import AddressQuery, TextQuery

logger = structlog.get_logger(__name__)


class TokenHit(BaseModel):
    """A token matched by mint address or by text."""

    kind: Literal["token"] = "token"
    token: Token = Field(description="Matched token")


class PoolHit(BaseModel):
    """A pool matched by address, with both of its tokens resolved."""

    kind: Literal["pool"] = "pool"
    pool: Pool = Field(description="Matched pool")
    base_token: Token = Field(description="Base token")
    quote_token: Token = Field(description="Quote token")


Hit = TokenHit | PoolHit


class EntityLookup:
    """Runs the mint, pool and text lookups against the store."""

    def __init__(self, store: SearchStore, search_limit: int = 10) -> None:
        """Initialize entity lookup.

        Args:
            store: Read-only store
            search_limit: Maximum rows returned by each text search query
        """
        self.store = store
        self.search_limit = search_limit

    async def lookup(self, query: AddressQuery | TextQuery) -> list[Hit]:
        """Resolve a classified query into ordered hits.

        Address queries search both the mint and the pool address spaces; a
        collision yields two hits. Text queries only ever produce token hits.
        """
        if isinstance(query, AddressQuery):
            return await self._lookup_address(query)
        return await self._lookup_text(query)

    async def _lookup_address(self, query: AddressQuery) -> list[Hit]:
        token, pool_hit = await asyncio.gather(
            self.store.get_token(query.address),
            self._find_pool(query.address),
        )

        hits: list[Hit] = []
        if token is not None:
            hits.append(TokenHit(token=token))
        if pool_hit is not None:
            hits.append(pool_hit)

        logger.info(
            "Address lookup completed",
            address=query.raw,
            mint_hit=token is not None,
            pool_hit=pool_hit is not None,
        )
        return hits

    async def _lookup_text(self, query: TextQuery) -> list[Hit]:
        by_name, by_symbol = await asyncio.gather(
            self.store.search_tokens_by_name(query.text, self.search_limit),
            self.store.search_tokens_by_symbol(query.text, self.search_limit),
        )

        seen: set[str] = set()
        hits: list[Hit] = []
        for token in [*by_name, *by_symbol]:
            if token.mint_address in seen:
                continue
            seen.add(token.mint_address)
            hits.append(TokenHit(token=token))

        logger.info(
            "Text lookup completed",
            text=query.text,
            name_matches=len(by_name),
            symbol_matches=len(by_symbol),
            hits=len(hits),
        )
        return hits

    async def _find_pool(self, address: bytes) -> PoolHit | None:
        pool = await self.store.get_pool(address)
        if pool is None:
            return None

        try:
            return await self.resolve_pool(pool)
        except IntegrityGap as e:
            logger.warning(
                "Dropping pool result", pool_address=e.pool_address, reason=e.reason
            )
            return None

    async def resolve_pool(self, pool: Pool) -> PoolHit:
        """Attach base and quote tokens to a pool.

        Raises:
            IntegrityGap: If the tokens are not distinct or cannot be resolved
        """
        if pool.token_base_address == pool.token_quote_address:
            raise IntegrityGap(pool.pool_address, "base and quote token are the same")

        base_token, quote_token = await asyncio.gather(
            self.store.get_token(decode_address(pool.token_base_address)),
            self.store.get_token(decode_address(pool.token_quote_address)),
        )

        if quote_token is None:
            quote_token = quote_token_fallback(pool.token_quote_address)

        if base_token is None:
            raise IntegrityGap(
                pool.pool_address, f"missing base token {pool.token_base_address}"
            )
        if quote_token is None:
            raise IntegrityGap(
                pool.pool_address, f"missing quote token {pool.token_quote_address}"
            )

        return PoolHit(pool=pool, base_token=base_token, quote_token=quote_token)
