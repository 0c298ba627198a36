"""Well-known quote assets that may be missing from the token table."""

from .types import Token

SOL_MINT = "So11111111111111111111111111111111111111112"
USDC_MINT = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"

QUOTE_TOKENS: dict[str, Token] = {
    SOL_MINT: Token(
        mint_address=SOL_MINT,
        name="Solana",
        symbol="SOL",
        decimals=9,
        image="https://assets.coingecko.com/coins/images/4128/large/solana.png?1640133422",
    ),
    USDC_MINT: Token(
        mint_address=USDC_MINT,
        name="USDC",
        symbol="USDC",
        decimals=6,
        image="https://assets.coingecko.com/coins/images/6319/large/USD_Coin_icon.png?1547042194",
    ),
}


def quote_token_fallback(mint_address: str) -> Token | None:
    """Return the built-in record for a well-known quote asset."""
    token = QUOTE_TOKENS.get(mint_address)
    return token.model_copy() if token is not None else None
