"""Classification of raw search queries."""

import structlog
from pydantic import BaseModel, Field

from ..core.address import decode_address
from ..core.errors import InvalidEncoding

logger = structlog.get_logger(__name__)


class AddressQuery(BaseModel):
    """Query that decodes to a 32-byte address."""

    raw: str = Field(description="Trimmed query string")
    address: bytes = Field(description="Decoded address bytes")


class TextQuery(BaseModel):
    """Free-text query matched against token names and symbols."""

    text: str = Field(description="Trimmed, non-empty query string")


def normalize_query(raw: str | None) -> str:
    """Strip whitespace and the quotes clients wrap around pasted addresses."""
    if raw is None:
        return ""
    return raw.strip().strip('"').strip()


def classify_query(raw: str | None) -> AddressQuery | TextQuery | None:
    """Classify a query as an address or free text.

    Args:
        raw: Query string as received, possibly untrimmed or empty

    Returns:
        AddressQuery if the query is a valid address, TextQuery for any other
        non-empty text, or None when there is nothing to search for
    """
    query = normalize_query(raw)
    if not query:
        return None

    try:
        address = decode_address(query)
    except InvalidEncoding as e:
        logger.debug("Query classified as text", query=query, reason=e.reason)
        return TextQuery(text=query)

    logger.debug("Query classified as address", query=query)
    return AddressQuery(raw=query, address=address)
