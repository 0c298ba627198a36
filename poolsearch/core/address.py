"""Base58 codec for Solana public-key addresses."""

import base58

from .errors import InvalidEncoding

ADDRESS_LENGTH = 32

_ALPHABET = frozenset(base58.BITCOIN_ALPHABET.decode("ascii"))


def decode_address(value: str) -> bytes:
    """Decode a base58 address into its 32 raw bytes.

    Args:
        value: Candidate address string

    Returns:
        The decoded 32-byte public key

    Raises:
        InvalidEncoding: If the string is empty, contains characters outside
            the base58 alphabet, or does not decode to exactly 32 bytes
    """
    if not isinstance(value, str) or not value:
        raise InvalidEncoding(str(value), "empty")

    if any(ch not in _ALPHABET for ch in value):
        raise InvalidEncoding(value, "non-base58 character")

    raw = base58.b58decode(value)
    if len(raw) != ADDRESS_LENGTH:
        raise InvalidEncoding(value, f"decoded to {len(raw)} bytes")

    return raw


def encode_address(raw: bytes) -> str:
    """Encode raw address bytes as base58."""
    return base58.b58encode(bytes(raw)).decode("ascii")


def is_address(value: str) -> bool:
    """Return True if value decodes to a 32-byte address."""
    try:
        decode_address(value)
    except InvalidEncoding:
        return False
    return True
