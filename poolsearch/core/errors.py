"""Error taxonomy for the search engine."""


class PoolSearchError(Exception):
    """Base class for search engine errors."""


class InvalidEncoding(PoolSearchError, ValueError):
    """String is not a base58-encoded 32-byte address."""

    def __init__(self, value: str, reason: str) -> None:
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid address encoding ({reason}): {value[:64]!r}")


class IntegrityGap(PoolSearchError):
    """A pool's token references do not resolve to two distinct tokens."""

    def __init__(self, pool_address: str, reason: str) -> None:
        self.pool_address = pool_address
        self.reason = reason
        super().__init__(f"Pool {pool_address}: {reason}")


class StorageUnavailable(PoolSearchError):
    """The store is unreachable, failed, or the request deadline expired."""
