"""Base protocol for CDN providers."""

from typing import Protocol, runtime_checkable

from edgepurge.types import Invalidation


@runtime_checkable
class CdnProvider(Protocol):
    """Vendor-specific purge calls.

    Failures are reported through ``Invalidation.success``, never raised.
    """

    def invalidate(self, invalidation: Invalidation) -> Invalidation:
        """Purge content matching the invalidation's type and items."""
        ...

    def invalidate_all(self) -> Invalidation:
        """Purge everything."""
        ...

    def max_urls(self) -> int:
        """Largest number of URLs accepted in one invalidation."""
        ...
