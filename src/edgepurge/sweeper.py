"""Obsolete-tag sweeper.

Turns tags marked obsolete by batch invalidations into actual purges, and
records which URLs a successful purge covered.
"""

from __future__ import annotations

import logging

from edgepurge.config import EdgePurgeSettings
from edgepurge.providers.base import CdnProvider
from edgepurge.store import TagStore
from edgepurge.types import Invalidation

logger = logging.getLogger(__name__)


class ObsoleteTagSweeper:
    """Reconciles obsolete tags into CDN purges."""

    def __init__(
        self,
        settings: EdgePurgeSettings,
        provider: CdnProvider,
        store: TagStore,
    ) -> None:
        self._settings = settings
        self._provider = provider
        self._store = store

    def max_invalidations(self) -> int:
        """How many URLs one partial invalidation may carry."""
        return min(self._provider.max_urls(), self._settings.batch_size)

    def invalidate_obsolete_tags(self) -> Invalidation | None:
        """Purge every valid, unpurged URL that has an obsolete tag.

        Busiest URLs come first. When there are more candidates than one
        invalidation can carry, the whole cache is flushed instead.

        Returns:
            The provider's result, or None when there was nothing to purge.
        """
        urls = self._store.obsolete_urls()
        if not urls:
            logger.debug("Sweep found no obsolete tags")
            return None

        max_urls = self.max_invalidations()

        if self._settings.sweep_always_flush:
            logger.debug(
                "sweep_always_flush is set, flushing for %d url(s) (limit %d)",
                len(urls),
                max_urls,
            )
            return self.invalidate_entire_cache()

        if len(urls) > max_urls:
            logger.debug("Sweep found %d url(s), over limit %d", len(urls), max_urls)
            return self.invalidate_entire_cache()

        logger.debug("Sweep purging %d url(s)", len(urls))
        return self.purge(Invalidation.for_urls(url.url for url in urls))

    def invalidate_entire_cache(self) -> Invalidation:
        """Flush the configured root paths and mark every URL purged."""
        logger.info("Invalidating entire cache: %s", self._settings.batch_roots)
        invalidation = Invalidation(
            type="path",
            items=frozenset(self._settings.batch_roots),
            invalidate_all=True,
        )
        return self.purge(invalidation)

    def purge(self, invalidation: Invalidation) -> Invalidation:
        """Send an invalidation to the provider; record it if it worked.

        A failed purge leaves every row untouched, so the next sweep picks
        the same URLs up again.
        """
        result = self._provider.invalidate(invalidation)
        if not result.success:
            logger.warning(
                "CDN invalidation %s (%s, %d item(s)) failed",
                result.id,
                result.type,
                len(result.items),
            )
            return result

        logger.info(
            "CDN invalidation %s (%s, %d item(s)) succeeded",
            result.id,
            result.type,
            len(result.items),
        )
        self.mark_urls_as_purged(result)
        return result

    def mark_urls_as_purged(self, invalidation: Invalidation) -> int:
        return self._store.mark_urls_as_purged(invalidation)
