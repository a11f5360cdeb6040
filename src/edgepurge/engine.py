"""Invalidation orchestrator.

Decides, per data change, whether to mark tags obsolete for a later sweep
(batch strategy), purge right away (immediate strategy), or flush the whole
edge cache.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable, Mapping
from dataclasses import replace
from typing import Any

from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_result,
    stop_after_attempt,
    wait_fixed,
)

from edgepurge.config import EdgePurgeSettings, get_settings
from edgepurge.jobs import InlineQueue, InvalidateTags, Job, JobHandler, JobQueue, StoreTags
from edgepurge.providers import ensure_provider, load_provider
from edgepurge.providers.base import CdnProvider
from edgepurge.store import TagStore
from edgepurge.sweeper import ObsoleteTagSweeper
from edgepurge.tags import Fingerprinter
from edgepurge.types import Invalidation

logger = logging.getLogger(__name__)

QueueFactory = Callable[[JobHandler], JobQueue]


class EdgePurge:
    """Entry point for tagging responses and invalidating them.

    Usage:
        engine = EdgePurge(settings, provider=MemoryProvider(), store=store)

        with engine.fingerprinter.scope() as tags:
            tags.add_tag(post)
            header = engine.tag_response(tags.get_tags(), request_url)

        engine.dispatch_invalidations_for_model(post)  # after post changes
        engine.sweep()                                 # periodically
    """

    def __init__(
        self,
        settings: EdgePurgeSettings,
        *,
        provider: CdnProvider,
        store: TagStore,
        fingerprinter: Fingerprinter | None = None,
        queue_factory: QueueFactory = InlineQueue,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.settings = settings
        self.provider = ensure_provider(provider)
        self.store = store
        self.fingerprinter = fingerprinter or Fingerprinter(settings)
        self.sweeper = ObsoleteTagSweeper(settings, self.provider, store)
        self.queue = queue_factory(self.handle)
        self._sleep = sleep

    @classmethod
    def from_settings(
        cls,
        settings: EdgePurgeSettings | None = None,
        **kwargs: Any,
    ) -> EdgePurge:
        """Build provider and store from configuration.

        Raises:
            ConfigurationError: If no usable provider is configured
        """
        settings = settings or get_settings()
        provider = load_provider(settings)
        store = TagStore.from_url(settings.database_url, settings)
        return cls(settings, provider=provider, store=store, **kwargs)

    def enabled(self) -> bool:
        return self.settings.enabled and self.settings.invalidations_enabled

    def handle(self, job: Job) -> None:
        """Run a job delivered by the queue."""
        job.handle(self)

    # -------------------------------------------------------------------------
    # Tagging
    # -------------------------------------------------------------------------

    def tag_response(
        self,
        tags: Iterable[str],
        url: str,
        *,
        cacheable: bool = True,
    ) -> str:
        """Fingerprint a response and queue its tags for storage.

        Args:
            tags: Tags collected while building the response
            url: The URL being served
            cacheable: Whether the response may be cached at the edge

        Returns:
            The fingerprint to send to the CDN.
        """
        models = sorted(set(tags))
        edge_tag = self.fingerprinter.make_edge_tag(models)

        if cacheable and self.settings.enabled and self.settings.store_tags_enabled:
            self.queue.dispatch(
                StoreTags(models=tuple(models), tags={"cdn": edge_tag}, url=url)
            )
        return edge_tag

    def store_cache_tags(
        self,
        models: Iterable[str],
        tags: Mapping[str, str],
        url: str,
    ) -> int | None:
        return self.store.store_cache_tags(models, tags, url)

    # -------------------------------------------------------------------------
    # Invalidations
    # -------------------------------------------------------------------------

    def dispatch_invalidations_for_model(self, models: Any) -> Invalidation | None:
        """Queue an invalidation for one or more changed entities.

        Accepts an entity, a model name, or a collection of either.
        """
        if models is None:
            return None
        if isinstance(models, (str, bytes)) or not isinstance(models, Iterable):
            models = [models]

        names: set[str] = set()
        for model in models:
            name = model if isinstance(model, str) else self.fingerprinter.naming(model)
            if name:
                names.add(name)

        if not names:
            return None

        invalidation = Invalidation.for_models(names)
        logger.debug("Queueing invalidation %s for %s", invalidation.id, sorted(names))
        self.queue.dispatch(InvalidateTags(invalidation))
        return invalidation

    def sweep(self) -> None:
        """Queue a sweep of obsolete tags."""
        self.queue.dispatch(InvalidateTags())

    def invalidate_tags(self, invalidation: Invalidation) -> Invalidation | None:
        """Handle an invalidation request.

        An empty request runs the obsolete-tag sweep. Under the batch strategy
        requests only mark tags obsolete and the provider is left to the next
        sweep; under the immediate strategy they go to the provider right away.
        """
        if not self.enabled():
            logger.debug("Invalidations disabled, ignoring %s", invalidation.id)
            return None

        if invalidation.is_empty():
            return self.sweeper.invalidate_obsolete_tags()

        if self.settings.invalidation_strategy == "batch":
            self._mark_obsolete(invalidation)
            return None

        return self.dispatch_invalidations(invalidation)

    def _mark_obsolete(self, invalidation: Invalidation) -> None:
        if invalidation.invalidate_all or invalidation.type == "all":
            self.store.mark_all_tags_obsolete()
        elif invalidation.type in ("tag", "model"):
            self.store.mark_tags_as_obsolete(invalidation.type, invalidation.items)
        elif invalidation.type == "url":
            self.store.mark_url_tags_as_obsolete(invalidation.items)
        else:
            # Paths cannot be matched against stored rows
            logger.info(
                "Ignoring path invalidation %s under batch strategy", invalidation.id
            )

    def dispatch_invalidations(self, invalidation: Invalidation) -> Invalidation | None:
        """Purge now. On failure nothing is recorded, so retrying is safe."""
        if invalidation.is_empty():
            return None

        if invalidation.type == "model":
            tags = self.store.tags_for_models(invalidation.items)
            if not tags:
                logger.debug("No stored tags for %s", sorted(invalidation.items))
                return None
            invalidation = replace(invalidation, type="tag", items=frozenset(tags))

        return self.sweeper.purge(invalidation)

    def invalidate_all(self) -> Invalidation:
        """Flush the entire edge cache, retrying a few times.

        Blocks between attempts, so call it from a worker or an operator
        command rather than a request thread.

        Returns:
            The provider's result. When every attempt failed nothing in the
            database has been changed.
        """
        if not self.enabled():
            return Invalidation.everything()

        attempts = self.settings.full_invalidation_attempts
        retryer = Retrying(
            stop=stop_after_attempt(attempts),
            wait=wait_fixed(self.settings.full_invalidation_wait),
            retry=retry_if_result(lambda result: not result.success),
            sleep=self._sleep,
            before_sleep=before_sleep_log(logger, logging.WARNING),
            retry_error_callback=lambda state: state.outcome.result(),
        )
        result: Invalidation = retryer(self.provider.invalidate_all)

        if not result.success:
            logger.error("Full cache invalidation failed after %d attempt(s)", attempts)
            return result

        logger.info("Full cache invalidation %s succeeded", result.id)
        self.store.mark_all_tags_obsolete()
        self.store.mark_all_urls_purged(result.id)
        return result
