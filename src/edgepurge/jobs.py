"""Jobs and the queue contract they are delivered through.

Delivery is at-least-once and unordered: a StoreTags job may run after an
InvalidateTags job that concerns the same URL. Both jobs are safe to run
more than once.
"""

from __future__ import annotations

import json
import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from edgepurge.types import Invalidation

if TYPE_CHECKING:
    from edgepurge.engine import EdgePurge

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class StoreTags:
    """Persist the tags a cached response was built from."""

    models: tuple[str, ...]
    tags: dict[str, str]
    url: str

    def handle(self, engine: EdgePurge) -> None:
        engine.store_cache_tags(self.models, self.tags, self.url)


@dataclass(frozen=True, slots=True)
class InvalidateTags:
    """Invalidate (or sweep, when empty)."""

    invalidation: Invalidation = field(default_factory=Invalidation)

    def handle(self, engine: EdgePurge) -> None:
        engine.invalidate_tags(self.invalidation)


Job = StoreTags | InvalidateTags
JobHandler = Callable[[Job], None]


def serialize_job(job: Job) -> str:
    """Serialize a job to JSON for an external transport."""
    if isinstance(job, StoreTags):
        body: dict[str, Any] = {
            "job": "store-tags",
            "models": list(job.models),
            "tags": job.tags,
            "url": job.url,
        }
    else:
        body = {"job": "invalidate", "invalidation": job.invalidation.to_dict()}
    return json.dumps(body)


def deserialize_job(data: bytes | str) -> Job:
    """Deserialize JSON produced by serialize_job()."""
    if isinstance(data, bytes):
        data = data.decode("utf-8")
    obj = json.loads(data)
    kind = obj.get("job")
    if kind == "store-tags":
        return StoreTags(models=tuple(obj["models"]), tags=obj["tags"], url=obj["url"])
    if kind == "invalidate":
        return InvalidateTags(Invalidation.from_dict(obj["invalidation"]))
    raise ValueError(f"Unknown job: {kind!r}")


@runtime_checkable
class JobQueue(Protocol):
    """Asynchronous, at-least-once job delivery."""

    def dispatch(self, job: Job) -> None:
        """Enqueue a job. Must not block on the job itself."""
        ...


class InlineQueue:
    """Runs jobs immediately on the calling thread."""

    def __init__(self, handler: JobHandler) -> None:
        self._handler = handler

    def dispatch(self, job: Job) -> None:
        self._handler(job)


class ThreadQueue:
    """Runs each job on a daemon thread, fire and forget.

    A failing job is logged and dropped; it never reaches the dispatcher.
    """

    def __init__(self, handler: JobHandler) -> None:
        self._handler = handler
        self._threads: list[threading.Thread] = []
        self._lock = threading.Lock()

    def dispatch(self, job: Job) -> None:
        def run() -> None:
            try:
                self._handler(job)
            except Exception:
                logger.exception("Job %s failed", type(job).__name__)

        thread = threading.Thread(target=run, daemon=True)
        with self._lock:
            self._threads = [t for t in self._threads if t.is_alive()]
            self._threads.append(thread)
        thread.start()

    def join(self, timeout: float | None = None) -> None:
        """Wait for dispatched jobs to finish."""
        with self._lock:
            threads = list(self._threads)
        for thread in threads:
            thread.join(timeout)
