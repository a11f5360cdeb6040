"""Tag fingerprints for cacheable responses."""

from __future__ import annotations

import hashlib
from collections.abc import Callable, Iterable, Iterator
from contextlib import contextmanager
from fnmatch import fnmatchcase
from typing import Any

from edgepurge.config import EdgePurgeSettings

NamingStrategy = Callable[[Any], str | None]
IdentityStrategy = Callable[[Any], tuple[str, Any] | None]


def model_name(entity: Any) -> str:
    """Default naming strategy: the entity's fully qualified class name."""
    cls = type(entity)
    return f"{cls.__module__}.{cls.__qualname__}"


def entity_key(entity: Any) -> tuple[str, Any] | None:
    """Default identity strategy: (table name, primary key).

    Returns None for entities that have not been given an id yet.
    """
    id_ = getattr(entity, "id", None)
    if id_ is None:
        return None
    table = getattr(entity, "__tablename__", None) or type(entity).__name__
    return (table, id_)


def match(pattern: str, tag: str) -> bool:
    """Shell-style wildcard match, e.g. ``app.models.*``."""
    return fnmatchcase(tag, pattern)


class TagScope:
    """Tags accumulated during one unit of work (usually one request)."""

    def __init__(self, fingerprinter: Fingerprinter) -> None:
        self._fingerprinter = fingerprinter
        self._seen: set[tuple[str, Any]] = set()
        self._tags: set[str] = set()

    def add_tag(self, entity: Any) -> None:
        """Record the tag for an entity touched while building the response."""
        fp = self._fingerprinter
        if not fp.settings.enabled:
            return

        key = fp.identity(entity)
        if key is None or key in self._seen:
            return
        self._seen.add(key)

        tag = fp.naming(entity)
        if tag:
            self._tags.add(tag)

    def get_tags(self) -> list[str]:
        """Recorded tags, minus excluded ones, sorted."""
        return sorted(
            tag for tag in self._tags if not self._fingerprinter.tag_is_excluded(tag)
        )

    def make_edge_tag(self) -> str:
        return self._fingerprinter.make_edge_tag(self.get_tags())

    def clear(self) -> None:
        self._seen.clear()
        self._tags.clear()


class Fingerprinter:
    """Builds the single opaque tag stamped on a cacheable response."""

    def __init__(
        self,
        settings: EdgePurgeSettings,
        *,
        naming: NamingStrategy = model_name,
        identity: IdentityStrategy = entity_key,
    ) -> None:
        self.settings = settings
        self.naming = naming
        self.identity = identity

    @contextmanager
    def scope(self) -> Iterator[TagScope]:
        """Open a unit of work. The seen-set is discarded on exit.

        Usage:
            with fingerprinter.scope() as tags:
                tags.add_tag(post)
                response.headers["Edge-Cache-Tag"] = tags.make_edge_tag()
        """
        scope = TagScope(self)
        try:
            yield scope
        finally:
            scope.clear()

    def tag_is_excluded(self, tag: str) -> bool:
        return any(match(pattern, tag) for pattern in self.settings.excluded_tags)

    def make_edge_tag(self, tags: Iterable[str]) -> str:
        """Fingerprint a tag set. Order and duplicates do not matter."""
        digest = hashlib.sha1(", ".join(sorted(set(tags))).encode()).hexdigest()
        return self.settings.tag_format.replace(
            "%environment%", self.settings.environment
        ).replace("%sha1%", digest)
