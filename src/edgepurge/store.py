"""Persistence of URLs and the tags they were generated from.

Every bulk status flip (obsolete-marking, purge-marking) is a single
``UPDATE ... WHERE id IN (SELECT id ... FOR UPDATE SKIP LOCKED)`` so that
competing workers claim disjoint sets of rows instead of double-processing
them.

Tag rows and URL rows are deliberately updated in separate transactions.
A tag marked obsolete is only reconciled into a purged URL by a later sweep,
so readers must not expect the two tables to agree at any given instant.

Obsolete flags are never reset, and storing a URL again clears its
``was_purged_at``. A URL that once had an obsolete tag is therefore purged
again by every sweep that follows a re-cache of it. That repeated purging is
a known cost of the current schema.
"""

from __future__ import annotations

import hashlib
import logging
from collections.abc import Callable, Iterable, Mapping
from datetime import datetime
from typing import Any, Literal, TypeVar

from sqlalchemy import (
    Boolean,
    DateTime,
    Integer,
    String,
    create_engine,
    insert,
    literal,
    select,
    update,
)
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.sql.dml import Update
from tenacity import (
    RetryError,
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
)

from edgepurge.config import EdgePurgeSettings
from edgepurge.errors import StoreConflictError
from edgepurge.models import Base, Tag, Url, utcnow
from edgepurge.types import Invalidation
from edgepurge.urls import domain_allowed, limit, sanitize_url, url_hash

logger = logging.getLogger(__name__)

R = TypeVar("R")

_TAG_COLUMNS = ["index", "url_id", "tag", "model", "obsolete", "created_at", "updated_at"]


def make_tag_index(url_id: int, tag: str, model: str) -> str:
    """Deterministic unique key for a (url, tag, model) row."""
    return hashlib.sha1(f"{url_id}-{tag}-{model}".encode()).hexdigest()


class TagStore:
    """SQLAlchemy-backed store for Url and Tag rows."""

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        settings: EdgePurgeSettings,
    ) -> None:
        self.session_factory = session_factory
        self._settings = settings

    @classmethod
    def from_url(
        cls,
        database_url: str,
        settings: EdgePurgeSettings,
        **engine_options: Any,
    ) -> TagStore:
        engine = create_engine(database_url, pool_pre_ping=True, **engine_options)
        return cls(sessionmaker(engine, expire_on_commit=False), settings)

    def create_schema(self) -> None:
        """Create the urls and tags tables if they do not exist."""
        with self.session_factory() as session:
            Base.metadata.create_all(session.get_bind())

    def domain_allowed(self, url: str | None) -> bool:
        return domain_allowed(
            url, self._settings.allowed_domains, self._settings.blocked_domains
        )

    # -------------------------------------------------------------------------
    # Storing tags
    # -------------------------------------------------------------------------

    def store_cache_tags(
        self,
        models: Iterable[str],
        tags: Mapping[str, str],
        url: str,
    ) -> int | None:
        """Record that ``url`` was generated from ``models`` under a CDN tag.

        Safe to call repeatedly with the same arguments: the Url row's hit
        counter goes up, no duplicate Tag rows are created.

        Args:
            models: Logical source names (see Fingerprinter.naming)
            tags: Must contain the CDN fingerprint under ``"cdn"``
            url: The URL of the cached response

        Returns:
            The Url row id, or None when storing is disabled or the domain
            is not allowed.
        """
        settings = self._settings
        if not (settings.enabled and settings.store_tags_enabled):
            logger.debug("Tag storage disabled, skipping %s", url)
            return None
        if not self.domain_allowed(url):
            logger.debug("Domain not allowed, skipping %s", url)
            return None

        cdn_tag = tags["cdn"]
        model_names = sorted(set(models))
        logger.debug("Storing %d tag(s) for %s under %s", len(model_names), url, cdn_tag)

        def write(session: Session) -> int:
            url_id = self._upsert_url(session, url)
            now = utcnow()
            for model in model_names:
                self._insert_tag(session, url_id, cdn_tag, model, now)
            return url_id

        return self._transaction(write)

    def _transaction(self, fn: Callable[[Session], R]) -> R:
        """Run ``fn`` in a transaction, retrying on write conflicts."""
        attempts = self._settings.store_attempts
        retryer = Retrying(
            stop=stop_after_attempt(attempts),
            retry=retry_if_exception_type((OperationalError, IntegrityError)),
            before_sleep=before_sleep_log(logger, logging.WARNING),
        )

        def run() -> R:
            with self.session_factory.begin() as session:
                return fn(session)

        try:
            return retryer(run)
        except RetryError as e:
            raise StoreConflictError(
                f"Gave up writing tags after {attempts} attempts"
            ) from e.last_attempt.exception()

    def _upsert_url(self, session: Session, raw_url: str) -> int:
        normalized = sanitize_url(raw_url)
        digest = url_hash(normalized)

        row = session.scalars(
            select(Url).where(Url.url_hash == digest).with_for_update()
        ).one_or_none()

        if row is None:
            row = Url(
                url=limit(normalized, self._settings.url_max_length),
                url_hash=digest,
                hits=1,
                is_valid=True,
            )
            session.add(row)
        else:
            row.hits = Url.hits + 1
            row.was_purged_at = None

        session.flush()
        return row.id

    def _insert_tag(
        self,
        session: Session,
        url_id: int,
        cdn_tag: str,
        model: str,
        now: datetime,
    ) -> None:
        # Existence check and insert must stay a single statement.
        index = make_tag_index(url_id, cdn_tag, model)
        row = select(
            literal(index, String),
            literal(url_id, Integer),
            literal(cdn_tag, String),
            literal(model, String),
            literal(False, Boolean),
            literal(now, DateTime(timezone=True)),
            literal(now, DateTime(timezone=True)),
        ).where(~select(Tag.id).where(Tag.index == index).exists())

        session.execute(insert(Tag.__table__).from_select(_TAG_COLUMNS, row))

    # -------------------------------------------------------------------------
    # Obsolete tags
    # -------------------------------------------------------------------------

    def mark_tags_as_obsolete(
        self,
        column: Literal["tag", "model"],
        items: Iterable[str],
    ) -> int:
        """Flag Tag rows whose ``column`` is in ``items``. Returns rows flipped."""
        values = sorted(set(items))
        if not values:
            return 0

        target = Tag.tag if column == "tag" else Tag.model
        locked = (
            select(Tag.id)
            .where(Tag.obsolete.is_(False), target.in_(values))
            .order_by(Tag.id)
            .with_for_update(skip_locked=True)
        )
        count = self._flip(
            update(Tag)
            .where(Tag.id.in_(locked))
            .values(obsolete=True, updated_at=utcnow())
        )
        logger.debug("Marked %d tag(s) obsolete by %s", count, column)
        return count

    def mark_url_tags_as_obsolete(self, urls: Iterable[str]) -> int:
        """Flag the Tag rows owned by the listed URLs. Returns rows flipped."""
        values = sorted(
            {limit(sanitize_url(u), self._settings.url_max_length) for u in urls}
        )
        if not values:
            return 0

        locked = (
            select(Tag.id)
            .join(Url, Url.id == Tag.url_id)
            .where(Tag.obsolete.is_(False), Url.url.in_(values))
            .order_by(Tag.id)
            .with_for_update(skip_locked=True, of=Tag)
        )
        count = self._flip(
            update(Tag)
            .where(Tag.id.in_(locked))
            .values(obsolete=True, updated_at=utcnow())
        )
        logger.debug("Marked %d tag(s) obsolete by url", count)
        return count

    def mark_all_tags_obsolete(self) -> int:
        locked = (
            select(Tag.id)
            .where(Tag.obsolete.is_(False))
            .order_by(Tag.id)
            .with_for_update(skip_locked=True)
        )
        return self._flip(
            update(Tag)
            .where(Tag.id.in_(locked))
            .values(obsolete=True, updated_at=utcnow())
        )

    def obsolete_urls(self) -> list[Url]:
        """Valid, not yet purged URLs with an obsolete tag, busiest first."""
        has_obsolete_tag = (
            select(Tag.id)
            .where(Tag.url_id == Url.id, Tag.obsolete.is_(True))
            .exists()
        )
        stmt = (
            select(Url)
            .where(
                Url.is_valid.is_(True),
                Url.was_purged_at.is_(None),
                has_obsolete_tag,
            )
            .order_by(Url.hits.desc(), Url.id)
        )
        with self.session_factory() as session:
            return list(session.scalars(stmt))

    def tags_for_models(self, models: Iterable[str]) -> list[str]:
        """CDN tags stored for any of the given models."""
        values = sorted(set(models))
        if not values:
            return []
        stmt = select(Tag.tag).where(Tag.model.in_(values)).distinct().order_by(Tag.tag)
        with self.session_factory() as session:
            return list(session.scalars(stmt))

    # -------------------------------------------------------------------------
    # Purge bookkeeping
    # -------------------------------------------------------------------------

    def mark_urls_as_purged(self, invalidation: Invalidation) -> int:
        """Stamp the URLs covered by a successful invalidation.

        - all: every valid URL not purged yet
        - tag: valid URLs having a Tag row with one of the listed tags
        - otherwise: valid URLs listed by url
        """
        if invalidation.invalidate_all or invalidation.type == "all":
            locked = select(Url.id).where(
                Url.is_valid.is_(True), Url.was_purged_at.is_(None)
            )
        elif invalidation.type == "tag":
            locked = (
                select(Url.id)
                .join(Tag, Tag.url_id == Url.id)
                .where(Url.is_valid.is_(True), Tag.tag.in_(sorted(invalidation.items)))
            )
        else:
            urls = sorted(
                {
                    limit(sanitize_url(u), self._settings.url_max_length)
                    for u in invalidation.items
                }
            )
            locked = select(Url.id).where(Url.is_valid.is_(True), Url.url.in_(urls))

        locked = locked.order_by(Url.id).with_for_update(skip_locked=True, of=Url)
        now = utcnow()
        count = self._flip(
            update(Url)
            .where(Url.id.in_(locked))
            .values(was_purged_at=now, invalidation_id=invalidation.id, updated_at=now)
        )
        logger.debug("Marked %d url(s) purged by %s", count, invalidation.id)
        return count

    def mark_all_urls_purged(self, invalidation_id: str | None = None) -> int:
        """Stamp every valid URL, purged before or not, after a full flush."""
        locked = (
            select(Url.id)
            .where(Url.is_valid.is_(True))
            .order_by(Url.id)
            .with_for_update(skip_locked=True)
        )
        now = utcnow()
        return self._flip(
            update(Url)
            .where(Url.id.in_(locked))
            .values(was_purged_at=now, invalidation_id=invalidation_id, updated_at=now)
        )

    def _flip(self, stmt: Update) -> int:
        with self.session_factory.begin() as session:
            result = session.execute(
                stmt, execution_options={"synchronize_session": False}
            )
            return result.rowcount
