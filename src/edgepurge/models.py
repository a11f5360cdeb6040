"""Database tables for URLs and their tags."""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class Url(Base):
    """A cached response, identified by its normalized URL.

    Rows are never deleted. ``was_purged_at`` is cleared every time the
    response is generated (and so cached) again.
    """

    __tablename__ = "urls"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    url: Mapped[str] = mapped_column(String(255), nullable=False)
    url_hash: Mapped[str] = mapped_column(String(40), unique=True, nullable=False)
    hits: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    is_valid: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, index=True
    )
    was_purged_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, index=True
    )
    invalidation_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    def __repr__(self) -> str:
        return f"<Url(id={self.id}, url='{self.url}', hits={self.hits})>"


class Tag(Base):
    """Links a URL to the CDN tag and the model it was generated from."""

    __tablename__ = "tags"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    # sha1 of "{url_id}-{tag}-{model}"
    index: Mapped[str] = mapped_column(String(40), unique=True, nullable=False)
    url_id: Mapped[int] = mapped_column(
        ForeignKey("urls.id"), nullable=False, index=True
    )
    tag: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    model: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    obsolete: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    def __repr__(self) -> str:
        return f"<Tag(id={self.id}, tag='{self.tag}', model='{self.model}')>"
