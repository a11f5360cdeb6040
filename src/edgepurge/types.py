"""Core types for edgepurge."""

import uuid
from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from typing import Any, Literal

InvalidationType = Literal["tag", "url", "model", "path", "all"]

INVALIDATION_TYPES: tuple[str, ...] = ("tag", "url", "model", "path", "all")


def _new_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True, slots=True)
class Invalidation:
    """A purge request handed to a CDN provider.

    Built per call and discarded afterwards; never persisted.
    """

    type: InvalidationType = "tag"
    items: frozenset[str] = frozenset()
    invalidate_all: bool = False
    success: bool = False
    id: str = field(default_factory=_new_id)

    def __post_init__(self) -> None:
        if self.type not in INVALIDATION_TYPES:
            raise ValueError(f"Invalid invalidation type: {self.type!r}")

    @classmethod
    def for_tags(cls, tags: Iterable[str]) -> "Invalidation":
        return cls(type="tag", items=frozenset(tags))

    @classmethod
    def for_models(cls, models: Iterable[str]) -> "Invalidation":
        return cls(type="model", items=frozenset(models))

    @classmethod
    def for_urls(cls, urls: Iterable[str]) -> "Invalidation":
        return cls(type="url", items=frozenset(urls))

    @classmethod
    def for_paths(cls, paths: Iterable[str]) -> "Invalidation":
        return cls(type="path", items=frozenset(paths))

    @classmethod
    def everything(cls) -> "Invalidation":
        return cls(type="all", invalidate_all=True)

    def is_empty(self) -> bool:
        """Empty requests trigger the obsolete-tag sweep."""
        return not self.items and not self.invalidate_all

    def succeeded(self) -> "Invalidation":
        return replace(self, success=True)

    def failed(self) -> "Invalidation":
        return replace(self, success=False)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dict."""
        return {
            "id": self.id,
            "type": self.type,
            "items": sorted(self.items),
            "invalidateAll": self.invalidate_all,
            "success": self.success,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Invalidation":
        """Deserialize from the output of to_dict()."""
        return cls(
            id=data["id"],
            type=data["type"],
            items=frozenset(data.get("items", ())),
            invalidate_all=data.get("invalidateAll", False),
            success=data.get("success", False),
        )


# Duration type alias
Duration = str | int | float  # "2s", "500ms", "1m" or seconds
