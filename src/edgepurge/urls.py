"""URL normalization and domain filtering."""

import hashlib
from collections.abc import Iterable
from urllib.parse import urlsplit, urlunsplit


def sanitize_url(url: str) -> str:
    """Normalize a URL so equivalent spellings hash the same."""
    parts = urlsplit(url.strip())
    return urlunsplit(
        (parts.scheme.lower(), parts.netloc.lower(), parts.path, parts.query, "")
    )


def url_hash(url: str) -> str:
    return hashlib.sha1(url.encode()).hexdigest()


def limit(value: str, length: int, end: str = "...") -> str:
    """Truncate to at most ``length`` characters, marking the cut."""
    if len(value) <= length:
        return value
    return value[: length - len(end)] + end


def host(url: str) -> str:
    return (urlsplit(url.strip()).hostname or "").lower()


def domain_allowed(
    url: str | None,
    allowed: Iterable[str],
    blocked: Iterable[str],
) -> bool:
    """Check a URL's host against the allow and block lists.

    With both lists empty every domain is allowed. Otherwise the host has to be
    on the allow list and not on the block list.
    """
    if not url or not url.strip():
        return False

    allowed_set = {d.strip().lower() for d in allowed if d and d.strip()}
    blocked_set = {d.strip().lower() for d in blocked if d and d.strip()}

    if not allowed_set and not blocked_set:
        return True

    domain = host(url)
    return domain in allowed_set and domain not in blocked_set
