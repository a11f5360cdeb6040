"""Exceptions raised by edgepurge.

Provider failures are not exceptions: they come back as an unsuccessful
Invalidation and the caller decides what to do with them.
"""


class EdgePurgeError(Exception):
    """Base class for edgepurge errors."""


class ConfigurationError(EdgePurgeError):
    """The CDN provider binding is missing or invalid."""

    @classmethod
    def missing_provider(cls) -> "ConfigurationError":
        return cls("No CDN provider configured (set EDGE_PURGE_PROVIDER)")

    @classmethod
    def provider_not_found(cls, path: str) -> "ConfigurationError":
        return cls(f"CDN provider class not found: {path!r}")

    @classmethod
    def not_a_provider(cls, obj: object) -> "ConfigurationError":
        return cls(f"{type(obj).__name__} does not implement CdnProvider")


class StoreConflictError(EdgePurgeError):
    """Writing tags kept conflicting with concurrent writers."""
