"""edgepurge - CDN edge-cache invalidation driven by data tags."""

# Configuration
from edgepurge.config import EdgePurgeSettings, get_settings

# Duration parsing
from edgepurge.duration import parse_duration

# Orchestrator
from edgepurge.engine import EdgePurge
from edgepurge.errors import ConfigurationError, EdgePurgeError, StoreConflictError

# Jobs
from edgepurge.jobs import (
    InlineQueue,
    InvalidateTags,
    JobQueue,
    StoreTags,
    ThreadQueue,
    deserialize_job,
    serialize_job,
)

# Storage
from edgepurge.models import Base, Tag, Url

# Providers
from edgepurge.providers import (
    CdnProvider,
    HttpPurgeProvider,
    MemoryProvider,
    load_provider,
)
from edgepurge.store import TagStore
from edgepurge.sweeper import ObsoleteTagSweeper
from edgepurge.tags import Fingerprinter, TagScope

# Core types
from edgepurge.types import Duration, Invalidation
from edgepurge.urls import domain_allowed, sanitize_url

__version__ = "0.1.0"

__all__ = [
    "Base",
    "CdnProvider",
    "ConfigurationError",
    "Duration",
    "EdgePurge",
    "EdgePurgeError",
    "EdgePurgeSettings",
    "Fingerprinter",
    "HttpPurgeProvider",
    "InlineQueue",
    "Invalidation",
    "InvalidateTags",
    "JobQueue",
    "MemoryProvider",
    "ObsoleteTagSweeper",
    "StoreConflictError",
    "StoreTags",
    "Tag",
    "TagScope",
    "TagStore",
    "ThreadQueue",
    "Url",
    "deserialize_job",
    "domain_allowed",
    "get_settings",
    "load_provider",
    "parse_duration",
    "sanitize_url",
    "serialize_job",
]
