"""CDN providers for edgepurge."""

import importlib
from typing import Any

from edgepurge.config import EdgePurgeSettings
from edgepurge.errors import ConfigurationError
from edgepurge.providers.base import CdnProvider
from edgepurge.providers.http import HttpPurgeProvider
from edgepurge.providers.memory import MemoryProvider


def _import_object(path: str) -> Any:
    if ":" in path:
        module_name, _, attr = path.partition(":")
    else:
        module_name, _, attr = path.rpartition(".")
    if not module_name or not attr:
        raise ConfigurationError.provider_not_found(path)

    try:
        module = importlib.import_module(module_name)
        return getattr(module, attr)
    except (ImportError, AttributeError) as e:
        raise ConfigurationError.provider_not_found(path) from e


def ensure_provider(provider: Any) -> CdnProvider:
    """Check that ``provider`` implements CdnProvider."""
    if provider is None:
        raise ConfigurationError.missing_provider()
    if not isinstance(provider, CdnProvider):
        raise ConfigurationError.not_a_provider(provider)
    return provider


def load_provider(settings: EdgePurgeSettings) -> CdnProvider:
    """Instantiate the provider class named by ``settings.provider``.

    ``settings.provider_options`` are passed as keyword arguments.
    """
    if not settings.provider or not settings.provider.strip():
        raise ConfigurationError.missing_provider()

    cls = _import_object(settings.provider.strip())
    return ensure_provider(cls(**settings.provider_options))


__all__ = [
    "CdnProvider",
    "HttpPurgeProvider",
    "MemoryProvider",
    "ensure_provider",
    "load_provider",
]
