"""Generic HTTP purge-endpoint provider."""

from __future__ import annotations

import logging
from typing import Any

from edgepurge.types import Invalidation

logger = logging.getLogger(__name__)


class HttpPurgeProvider:
    """Posts invalidations as JSON to a purge service.

    Endpoints:
        POST /v1/purge      {"id", "type", "items", "invalidateAll"}
        POST /v1/purge-all  {}

    Any 2xx response counts as success. Transport errors and other status
    codes are logged and reported as an unsuccessful invalidation.
    """

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str,
        max_urls: int = 1000,
        timeout: float = 30.0,
    ) -> None:
        import httpx

        self._max_urls = max_urls
        self._client = httpx.Client(
            base_url=base_url,
            headers={
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            },
            timeout=timeout,
        )

    def _request(self, endpoint: str, body: dict[str, Any]) -> bool:
        """Make a POST request to the purge service."""
        import httpx

        try:
            response = self._client.post(endpoint, json=body)
        except httpx.HTTPError as e:
            logger.warning("Purge request to %s failed: %s", endpoint, e)
            return False

        if not response.is_success:
            try:
                body = response.json()
            except ValueError:
                body = None
            error = body.get("error") if isinstance(body, dict) else None
            error = error or f"HTTP {response.status_code}"
            logger.warning("Purge request to %s rejected: %s", endpoint, error)
            return False
        return True

    def invalidate(self, invalidation: Invalidation) -> Invalidation:
        """Purge the invalidation's items."""
        body = invalidation.to_dict()
        body.pop("success")
        if self._request("/v1/purge", body):
            return invalidation.succeeded()
        return invalidation.failed()

    def invalidate_all(self) -> Invalidation:
        """Purge everything."""
        invalidation = Invalidation.everything()
        if self._request("/v1/purge-all", {}):
            return invalidation.succeeded()
        return invalidation

    def max_urls(self) -> int:
        return self._max_urls

    def close(self) -> None:
        """Close the HTTP client."""
        self._client.close()
