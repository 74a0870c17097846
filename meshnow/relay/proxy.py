"""Pass-through fetch of generated assets that are not reachable cross-origin."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional
from urllib.parse import quote, urlparse

import httpx

from meshnow.core.errors import TransportError, UpstreamError, ValidationError

DEFAULT_CONTENT_TYPE = "model/gltf-binary"
CACHE_CONTROL = "public, max-age=31536000"
PROXY_PATH = "/api/proxy"

logger = logging.getLogger(__name__)


@dataclass
class FetchedResource:
    content: bytes
    content_type: str = DEFAULT_CONTENT_TYPE


def _require_absolute_url(url: str) -> None:
    if not url:
        raise ValidationError("URL is required")
    parsed = urlparse(url)
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        raise ValidationError(f"URL must be an absolute http(s) URL: {url}")


def _fetch(client: httpx.Client, url: str, label: str) -> FetchedResource:
    try:
        response = client.get(url)
    except httpx.HTTPError as exc:
        raise TransportError(f"Failed to fetch {label}: {exc}") from exc
    if response.status_code >= 400:
        raise UpstreamError(
            f"Failed to fetch {label}: {response.status_code}",
            status_code=response.status_code,
            body=response.text[:200],
        )
    content_type = response.headers.get("content-type") or DEFAULT_CONTENT_TYPE
    return FetchedResource(content=response.content, content_type=content_type)


def fetch_resource(
    url: str,
    timeout: float = 60.0,
    transport: Optional[httpx.BaseTransport] = None,
) -> FetchedResource:
    """Fetch a remote resource and return its bytes and content type.

    Nothing is cached here; callers forward ``CACHE_CONTROL`` so downstream
    caches may keep the immutable asset.
    """
    _require_absolute_url(url)
    with httpx.Client(timeout=timeout, transport=transport, follow_redirects=True) as client:
        resource = _fetch(client, url, "model")
    logger.debug("Fetched %d bytes (%s)", len(resource.content), resource.content_type)
    return resource


class RelayClient:
    """Client side of the relay's ``/api/proxy`` route."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 60.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    def proxied_url(self, url: str) -> str:
        """Return the relay URL that serves ``url``."""
        return f"{self.base_url}{PROXY_PATH}?url={quote(url, safe='')}"

    def fetch(self, url: str) -> FetchedResource:
        _require_absolute_url(url)
        with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
            return _fetch(client, self.proxied_url(url), "model through relay")
