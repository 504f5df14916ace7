"""
Collaborators consumed by the archive fetcher: a byte transport and an
archive cache.

Both are injected; the default transport is a thin httpx client and no cache
is used unless one is passed in.
"""

import logging
import threading
from typing import Optional, Protocol

import httpx

from pluginscope.config import Settings, get_settings
from pluginscope.models.github import GitHubRef

logger = logging.getLogger(__name__)


class TransportError(Exception):
    """The transport could not deliver the requested bytes."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class Transport(Protocol):
    def get_bytes(self, url: str) -> bytes:
        """Return the body at ``url`` or raise TransportError."""
        ...


class ArchiveCache(Protocol):
    def get(self, ref: GitHubRef) -> Optional[bytes]:
        ...

    def put(self, ref: GitHubRef, data: bytes) -> None:
        ...


class HttpxTransport:
    """Default transport: GET with httpx, redirects followed, no retries."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        client: Optional[httpx.Client] = None,
    ):
        settings = settings or get_settings()
        self._owns_client = client is None
        if client is None:
            headers = {"User-Agent": settings.user_agent}
            if settings.github_token:
                headers["Authorization"] = f"Bearer {settings.github_token}"
            client = httpx.Client(
                headers=headers,
                timeout=settings.request_timeout,
                follow_redirects=True,
            )
        self._client = client

    def get_bytes(self, url: str) -> bytes:
        logger.debug(f"GET {url}")
        try:
            response = self._client.get(url)
        except httpx.HTTPError as e:
            raise TransportError(f"Request to {url} failed: {e}") from e

        if response.status_code >= 400:
            raise TransportError(
                f"GET {url} returned HTTP {response.status_code}",
                status_code=response.status_code,
            )
        return response.content

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "HttpxTransport":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class InMemoryArchiveCache:
    """Archive bytes keyed by repository snapshot (subpath ignored)."""

    def __init__(self):
        self._entries: dict[GitHubRef, bytes] = {}
        self._lock = threading.Lock()

    def get(self, ref: GitHubRef) -> Optional[bytes]:
        with self._lock:
            return self._entries.get(ref.repository_ref())

    def put(self, ref: GitHubRef, data: bytes) -> None:
        with self._lock:
            self._entries[ref.repository_ref()] = data

    def __len__(self) -> int:
        return len(self._entries)
