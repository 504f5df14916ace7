"""
Tests for the default httpx transport and the in-memory archive cache.
"""

import threading

import httpx
import pytest

from pluginscope.core.transport import HttpxTransport, InMemoryArchiveCache, TransportError
from pluginscope.models.github import GitHubRef


def _client(handler) -> httpx.Client:
    return httpx.Client(transport=httpx.MockTransport(handler))


class TestHttpxTransport:
    """Tests for HttpxTransport against a mock httpx transport."""

    def test_returns_body(self, settings):
        transport = HttpxTransport(settings, client=_client(lambda request: httpx.Response(200, content=b"data")))
        assert transport.get_bytes("https://archive.test/a/b/tar.gz/HEAD") == b"data"

    def test_http_error_status(self, settings):
        transport = HttpxTransport(settings, client=_client(lambda request: httpx.Response(404)))
        with pytest.raises(TransportError) as exc_info:
            transport.get_bytes("https://archive.test/a/missing/tar.gz/HEAD")
        assert exc_info.value.status_code == 404

    def test_connection_error(self, settings):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        transport = HttpxTransport(settings, client=_client(handler))
        with pytest.raises(TransportError) as exc_info:
            transport.get_bytes("https://archive.test/x")
        assert exc_info.value.status_code is None
        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)

    def test_default_client_headers(self, settings):
        with HttpxTransport(settings) as transport:
            headers = transport._client.headers
            assert headers["Authorization"] == "Bearer test-token"
            assert headers["User-Agent"] == settings.user_agent
            assert transport._client.follow_redirects is True

    def test_no_token_no_auth_header(self, settings):
        settings = settings.model_copy(update={"github_token": None})
        with HttpxTransport(settings) as transport:
            assert "Authorization" not in transport._client.headers

    def test_injected_client_not_closed(self, settings):
        client = _client(lambda request: httpx.Response(200))
        HttpxTransport(settings, client=client).close()
        assert not client.is_closed


class TestInMemoryArchiveCache:
    """Tests for InMemoryArchiveCache."""

    def test_keyed_by_repository_snapshot(self):
        cache = InMemoryArchiveCache()
        cache.put(GitHubRef(owner="o", repo="r", ref="v1", subpath="a"), b"archive")

        assert cache.get(GitHubRef(owner="o", repo="r", ref="v1")) == b"archive"
        assert cache.get(GitHubRef(owner="o", repo="r", ref="v1", subpath="b")) == b"archive"
        assert cache.get(GitHubRef(owner="o", repo="r", ref="v2")) is None

    def test_concurrent_puts(self):
        cache = InMemoryArchiveCache()

        def fill(start: int):
            for i in range(start, start + 50):
                cache.put(GitHubRef(owner="o", repo=f"r{i}"), b"x")

        threads = [threading.Thread(target=fill, args=(n * 50,)) for n in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len(cache) == 200
