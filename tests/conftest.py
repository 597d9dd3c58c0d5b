"""Shared fixtures: env-backed settings and a fake Spotify over httpx."""

from __future__ import annotations

from typing import Callable, Union

import httpx
import pytest

from app.config import get_settings
from app.session import clear_sessions

_RealAsyncClient = httpx.AsyncClient

Reply = Union[dict, tuple, Callable[[httpx.Request], tuple]]


class MockSpotify(httpx.AsyncBaseTransport):
    """Programmable transport returning queued replies per (method, path).

    A reply is a JSON body (status 200), a ``(status, body)`` tuple, or a
    callable taking the request and returning ``(status, body)``.  A ``str``
    or ``bytes`` body is sent as is.  Replies
    are consumed in order; an exhausted route answers 404.
    """

    def __init__(self):
        self.routes: dict[tuple[str, str], list[Reply]] = {}
        self.calls: list[httpx.Request] = []

    def add(self, method: str, path: str, *replies: Reply) -> "MockSpotify":
        self.routes.setdefault((method.upper(), path), []).extend(replies)
        return self

    def calls_to(self, method: str, path: str) -> list[httpx.Request]:
        return [r for r in self.calls if r.method == method and r.url.path == path]

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        queue = self.routes.get((request.method, request.url.path))
        if not queue:
            return httpx.Response(404, json={"error": {"status": 404, "message": "not found"}})

        reply = queue.pop(0)
        if callable(reply):
            reply = reply(request)
        status, body = reply if isinstance(reply, tuple) else (200, reply)
        if isinstance(body, (str, bytes)):
            return httpx.Response(status, content=body)
        return httpx.Response(status, json=body)


@pytest.fixture(autouse=True)
def _env(monkeypatch):
    """Known settings and empty session registry for every test."""
    monkeypatch.setenv("SPOTIFY_CLIENT_ID", "test_client_id")
    monkeypatch.setenv("SECRET_KEY", "test_secret")
    monkeypatch.setenv("BASE_URL", "http://testserver")
    get_settings.cache_clear()
    clear_sessions()
    yield
    get_settings.cache_clear()
    clear_sessions()


@pytest.fixture
def spotify(monkeypatch) -> MockSpotify:
    """Route every ``httpx.AsyncClient`` through a ``MockSpotify``."""
    transport = MockSpotify()

    def _client(*args, **kwargs):
        kwargs.pop("transport", None)
        return _RealAsyncClient(*args, transport=transport, **kwargs)

    monkeypatch.setattr(httpx, "AsyncClient", _client)
    return transport
