from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Callable

import httpx
import pytest

from adapters.http_client import HttpRequestPipeline, build_async_client
from adapters.session_store import MemorySessionStore
from core.config import AppSettings
from core.session import SessionContext

BASE_URL = "https://api.test/api/"
TOKEN = "tok-123"

Route = Callable[[httpx.Request], Any]


class FakeApi:
    """Route table over `httpx.MockTransport` that records every request.

    A route is either a callable (sync or async) returning an
    `httpx.Response`, or a JSON-able value answered with HTTP 200.
    """

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], Route | Any] = {}
        self.requests: list[httpx.Request] = []

    def on(self, method: str, path: str, reply: Route | Any) -> None:
        self.routes[(method.upper(), path)] = reply

    def calls(self, method: str | None = None, path: str | None = None) -> list[httpx.Request]:
        return [
            request
            for request in self.requests
            if (method is None or request.method == method.upper())
            and (path is None or _relative(request) == path)
        ]

    def handler(self, request: httpx.Request) -> Any:
        self.requests.append(request)
        reply = self.routes.get((request.method, _relative(request)))
        if reply is None:
            return httpx.Response(404, text=f"no route for {request.method} {request.url.path}")
        if callable(reply):
            return reply(request)
        return httpx.Response(200, json=reply)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


def _relative(request: httpx.Request) -> str:
    return request.url.path.removeprefix("/api/")


@pytest.fixture(autouse=True)
def _isolate_user_config(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    monkeypatch.chdir(tmp_path)
    for key in (
        "CONSOLE_SYNC_API_BASE_URL",
        "CONSOLE_SYNC_VERIFY_TLS",
        "CONSOLE_SYNC_SESSION_PATH",
        "CONSOLE_SYNC_LOG_LEVEL",
        "CONSOLE_SYNC_NOTIFICATION_LIFETIME_SECONDS",
    ):
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def settings() -> AppSettings:
    return AppSettings(api_base_url=BASE_URL)


@pytest.fixture
def store() -> MemorySessionStore:
    return MemorySessionStore()


@pytest.fixture
def session(store: MemorySessionStore) -> SessionContext:
    context = SessionContext(store)
    context.sign_in(TOKEN)
    return context


@pytest.fixture
def api() -> FakeApi:
    return FakeApi()


@pytest.fixture
def pipeline(api: FakeApi, session: SessionContext, settings: AppSettings):
    client = build_async_client(settings, transport=api.transport)
    yield HttpRequestPipeline(session=session, client=client)
    asyncio.run(client.aclose())
