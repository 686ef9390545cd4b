"""
Shared fixtures for pubsub_http tests.
"""

from collections.abc import Callable
from typing import Any

import httpx
import pytest

from pubsub_http.client import RestHttp
from pubsub_http.config import ClientOptions, reset_options
from pubsub_http.transport.executor import reset_agent_pool

PRIMARY = "primary.test"
FALLBACKS = ["fb1.test", "fb2.test"]


class FakeClock:
    """Manually advanced clock, in seconds."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class ScriptedTransport:
    """
    Per-host scripted responses for httpx.MockTransport.

    Each host has a queue of results: an httpx.Response, an exception to
    raise, or a callable taking the request. The last result repeats once
    the queue is down to one entry. Unscripted hosts refuse connections.
    """

    def __init__(self):
        self.routes: dict[str, list[Any]] = {}
        self.requests: list[httpx.Request] = []

    def add(self, host: str, *results: Any) -> "ScriptedTransport":
        self.routes.setdefault(host, []).extend(results)
        return self

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        results = self.routes.get(request.url.host)
        if not results:
            raise httpx.ConnectError("Connection refused", request=request)

        result = results.pop(0) if len(results) > 1 else results[0]
        if isinstance(result, BaseException):
            raise result
        if callable(result):
            return result(request)
        return result

    @property
    def hosts(self) -> list[str]:
        return [r.url.host for r in self.requests]

    def reset_requests(self) -> None:
        self.requests.clear()

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


def ok(body: Any = None, status_code: int = 200) -> httpx.Response:
    """JSON response."""
    return httpx.Response(status_code, json=body if body is not None else {})


def timeout() -> httpx.ConnectTimeout:
    return httpx.ConnectTimeout("timed out")


@pytest.fixture(autouse=True)
def _reset_globals(monkeypatch):
    """Keep process-wide state and environment out of tests."""
    monkeypatch.delenv("PUBSUB_HTTP_CONFIG_PATH", raising=False)
    reset_options()
    reset_agent_pool()
    yield
    reset_options()
    reset_agent_pool()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def scripted() -> ScriptedTransport:
    return ScriptedTransport()


@pytest.fixture
def make_options() -> Callable[..., ClientOptions]:
    def factory(**overrides: Any) -> ClientOptions:
        values = {
            "rest_host": PRIMARY,
            "fallback_hosts": list(FALLBACKS),
            "tls": False,
            "port": 80,
        }
        values.update(overrides)
        return ClientOptions(**values)

    return factory


@pytest.fixture
def make_http(scripted, clock, make_options) -> Callable[..., RestHttp]:
    def factory(connection: Any = None, **overrides: Any) -> RestHttp:
        return RestHttp(
            make_options(**overrides),
            connection=connection,
            transport=scripted.transport(),
            clock=clock,
        )

    return factory
