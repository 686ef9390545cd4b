"""
REST HTTP client.

Entry point for REST operations. Each RestHttp instance owns its fallback
state, so two clients never share fallback decisions; the connection pool is
shared process-wide unless one is injected.

Example usage:
    async with RestHttp(ClientOptions()) as http:
        outcome = await http.get("/time")
        error, body, headers, is_error, status_code = outcome.as_tuple()
"""

import time
from collections.abc import Mapping
from typing import Any

import httpx

from pubsub_http.config import ClientOptions
from pubsub_http.connectivity import ConnectivityProber
from pubsub_http.router.dispatcher import RequestDispatcher
from pubsub_http.router.fallback import Clock, FallbackState
from pubsub_http.router.hosts import ConnectionHostSource, HostResolver
from pubsub_http.transport.base import (
    HttpMethod,
    RequestDescriptor,
    ResponseOutcome,
    UriBuilder,
)
from pubsub_http.transport.executor import AgentPool, TransportExecutor, get_agent_pool

Params = Mapping[str, Any] | None
Headers = Mapping[str, str] | None


def is_absolute_uri(path: str) -> bool:
    """Check if a path is a full http(s) URI rather than host-relative."""
    return path.startswith(("http://", "https://"))


class RestHttp:
    """
    HTTP operations against the primary and fallback hosts.

    Provides:
    - request() and per-method helpers for host-relative paths, with fallback
    - request_uri() and *_uri helpers for full URIs, single attempt
    - check_connectivity()
    """

    supports_auth_headers = True
    supports_link_headers = True

    def __init__(
        self,
        options: ClientOptions | None = None,
        connection: ConnectionHostSource | None = None,
        pool: AgentPool | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Clock = time.monotonic,
    ):
        """
        Initialize client.

        Args:
            options: Client options (defaults read from the environment)
            connection: Realtime connection whose host is tried first
            pool: Connection pool to use instead of the process-wide one
            transport: httpx transport for a pool owned by this client
            clock: Time source for fallback expiry, in seconds
        """
        self.options = options or ClientOptions()

        self._owns_pool = pool is None and transport is not None
        if pool is None:
            if transport is not None:
                pool = AgentPool(self.options.rest_agent_options, transport=transport)
            else:
                pool = get_agent_pool(self.options.rest_agent_options)

        self._fallback_state = FallbackState(clock)
        self.executor = TransportExecutor(pool, self.options.timeouts.http_request_timeout_ms)
        self.resolver = HostResolver(self.options, connection)
        self.dispatcher = RequestDispatcher(
            self.resolver,
            self.executor,
            self._fallback_state,
            self.options.timeouts.fallback_retry_timeout_ms,
        )
        self.prober = ConnectivityProber(self.executor, self.options.internet_up_url)

    @property
    def fallback_state(self) -> FallbackState:
        """Get the fallback state owned by this client."""
        return self._fallback_state

    def base_uri(self, host: str) -> str:
        """Get scheme://host:port for a host."""
        return self.options.base_uri(host)

    def _uri_builder(self, path: str | UriBuilder) -> UriBuilder:
        if callable(path):
            return path
        return lambda host: self.base_uri(host) + path

    async def request(
        self,
        method: HttpMethod | str,
        path: str | UriBuilder,
        headers: Headers = None,
        body: Any = None,
        params: Params = None,
    ) -> ResponseOutcome:
        """
        Perform a request against the primary and fallback hosts.

        Args:
            method: HTTP method
            path: Host-relative path, a callable mapping a host to a full
                URI, or a full URI (sent to that URI only)
            headers: Request headers
            body: Request body
            params: Query string parameters

        Returns:
            Outcome of the request
        """
        method = HttpMethod.parse(method)
        if isinstance(path, str) and is_absolute_uri(path):
            return await self.request_uri(method, path, headers, body, params)

        request = RequestDescriptor(
            method=method,
            uri_builder=self._uri_builder(path),
            headers=headers,
            body=body,
            params=params,
        )
        return await self.dispatcher.dispatch(request)

    async def request_uri(
        self,
        method: HttpMethod | str,
        uri: str,
        headers: Headers = None,
        body: Any = None,
        params: Params = None,
    ) -> ResponseOutcome:
        """Perform a single request against a full URI, without fallback."""
        return await self.executor.execute(method, uri, headers=headers, body=body, params=params)

    async def get(self, path: str | UriBuilder, headers: Headers = None, params: Params = None):
        return await self.request(HttpMethod.GET, path, headers, None, params)

    async def delete(self, path: str | UriBuilder, headers: Headers = None, params: Params = None):
        return await self.request(HttpMethod.DELETE, path, headers, None, params)

    async def post(
        self, path: str | UriBuilder, headers: Headers = None, body: Any = None, params: Params = None
    ):
        return await self.request(HttpMethod.POST, path, headers, body, params)

    async def put(
        self, path: str | UriBuilder, headers: Headers = None, body: Any = None, params: Params = None
    ):
        return await self.request(HttpMethod.PUT, path, headers, body, params)

    async def patch(
        self, path: str | UriBuilder, headers: Headers = None, body: Any = None, params: Params = None
    ):
        return await self.request(HttpMethod.PATCH, path, headers, body, params)

    async def get_uri(self, uri: str, headers: Headers = None, params: Params = None):
        return await self.request_uri(HttpMethod.GET, uri, headers, None, params)

    async def delete_uri(self, uri: str, headers: Headers = None, params: Params = None):
        return await self.request_uri(HttpMethod.DELETE, uri, headers, None, params)

    async def post_uri(
        self, uri: str, headers: Headers = None, body: Any = None, params: Params = None
    ):
        return await self.request_uri(HttpMethod.POST, uri, headers, body, params)

    async def put_uri(self, uri: str, headers: Headers = None, body: Any = None, params: Params = None):
        return await self.request_uri(HttpMethod.PUT, uri, headers, body, params)

    async def patch_uri(
        self, uri: str, headers: Headers = None, body: Any = None, params: Params = None
    ):
        return await self.request_uri(HttpMethod.PATCH, uri, headers, body, params)

    async def check_connectivity(self) -> bool:
        """Check whether the internet is reachable at all."""
        return await self.prober.check()

    async def aclose(self) -> None:
        """Close the connection pool if this client created it."""
        if self._owns_pool:
            await self.executor.pool.aclose()

    async def __aenter__(self) -> "RestHttp":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()
