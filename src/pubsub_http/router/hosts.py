"""
Host resolution for REST requests.

Builds the ordered list of hosts a request may be sent to. Pure
configuration lookup; nothing here touches the network.
"""

from typing import Protocol

from pubsub_http.config import ClientOptions


class ConnectionHostSource(Protocol):
    """Anything that knows which host a realtime connection is attached to."""

    @property
    def host(self) -> str | None: ...


class HostResolver:
    """Resolves the candidate host list for a request."""

    def __init__(
        self,
        options: ClientOptions,
        connection: ConnectionHostSource | None = None,
    ):
        """
        Initialize resolver.

        Args:
            options: Client options holding the REST and fallback hosts
            connection: Realtime connection, read only
        """
        self.options = options
        self.connection = connection

    def connection_host(self) -> str | None:
        """Get the host the realtime connection is attached to, if any."""
        if self.connection is None:
            return None
        return getattr(self.connection, "host", None) or None

    def resolve(self) -> list[str]:
        """
        Build ordered list of hosts to try.

        A connected realtime client's host comes first, but it still gets the
        fallback hosts behind it: being connected does not guarantee the
        datacenter can serve REST requests.

        Returns:
            Ordered, duplicate-free list with at least one host
        """
        connection_host = self.connection_host()
        if connection_host:
            candidates = [connection_host, *self.options.get_fallback_hosts()]
        else:
            candidates = self.options.get_hosts()

        hosts: list[str] = []
        for host in candidates:
            if host not in hosts:
                hosts.append(host)
        return hosts
