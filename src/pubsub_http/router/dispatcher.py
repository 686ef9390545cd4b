"""
Request dispatch across the primary and fallback hosts.

Handles:
- Reuse of a recently successful fallback host
- Sequential retry across hosts on network and 5xx failures
- Remembering the host that finally succeeded
"""

import logging

from pubsub_http.errors import should_fallback
from pubsub_http.router.fallback import FallbackState
from pubsub_http.router.hosts import HostResolver
from pubsub_http.transport.base import RequestDescriptor, ResponseOutcome
from pubsub_http.transport.executor import TransportExecutor

logger = logging.getLogger(__name__)


class RequestDispatcher:
    """
    Sends a request to the first host that can serve it.

    The system is stateless between requests apart from the fallback record:
    each request resolves its own host list and attempts hosts one at a time,
    moving on only after a retryable failure.
    """

    def __init__(
        self,
        resolver: HostResolver,
        executor: TransportExecutor,
        fallback_state: FallbackState,
        fallback_retry_timeout_ms: int,
    ):
        """
        Initialize dispatcher.

        Args:
            resolver: Builds the host list for each request
            executor: Performs single requests
            fallback_state: Client-owned fallback record
            fallback_retry_timeout_ms: How long a successful fallback is preferred
        """
        self.resolver = resolver
        self.executor = executor
        self.fallback_state = fallback_state
        self.fallback_retry_timeout_ms = fallback_retry_timeout_ms

    async def dispatch(self, request: RequestDescriptor) -> ResponseOutcome:
        """
        Dispatch a request.

        Args:
            request: Request to send

        Returns:
            Outcome of the last attempt made
        """
        hosts_tried: list[str] = []
        restarted = False

        while True:
            record = None if restarted else self.fallback_state.get()
            if record is None:
                break

            outcome = await self._attempt(request, record.host, hosts_tried)
            if not (outcome.is_error and should_fallback(outcome.error, outcome.status_code)):
                return outcome

            logger.info(
                f"Stored fallback host {record.host} failed ({outcome.error.code or outcome.status_code}), "
                "restarting with default hosts"
            )
            self.fallback_state.clear()
            restarted = True

        hosts = self.resolver.resolve()
        if len(hosts) == 1:
            return await self._attempt(request, hosts[0], hosts_tried)

        return await self._try_hosts(request, hosts, hosts_tried)

    async def _try_hosts(
        self,
        request: RequestDescriptor,
        hosts: list[str],
        hosts_tried: list[str],
    ) -> ResponseOutcome:
        """Attempt hosts in order until one succeeds or a failure is final."""
        candidates = list(hosts)
        persist_on_success = False

        while True:
            host = candidates.pop(0)
            outcome = await self._attempt(request, host, hosts_tried)

            if outcome.is_error:
                if should_fallback(outcome.error, outcome.status_code) and candidates:
                    logger.info(
                        f"Host {host} failed ({outcome.error.code or outcome.status_code}), "
                        f"trying {candidates[0]}"
                    )
                    persist_on_success = True
                    continue
                if should_fallback(outcome.error, outcome.status_code):
                    logger.warning(f"All hosts failed: {', '.join(hosts_tried)}")
                return outcome

            if persist_on_success:
                self.fallback_state.set(host, self.fallback_retry_timeout_ms)
            return outcome

    async def _attempt(
        self,
        request: RequestDescriptor,
        host: str,
        hosts_tried: list[str],
    ) -> ResponseOutcome:
        hosts_tried.append(host)
        logger.debug(f"Attempt {len(hosts_tried)}: {request.method.value.upper()} via {host}")
        outcome = await self.executor.execute(
            request.method,
            request.uri_for(host),
            headers=request.headers,
            body=request.body,
            params=request.params,
        )
        outcome.host = host
        outcome.hosts_tried = list(hosts_tried)
        return outcome
