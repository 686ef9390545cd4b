"""
Internet connectivity check.

Answers "is there any route to the service at all" with one GET against a
fixed up-check URL that replies with the text ``yes``.
"""

import logging

from pubsub_http.config import DEFAULT_INTERNET_UP_URL
from pubsub_http.transport.base import HttpMethod
from pubsub_http.transport.executor import TransportExecutor

logger = logging.getLogger(__name__)

EXPECTED_RESPONSE = "yes"


class ConnectivityProber:
    """One-shot connectivity probe with no fallback hosts and no retry."""

    def __init__(self, executor: TransportExecutor, up_url: str = DEFAULT_INTERNET_UP_URL):
        self.executor = executor
        self.up_url = up_url

    async def check(self) -> bool:
        """
        Check connectivity.

        Returns:
            True only if the request succeeded and the body is ``yes``
            (surrounding whitespace ignored). Network errors give False.
        """
        outcome = await self.executor.execute(HttpMethod.GET, self.up_url)
        if outcome.is_error:
            logger.debug(f"Connectivity check failed: {outcome.error}")
            return False

        body = outcome.body
        if isinstance(body, (bytes, bytearray)):
            text = bytes(body).decode("utf-8", errors="replace")
        elif isinstance(body, str):
            text = body
        else:
            logger.debug(f"Connectivity check returned unexpected body: {body!r}")
            return False

        return text.strip() == EXPECTED_RESPONSE
