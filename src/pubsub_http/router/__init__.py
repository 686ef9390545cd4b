"""
pubsub_http.router - Host selection and fallback.

Decides which hosts a request is sent to, and in what order.
"""

from pubsub_http.router.dispatcher import RequestDispatcher
from pubsub_http.router.fallback import (
    FallbackRecord,
    FallbackState,
)
from pubsub_http.router.hosts import (
    ConnectionHostSource,
    HostResolver,
)

__all__ = [
    # Hosts
    "ConnectionHostSource",
    "HostResolver",
    # Fallback
    "FallbackRecord",
    "FallbackState",
    # Dispatch
    "RequestDispatcher",
]
