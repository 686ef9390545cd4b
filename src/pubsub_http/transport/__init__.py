"""
pubsub_http.transport - Single-request HTTP execution.

Sends one request to one URI and classifies the response.
"""

from pubsub_http.transport.base import (
    METHODS_WITH_BODY,
    METHODS_WITHOUT_BODY,
    HttpMethod,
    RequestDescriptor,
    ResponseOutcome,
    UriBuilder,
)
from pubsub_http.transport.classifier import (
    JSON_CONTENT_TYPE,
    MSGPACK_CONTENT_TYPE,
    DecodeError,
    classify_network_error,
    classify_response,
    decode_body,
    network_error_code,
)
from pubsub_http.transport.executor import (
    AgentPool,
    TransportExecutor,
    get_agent_pool,
    reset_agent_pool,
)

__all__ = [
    # Types
    "HttpMethod",
    "METHODS_WITH_BODY",
    "METHODS_WITHOUT_BODY",
    "RequestDescriptor",
    "ResponseOutcome",
    "UriBuilder",
    # Classifier
    "JSON_CONTENT_TYPE",
    "MSGPACK_CONTENT_TYPE",
    "DecodeError",
    "classify_network_error",
    "classify_response",
    "decode_body",
    "network_error_code",
    # Executor
    "AgentPool",
    "TransportExecutor",
    "get_agent_pool",
    "reset_agent_pool",
]
