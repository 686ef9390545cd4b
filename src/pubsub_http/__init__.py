"""
pubsub_http - REST transport for a hosted pub/sub service

Sends REST requests to the primary host and, when it is unreachable or
failing, to fallback hosts; remembers a fallback that worked so later
requests go straight to it.

Example usage:
    # Check connectivity
    $ pubsub-http check

    # Show the host order a request would use
    $ pubsub-http hosts

    # Perform a request
    $ pubsub-http request get /time
"""

__version__ = "0.1.0"

from pubsub_http.client import RestHttp
from pubsub_http.config import ClientOptions, get_options, load_options
from pubsub_http.errors import ConfigValidationError, ErrorInfo, should_fallback
from pubsub_http.transport import HttpMethod, ResponseOutcome

__all__ = [
    # Version info
    "__version__",
    # Client
    "RestHttp",
    "HttpMethod",
    "ResponseOutcome",
    # Config
    "ClientOptions",
    "get_options",
    "load_options",
    # Errors
    "ConfigValidationError",
    "ErrorInfo",
    "should_fallback",
]
