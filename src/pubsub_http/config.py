"""
Client configuration using Pydantic settings.

Options are loaded from environment variables with the PUBSUB_HTTP_ prefix
(nested fields use a double underscore, e.g.
PUBSUB_HTTP_TIMEOUTS__HTTP_REQUEST_TIMEOUT_MS), and can be overridden via a
YAML config file.
"""

import os
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from pubsub_http.errors import ConfigValidationError

DEFAULT_REST_HOST = "rest.ably.io"

DEFAULT_FALLBACK_HOSTS = [
    "a.ably-realtime.com",
    "b.ably-realtime.com",
    "c.ably-realtime.com",
    "d.ably-realtime.com",
    "e.ably-realtime.com",
]

DEFAULT_INTERNET_UP_URL = "https://internet-up.ably-realtime.com/is-the-internet-up.txt"

CONFIG_PATH_ENV = "PUBSUB_HTTP_CONFIG_PATH"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def normalize_log_level(level: str) -> str:
    """
    Uppercase a log level name and check it is known.

    Raises:
        ValueError: If the level is not one of LOG_LEVELS
    """
    level = level.upper()
    if level not in LOG_LEVELS:
        raise ValueError(f"log_level must be one of {', '.join(LOG_LEVELS)}")
    return level


class AgentOptions(BaseModel):
    """Connection pool settings shared by the plaintext and TLS clients."""

    keep_alive: bool = Field(default=True, description="Keep TCP connections open between requests")
    max_sockets: int = Field(default=25, gt=0, description="Max open connections per client")
    keepalive_expiry: float = Field(
        default=5.0, gt=0, description="Seconds an idle keep-alive connection is retained"
    )


class TimeoutOptions(BaseModel):
    """Request and fallback timeouts, in milliseconds."""

    http_request_timeout_ms: int = Field(
        default=15000, gt=0, description="Timeout for a single HTTP request"
    )
    fallback_retry_timeout_ms: int = Field(
        default=600000, gt=0, description="How long a successful fallback host is preferred"
    )


class ClientOptions(BaseSettings):
    """REST transport configuration."""

    model_config = SettingsConfigDict(
        env_prefix="PUBSUB_HTTP_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Hosts
    rest_host: str = Field(default=DEFAULT_REST_HOST, description="Primary REST host")
    fallback_hosts: list[str] | None = Field(
        default=None,
        description="Fallback hosts; defaults to the production set for the default host",
    )
    http_max_retry_count: int = Field(
        default=3, ge=0, description="Max number of fallback hosts tried per request"
    )

    # Transport
    tls: bool = Field(default=True, description="Use HTTPS")
    port: int = Field(default=80, description="Plaintext port")
    tls_port: int = Field(default=443, description="TLS port")
    timeouts: TimeoutOptions = Field(default_factory=TimeoutOptions)
    rest_agent_options: AgentOptions = Field(default_factory=AgentOptions)

    # Connectivity check
    internet_up_url: str = Field(
        default=DEFAULT_INTERNET_UP_URL, description="URL answering 'yes' when online"
    )

    log_level: str = Field(default="INFO", description="Log level")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        return normalize_log_level(v)

    @field_validator("rest_host")
    @classmethod
    def validate_rest_host(cls, v: str) -> str:
        """Reject empty hosts."""
        v = v.strip()
        if not v:
            raise ValueError("rest_host must not be empty")
        return v

    def get_fallback_hosts(self) -> list[str]:
        """
        Get the fallback hosts to try after the first host.

        Explicit fallback_hosts win. Otherwise the production fallbacks apply
        only when the default REST host is in use. The list is capped at
        http_max_retry_count entries and keeps configured order.

        Returns:
            Ordered list of fallback hosts
        """
        if self.fallback_hosts is not None:
            hosts = list(self.fallback_hosts)
        elif self.rest_host == DEFAULT_REST_HOST:
            hosts = list(DEFAULT_FALLBACK_HOSTS)
        else:
            hosts = []
        return hosts[: self.http_max_retry_count]

    def get_hosts(self) -> list[str]:
        """Get the primary host followed by its fallbacks."""
        return [self.rest_host, *self.get_fallback_hosts()]

    def base_uri(self, host: str) -> str:
        """
        Build the base URI for a host.

        Args:
            host: Hostname

        Returns:
            URI of the form scheme://host:port
        """
        if self.tls:
            return f"https://{host}:{self.tls_port}"
        return f"http://{host}:{self.port}"


def load_options(path: Path, **overrides: Any) -> ClientOptions:
    """
    Load client options from a YAML file.

    The file holds an ``http`` section whose keys match ClientOptions fields.

    Args:
        path: Path to YAML config file
        **overrides: Values that take precedence over the file

    Returns:
        ClientOptions instance

    Raises:
        ConfigValidationError: If the file is malformed or fails validation
        FileNotFoundError: If the file does not exist
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigValidationError(f"Invalid YAML syntax: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigValidationError("Config file must contain a mapping")

    section = data.get("http", {})
    if section is None:
        section = {}
    if not isinstance(section, dict):
        raise ConfigValidationError("'http' section must be a mapping")

    try:
        return ClientOptions(**{**section, **overrides})
    except ValidationError as e:
        raise ConfigValidationError(f"Invalid http configuration: {e}") from e


@lru_cache
def get_options() -> ClientOptions:
    """Get cached options instance."""
    config_path = os.environ.get(CONFIG_PATH_ENV)
    if config_path:
        return load_options(Path(config_path))
    return ClientOptions()


def reset_options() -> None:
    """Clear the cached options (for testing)."""
    get_options.cache_clear()


def get_options_dict(options: ClientOptions | None = None) -> dict[str, Any]:
    """Get options as dictionary (for display)."""
    options = options or get_options()
    return {
        "hosts": {
            "rest_host": options.rest_host,
            "fallback_hosts": options.get_fallback_hosts(),
            "http_max_retry_count": options.http_max_retry_count,
        },
        "transport": {
            "tls": options.tls,
            "port": options.tls_port if options.tls else options.port,
            "keep_alive": options.rest_agent_options.keep_alive,
            "max_sockets": options.rest_agent_options.max_sockets,
        },
        "timeouts": {
            "http_request_timeout_ms": options.timeouts.http_request_timeout_ms,
            "fallback_retry_timeout_ms": options.timeouts.fallback_retry_timeout_ms,
        },
        "internet_up_url": options.internet_up_url,
        "log_level": options.log_level,
    }
