"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

All server settings in one dataclass, with defaults suitable for local
development.

    Priority (highest to lowest):

    1. Arguments to HTTPServer.run(host, port) / the CLI
    2. Environment variables (ServerConfig.from_env)
    3. Defaults below

The dispatch core itself reads nothing from here; these settings drive the
transport (sockets, worker threads, parser limits) and logging.

=============================================================================
"""

import os
from dataclasses import dataclass
from typing import Optional


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class ServerConfig:
    """
    Configuration for HTTPServer.

    Network:
        host, port, backlog, buffer_size, timeout
    HTTP:
        keep_alive, keep_alive_timeout, max_request_size,
        lowercase_header_names
    Threads:
        min_workers, max_workers, queue_size
    Logging:
        log_level, log_format
    Identity:
        server_name
    """

    host: str = "127.0.0.1"
    port: int = 8080
    """Port to listen on. 0 lets the OS pick a free one."""

    backlog: int = 128
    buffer_size: int = 8192

    timeout: Optional[float] = 30.0
    """Socket timeout in seconds for reading a request. None blocks forever."""

    keep_alive: bool = True
    keep_alive_timeout: float = 5.0

    max_request_size: int = 10 * 1024 * 1024

    lowercase_header_names: bool = False
    """
    Fold request header names to lowercase while parsing.

    Off by default: names are kept exactly as the client sent them and
    application code looks them up by exact key.
    """

    min_workers: int = 4
    max_workers: int = 16
    queue_size: int = 100

    log_level: str = "INFO"
    log_format: str = "text"
    """'text' or 'json' (used by the CLI's access log)."""

    server_name: str = "embedhttp"
    """Value of the Server header on every response."""

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Build a config from environment variables.

            HTTP_HOST, HTTP_PORT, HTTP_WORKERS, HTTP_TIMEOUT,
            HTTP_LOG_LEVEL, HTTP_LOG_FORMAT, HTTP_SERVER_NAME,
            HTTP_LOWERCASE_HEADERS
        """
        workers = int(os.getenv("HTTP_WORKERS", "16"))
        return cls(
            host=os.getenv("HTTP_HOST", "127.0.0.1"),
            port=int(os.getenv("HTTP_PORT", "8080")),
            min_workers=min(4, workers),
            max_workers=workers,
            timeout=float(os.getenv("HTTP_TIMEOUT", "30")),
            log_level=os.getenv("HTTP_LOG_LEVEL", "INFO"),
            log_format=os.getenv("HTTP_LOG_FORMAT", "text"),
            server_name=os.getenv("HTTP_SERVER_NAME", "embedhttp"),
            lowercase_header_names=_env_bool("HTTP_LOWERCASE_HEADERS", False),
        )

    def validate(self) -> None:
        """
        Fail fast on bad values.

        Raises:
            ValueError: Describing the first invalid setting.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")
        if self.min_workers < 1:
            raise ValueError("min_workers must be >= 1")
        if self.max_workers < self.min_workers:
            raise ValueError("max_workers must be >= min_workers")
        if self.queue_size < 1:
            raise ValueError("queue_size must be >= 1")
        if self.buffer_size < 1024:
            raise ValueError("buffer_size must be >= 1024")
        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")
        if self.log_format not in ("text", "json"):
            raise ValueError(f"log_format must be 'text' or 'json', got {self.log_format!r}")
