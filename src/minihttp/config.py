"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Centralized configuration for the server, as a dataclass.

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION HIERARCHY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Command-line arguments                                         │
    │      └── python -m minihttp --directory /tmp/data                   │
    │                                                                      │
    │   2. Environment variables                                          │
    │      └── MINIHTTP_PORT=8080 python -m minihttp                      │
    │                                                                      │
    │   3. Defaults in this dataclass                                     │
    │      └── port 4221, directory ".", single-read framing              │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

import os
from dataclasses import dataclass
from typing import Optional


FRAMING_SINGLE = "single"
FRAMING_CONTENT_LENGTH = "content-length"
FRAMINGS = (FRAMING_SINGLE, FRAMING_CONTENT_LENGTH)


@dataclass
class ServerConfig:
    """
    Server configuration.

    =========================================================================
    USAGE
    =========================================================================

        # Defaults: 127.0.0.1:4221, serving the current directory
        config = ServerConfig()

        # Serve a specific directory on all interfaces
        config = ServerConfig(host="0.0.0.0", directory="/tmp/data")

        # From MINIHTTP_* environment variables
        config = ServerConfig.from_env()

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "127.0.0.1"
    """Address to bind. "0.0.0.0" listens on all interfaces."""

    port: int = 4221
    """Port to listen on. 0 lets the OS pick a free one."""

    backlog: int = 128
    """Maximum number of connections queued by the kernel before accept()."""

    buffer_size: int = 1024
    """
    Receive buffer size in bytes.
    With single-read framing this is also the largest request accepted:
    whatever one recv() returns is the whole request.
    """

    timeout: Optional[float] = 30.0
    """Socket timeout in seconds for reads and writes. None = block forever."""

    framing: str = FRAMING_SINGLE
    """
    How a request's bytes are collected from the connection:
    - "single": one recv(buffer_size), the remainder after headers is body
    - "content-length": read headers, then exactly Content-Length body bytes
    """

    # ─────────────────────────────────────────────────────────────────────
    # HTTP SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    max_request_size: int = 10 * 1024 * 1024  # 10 MB
    """Largest request the parser (and content-length framing) accepts."""

    strict_methods: bool = False
    """Close the connection on methods other than GET/POST instead of 404."""

    # ─────────────────────────────────────────────────────────────────────
    # FILES
    # ─────────────────────────────────────────────────────────────────────

    directory: str = "."
    """Root directory for the /files/* routes (fsRoot)."""

    confine_files: bool = True
    """Refuse /files/ names that resolve outside `directory`."""

    # ─────────────────────────────────────────────────────────────────────
    # THREAD POOL SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    min_workers: int = 4
    """Worker threads started with the server."""

    max_workers: int = 16
    """Upper bound the pool may scale up to under load."""

    queue_size: int = 100
    """Connections waiting for a worker before new ones are refused."""

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """DEBUG, INFO, WARNING or ERROR."""

    log_format: str = "text"
    """Access log format: "text" (Apache-like) or "json"."""

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        MINIHTTP_HOST         Bind address (default: 127.0.0.1)
        MINIHTTP_PORT         Port (default: 4221)
        MINIHTTP_DIRECTORY    Files root (default: .)
        MINIHTTP_BUFFER_SIZE  Receive buffer in bytes (default: 1024)
        MINIHTTP_TIMEOUT      Socket timeout in seconds (default: 30)
        MINIHTTP_FRAMING      single | content-length (default: single)
        MINIHTTP_WORKERS      Max worker threads (default: 16)
        MINIHTTP_LOG_LEVEL    Logging level (default: INFO)

        =====================================================================
        """
        return cls(
            host=os.getenv("MINIHTTP_HOST", "127.0.0.1"),
            port=int(os.getenv("MINIHTTP_PORT", "4221")),
            directory=os.getenv("MINIHTTP_DIRECTORY", "."),
            buffer_size=int(os.getenv("MINIHTTP_BUFFER_SIZE", "1024")),
            timeout=float(os.getenv("MINIHTTP_TIMEOUT", "30")),
            framing=os.getenv("MINIHTTP_FRAMING", FRAMING_SINGLE),
            max_workers=int(os.getenv("MINIHTTP_WORKERS", "16")),
            log_level=os.getenv("MINIHTTP_LOG_LEVEL", "INFO"),
        )

    def validate(self) -> None:
        """
        Validate configuration values, failing fast at startup.

        Raises:
            ValueError: On the first invalid value found.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.min_workers < 1:
            raise ValueError("min_workers must be >= 1")

        if self.max_workers < self.min_workers:
            raise ValueError("max_workers must be >= min_workers")

        if self.buffer_size < 64:
            raise ValueError("buffer_size must be >= 64")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")

        if self.framing not in FRAMINGS:
            raise ValueError(
                f"Unknown framing: {self.framing!r}. Expected one of {', '.join(FRAMINGS)}."
            )

        if not os.path.isdir(self.directory):
            raise ValueError(f"Directory does not exist: {self.directory}")
