"""
Configuration for the BuiltWith MCP server.

Settings are read once at startup from the environment (and an optional .env
file) and never change afterwards.
"""

import os
from typing import Optional, Tuple, Literal

import dotenv
from pydantic import BaseModel, ConfigDict, Field

DEFAULT_HOSTNAME = "api.builtwith.com"
DEFAULT_PORT = 8787
DEFAULT_HOST = "127.0.0.1"


class ConfigurationError(ValueError):
    """Raised when an environment value cannot be used."""


class Settings(BaseModel):
    """Process-wide, read-only server settings."""
    model_config = ConfigDict(frozen=True)

    api_key: Optional[str] = Field(None, description="Fallback BuiltWith API key")
    hostname: str = Field(DEFAULT_HOSTNAME, description="BuiltWith API hostname")
    transport: Literal["stdio", "http"] = Field("stdio", description="Transport mode")
    allowed_origins: Tuple[str, ...] = Field(default_factory=tuple, description="Origin allowlist for HTTP mode")
    host: str = Field(DEFAULT_HOST, description="HTTP bind address (loopback only)")
    port: int = Field(DEFAULT_PORT, description="HTTP listen port")
    log_level: str = Field("INFO", description="Root log level")
    timeout: Optional[float] = Field(None, description="Upstream timeout in seconds; None keeps the transport default")

    @classmethod
    def from_env(cls, load_dotenv: bool = True) -> "Settings":
        """Build settings from environment variables."""
        if load_dotenv:
            dotenv.load_dotenv()

        transport = (os.getenv("MCP_TRANSPORT") or "stdio").strip().lower()
        if transport not in ("stdio", "http"):
            raise ConfigurationError(
                f"MCP_TRANSPORT must be 'stdio' or 'http', got '{transport}'"
            )

        return cls(
            api_key=os.getenv("BUILTWITH_API_KEY") or None,
            hostname=(os.getenv("BUILTWITH_API_HOSTNAME") or DEFAULT_HOSTNAME).strip(),
            transport=transport,
            allowed_origins=parse_origins(os.getenv("MCP_ALLOWED_ORIGINS")),
            port=_parse_port(os.getenv("PORT")),
            log_level=(os.getenv("LOG_LEVEL") or "INFO").strip().upper(),
            timeout=_parse_timeout(os.getenv("BUILTWITH_TIMEOUT")),
        )


def parse_origins(raw: Optional[str]) -> Tuple[str, ...]:
    """Split a comma-separated allowlist, dropping blank entries."""
    if not raw:
        return ()
    return tuple(origin.strip() for origin in raw.split(",") if origin.strip())


def _parse_port(raw: Optional[str]) -> int:
    if raw is None or not raw.strip():
        return DEFAULT_PORT
    try:
        port = int(raw)
    except ValueError:
        raise ConfigurationError(f"PORT must be an integer, got '{raw}'")
    if not 0 < port < 65536:
        raise ConfigurationError(f"PORT out of range: {port}")
    return port


def _parse_timeout(raw: Optional[str]) -> Optional[float]:
    if raw is None or not raw.strip():
        return None
    try:
        timeout = float(raw)
    except ValueError:
        raise ConfigurationError(f"BUILTWITH_TIMEOUT must be a number, got '{raw}'")
    if timeout <= 0:
        raise ConfigurationError(f"BUILTWITH_TIMEOUT must be positive, got {timeout}")
    return timeout
