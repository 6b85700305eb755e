"""Configuration loaded from environment variables."""

from __future__ import annotations

import os
from typing import Mapping

from pydantic import BaseModel, Field, SecretStr

from .gate.mode import MODE_ENV_VAR

DEFAULT_BASE_URL = "https://cloud.langfuse.com"


class ConfigError(Exception):
    """Raised when required configuration is missing or invalid."""


class ProjectConfig(BaseModel):
    """Credentials and endpoint for one Langfuse project."""

    id: str
    base_url: str = DEFAULT_BASE_URL
    public_key: str
    secret_key: SecretStr

    @staticmethod
    def derive_project_id(public_key: str) -> str:
        """Short project label from a ``pk-lf-<uuid>`` style public key."""
        segments = public_key.split("-")
        if len(segments) > 2 and segments[2]:
            return segments[2][:8]
        return "default"


class ServerSettings(BaseModel):
    """Process-level settings read once at startup."""

    mode: str | None = Field(default=None, description="Raw mode token, resolved by resolve_mode()")
    log_level: str = "INFO"
    timeout: float = Field(default=30.0, gt=0)


def load_project_config(environ: Mapping[str, str] | None = None) -> ProjectConfig:
    """Build the project config from LANGFUSE_* environment variables.

    Raises:
        ConfigError: If the public or secret key is missing
    """
    env = os.environ if environ is None else environ
    public_key = env.get("LANGFUSE_PUBLIC_KEY")
    secret_key = env.get("LANGFUSE_SECRET_KEY")

    if not public_key or not secret_key:
        raise ConfigError(
            "Missing required environment variables: LANGFUSE_PUBLIC_KEY and LANGFUSE_SECRET_KEY"
        )

    return ProjectConfig(
        id=ProjectConfig.derive_project_id(public_key),
        base_url=(env.get("LANGFUSE_BASEURL") or DEFAULT_BASE_URL).rstrip("/"),
        public_key=public_key,
        secret_key=SecretStr(secret_key),
    )


def load_server_settings(environ: Mapping[str, str] | None = None) -> ServerSettings:
    """Read mode, log level and HTTP timeout from the environment.

    Raises:
        ConfigError: If LANGFUSE_MCP_TIMEOUT is not a positive number
    """
    env = os.environ if environ is None else environ
    raw_timeout = env.get("LANGFUSE_MCP_TIMEOUT")
    try:
        timeout = float(raw_timeout) if raw_timeout else 30.0
    except ValueError as exc:
        raise ConfigError(f"LANGFUSE_MCP_TIMEOUT must be a number, got {raw_timeout!r}") from exc
    if timeout <= 0:
        raise ConfigError(f"LANGFUSE_MCP_TIMEOUT must be positive, got {raw_timeout!r}")

    return ServerSettings(
        mode=env.get(MODE_ENV_VAR),
        log_level=(env.get("LANGFUSE_MCP_LOG_LEVEL") or "INFO").upper(),
        timeout=timeout,
    )
