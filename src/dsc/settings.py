from __future__ import annotations

import os
from dataclasses import dataclass

from .constants import DEFAULT_CLIENT_TIMEOUT_MS, DEFAULT_HOST, DEFAULT_PORT, DEFAULT_SERVER_TIMEOUT_MS

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class Settings:
    server_host: str
    server_port: int
    client_timeout_ms: int
    server_timeout_ms: int
    log_level: str


def _int_env(name: str, default: int, minimum: int | None = None) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None
    if minimum is not None and value < minimum:
        raise ValueError(f"{name} must be at least {minimum}, got {value}")
    return value


def get_settings() -> Settings:
    """
    Defaults for the CLI. Values come from environment variables; command
    line flags override them.
    """
    log_level = os.getenv("DSC_LOG_LEVEL", "INFO").strip().upper()
    if log_level not in LOG_LEVELS:
        raise ValueError(f"DSC_LOG_LEVEL must be one of {', '.join(LOG_LEVELS)}, got {log_level!r}")

    return Settings(
        server_host=os.getenv("DSC_SERVER_HOST", DEFAULT_HOST),
        server_port=_int_env("DSC_SERVER_PORT", DEFAULT_PORT),
        client_timeout_ms=_int_env("DSC_CLIENT_TIMEOUT_MS", DEFAULT_CLIENT_TIMEOUT_MS, minimum=1),
        server_timeout_ms=_int_env("DSC_SERVER_TIMEOUT_MS", DEFAULT_SERVER_TIMEOUT_MS, minimum=1),
        log_level=log_level,
    )
