"""
Runtime configuration for transloader.

Values default to sensible constants and can be overridden with
``TRANSLOADER_*`` environment variables.
"""

import logging
import os
from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, Mapping, Optional

from .exceptions import ConfigurationError

try:
    from importlib import metadata

    _version = metadata.version("transloader")
except Exception:
    _version = "unknown"


@dataclass(frozen=True)
class TransloaderConfig:
    """Settings shared by the HTTP client, providers and CLI."""

    timeout: float = 30.0
    max_redirects: int = 5
    user_agent: str = f"transloader/{_version}"
    cache_version: str = "v2"
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "TransloaderConfig":
        """Build a config, letting ``TRANSLOADER_*`` variables override defaults."""
        env = os.environ if environ is None else environ
        overrides: Dict[str, Any] = {}

        if env.get("TRANSLOADER_TIMEOUT"):
            overrides["timeout"] = _number(env, "TRANSLOADER_TIMEOUT", float)
        if env.get("TRANSLOADER_MAX_REDIRECTS"):
            overrides["max_redirects"] = _number(env, "TRANSLOADER_MAX_REDIRECTS", int)
        if env.get("TRANSLOADER_USER_AGENT"):
            overrides["user_agent"] = env["TRANSLOADER_USER_AGENT"].strip()
        if env.get("TRANSLOADER_LOG_LEVEL"):
            level = env["TRANSLOADER_LOG_LEVEL"].strip().upper()
            if not isinstance(logging.getLevelName(level), int):
                raise ConfigurationError(f"Invalid value for TRANSLOADER_LOG_LEVEL: {level!r}")
            overrides["log_level"] = level

        return replace(cls(), **overrides)


def _number(env: Mapping[str, str], name: str, convert: Callable[[str], Any]) -> Any:
    try:
        return convert(env[name].strip())
    except ValueError as e:
        raise ConfigurationError(f"Invalid value for {name}: {env[name]!r}") from e
