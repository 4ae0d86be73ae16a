# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Configuration helpers for corenetworking."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Protocol

from .version import __version__

DEFAULT_USER_AGENT = f"corenetworking/{__version__} (+python-httpx)"

PROXY_URL_KEY = "proxy.url"
PROXY_USERNAME_KEY = "proxy.username"
PROXY_PASSWORD_KEY = "proxy.password"


def _float_env(name: str, default: float) -> float:
    try:
        value = os.getenv(name)
        return float(value) if value is not None else default
    except ValueError:
        return default


def _int_env(name: str, default: int) -> int:
    try:
        value = os.getenv(name)
        return int(value) if value is not None else default
    except ValueError:
        return default


def _bool_env(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


@dataclass
class HttpSettings:
    """HTTP client defaults."""

    timeout: float = 30.0
    max_retries: int = 3
    initial_delay_ms: float = 100.0
    user_agent: str = DEFAULT_USER_AGENT
    allow_redirects: bool = True
    verify_ssl: bool = True
    max_body_bytes: int = 16 * 1024 * 1024

    @classmethod
    def from_env(cls) -> "HttpSettings":
        """Create settings from environment variables (evaluated at call time)."""
        max_retries = _int_env("CORENETWORKING_HTTP_RETRIES", cls.max_retries)
        if max_retries < 0:
            max_retries = cls.max_retries
        initial_delay_ms = _float_env("CORENETWORKING_HTTP_INITIAL_DELAY_MS", cls.initial_delay_ms)
        if initial_delay_ms <= 0:
            initial_delay_ms = cls.initial_delay_ms
        max_body_bytes = _int_env("CORENETWORKING_HTTP_MAX_BODY_BYTES", cls.max_body_bytes)
        if max_body_bytes <= 0:
            max_body_bytes = cls.max_body_bytes
        return cls(
            timeout=_float_env("CORENETWORKING_HTTP_TIMEOUT", cls.timeout),
            max_retries=max_retries,
            initial_delay_ms=initial_delay_ms,
            user_agent=os.getenv("CORENETWORKING_USER_AGENT", cls.user_agent),
            allow_redirects=_bool_env("CORENETWORKING_HTTP_REDIRECTS", cls.allow_redirects),
            verify_ssl=_bool_env("CORENETWORKING_HTTP_VERIFY_SSL", cls.verify_ssl),
            max_body_bytes=max_body_bytes,
        )


def load_http_settings() -> HttpSettings:
    """Load HTTP settings from environment with sensible defaults."""
    return HttpSettings.from_env()


class ConfigStore(Protocol):
    """Key-value lookup for dotted configuration keys such as ``proxy.url``."""

    def get(self, key: str) -> str | None: ...


class EnvConfigStore:
    """
    ConfigStore backed by environment variables.

    ``proxy.url`` is read from ``CORENETWORKING_PROXY_URL`` and so on. The
    environment is consulted on every ``get``.
    """

    prefix = "CORENETWORKING_"

    def __init__(self, environ: Mapping[str, str] | None = None):
        self._environ = environ

    def get(self, key: str) -> str | None:
        environ = os.environ if self._environ is None else self._environ
        name = self.prefix + key.replace(".", "_").upper()
        return environ.get(name) or None


__all__ = [
    "DEFAULT_USER_AGENT",
    "PROXY_PASSWORD_KEY",
    "PROXY_URL_KEY",
    "PROXY_USERNAME_KEY",
    "ConfigStore",
    "EnvConfigStore",
    "HttpSettings",
    "load_http_settings",
]
