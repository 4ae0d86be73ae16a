# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
Proxy discovery from ``HTTP_PROXY``/``HTTPS_PROXY``/``ALL_PROXY``/``NO_PROXY``.

Resolution happens per URL and reads the environment mapping at call time.
Lower-case variable names win over upper-case ones, matching curl.
"""

from __future__ import annotations

import os
import re
from collections.abc import Mapping
from typing import Protocol
from urllib.parse import urlsplit

DEFAULT_PORTS = {"ftp": 21, "gopher": 70, "http": 80, "https": 443, "ws": 80, "wss": 443}

_NO_PROXY_SPLIT_RE = re.compile(r"[,\s]+")
_HOST_PORT_RE = re.compile(r"^(.+):(\d+)$")


class ProxyResolver(Protocol):
    """Strategy returning the proxy URL to use for a target URL, or None."""

    def proxy_for_url(self, url: str) -> str | None: ...


class EnvProxyResolver:
    """ProxyResolver backed by an environment mapping (``os.environ`` by default)."""

    def __init__(self, environ: Mapping[str, str] | None = None):
        self._environ = environ

    def _env(self, name: str) -> str:
        environ = os.environ if self._environ is None else self._environ
        return environ.get(name.lower()) or environ.get(name.upper()) or ""

    def proxy_for_url(self, url: str) -> str | None:
        try:
            parts = urlsplit(url)
            port = parts.port
        except ValueError:
            return None
        scheme = parts.scheme.lower()
        hostname = (parts.hostname or "").lower()
        if not scheme or not hostname:
            return None

        port = port or DEFAULT_PORTS.get(scheme, 0)
        if not self.should_proxy(hostname, port):
            return None

        proxy = self._env(f"{scheme}_proxy") or self._env("all_proxy")
        if proxy and "://" not in proxy:
            proxy = f"{scheme}://{proxy}"
        return proxy or None

    def should_proxy(self, hostname: str, port: int) -> bool:
        """Return False when ``NO_PROXY`` excludes ``hostname``/``port``."""
        no_proxy = self._env("no_proxy").lower()
        if not no_proxy:
            return True
        if no_proxy == "*":
            return False

        for entry in _NO_PROXY_SPLIT_RE.split(no_proxy):
            if not entry:
                continue
            match = _HOST_PORT_RE.match(entry)
            entry_host = match.group(1) if match else entry
            entry_port = int(match.group(2)) if match else 0
            if entry_port and entry_port != port:
                continue

            if not entry_host.startswith((".", "*")):
                if hostname == entry_host:
                    return False
                continue

            if entry_host.startswith("*"):
                entry_host = entry_host[1:]
            if hostname.endswith(entry_host):
                return False
        return True


__all__ = ["DEFAULT_PORTS", "EnvProxyResolver", "ProxyResolver"]
