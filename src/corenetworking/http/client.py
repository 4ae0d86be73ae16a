# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""HTTP client abstraction and factory."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

from ..config import HttpSettings, load_http_settings
from .httpx_client import HttpxClient
from .models import HttpRequest, HttpResponse

if TYPE_CHECKING:
    from .proxy import ProxyAgent


class HttpClient(Protocol):
    """
    Minimal protocol for issuing HTTP requests.

    Implementations return an HttpResponse for every HTTP status and raise
    ``corenetworking.errors.TransportError`` for network-level failures.
    Clients that can hold one connection open across requests (required for
    NTLM) expose ``keep_alive = True``.
    """

    def request(self, request: HttpRequest) -> HttpResponse: ...

    def close(self) -> None:  # pragma: no cover - optional for adapters
        ...


class ClientFactory(Protocol):
    """Builds a fresh HttpClient for one logical request."""

    def __call__(
        self,
        settings: HttpSettings | None = None,
        *,
        agent: ProxyAgent | None = None,
        keep_alive: bool = False,
    ) -> HttpClient: ...


def create_default_http_client(
    settings: HttpSettings | None = None,
    *,
    agent: ProxyAgent | None = None,
    keep_alive: bool = False,
) -> HttpClient:
    """Factory for the default httpx-backed client, routed through ``agent`` when given."""
    settings = settings or load_http_settings()
    if agent is None:
        return HttpxClient(settings, keep_alive=keep_alive)
    transport = agent.build_transport(settings, keep_alive=keep_alive)
    return HttpxClient(settings, transport=transport, keep_alive=keep_alive)
