# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
Forward proxy support.

``create_proxy_agent`` turns ProxyOptions plus the target URL into a
ProxyAgent: a closed choice between plain HTTP forwarding and an HTTPS
CONNECT tunnel, with the proxy credentials and TLS policy attached. The
agent is a plain record; the httpx transport is only built from it when a
request is dispatched, so credentials and ``reject_unauthorized`` always
reach the CONNECT handshake together.
"""

from __future__ import annotations

import logging
import ssl
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import httpx

from ..config import HttpSettings, load_http_settings
from ..errors import ProxyFetchInitializationError, ProxyFetchInitializationTypeError
from .client import ClientFactory, create_default_http_client
from .httpx_client import KEEP_ALIVE_LIMITS
from .models import HttpRequest, HttpResponse, ProxyOptions
from .url import HttpOptions, split_auth, strip_credentials, url_to_http_options

logger = logging.getLogger(__name__)

SUPPORTED_PROXY_SCHEMES = frozenset({"http", "https"})


class ProxyKind(str, Enum):
    HTTP = "http"
    HTTPS = "https"


def _unverified_ssl_context() -> ssl.SSLContext:
    context = ssl.create_default_context()
    context.check_hostname = False
    context.verify_mode = ssl.CERT_NONE
    return context


@dataclass(frozen=True)
class ProxyAgent:
    """How to reach a resource through a forward proxy."""

    kind: ProxyKind
    proxy_url: str
    options: HttpOptions
    auth: str | None = field(default=None, repr=False)
    reject_unauthorized: bool = True

    @property
    def credentials(self) -> tuple[str, str] | None:
        return split_auth(self.auth)

    def build_proxy(self) -> httpx.Proxy:
        ssl_context = None
        if self.options.scheme == "https" and not self.reject_unauthorized:
            ssl_context = _unverified_ssl_context()
        return httpx.Proxy(self.proxy_url, auth=self.credentials, ssl_context=ssl_context)

    def build_transport(self, settings: HttpSettings | None = None, *, keep_alive: bool = False) -> httpx.HTTPTransport:
        settings = settings or load_http_settings()
        verify: Any = settings.verify_ssl
        if self.kind is ProxyKind.HTTPS and not self.reject_unauthorized:
            # TLS to the resource runs inside the tunnel opened on the proxy connection.
            verify = False
        return httpx.HTTPTransport(
            proxy=self.build_proxy(),
            verify=verify,
            limits=KEEP_ALIVE_LIMITS if keep_alive else httpx.Limits(),
            trust_env=False,
        )


def create_proxy_agent(resource_url: str, proxy_options: ProxyOptions) -> ProxyAgent:
    """
    Select the proxy variant for ``resource_url`` and attach credentials.

    Credentials embedded in the proxy URL win; otherwise ``username`` and
    ``password`` are used when both are set. A resource URL starting with
    ``https`` gets the CONNECT tunnel variant.
    """
    if not isinstance(resource_url, str):
        raise ProxyFetchInitializationTypeError(
            "resource_url must be of type str",
            sdk_details={"resource_url": resource_url},
        )

    proxy_options = ProxyOptions.from_value(proxy_options) or ProxyOptions()
    proxy_options.validate()
    options = url_to_http_options(proxy_options.proxy_url)
    if options.scheme not in SUPPORTED_PROXY_SCHEMES:
        raise ProxyFetchInitializationError(
            f"proxy_url (unsupported scheme {options.scheme!r})",
            sdk_details={"proxy_url": strip_credentials(proxy_options.proxy_url)},
        )

    auth = options.auth
    if not auth and proxy_options.username and proxy_options.password:
        logger.debug("username and password not set in proxy url, using credentials passed in the options")
        auth = f"{proxy_options.username}:{proxy_options.password}"

    if proxy_options.reject_unauthorized is False:
        logger.warning("create_proxy_agent: reject_unauthorized is set to False, TLS certificates will not be verified")

    kind = ProxyKind.HTTPS if resource_url.startswith("https") else ProxyKind.HTTP
    return ProxyAgent(
        kind=kind,
        proxy_url=strip_credentials(proxy_options.proxy_url),
        options=options,
        auth=auth,
        reject_unauthorized=proxy_options.reject_unauthorized,
    )


class ProxyFetch:
    """Fetch wrapper that routes every request through one configured proxy."""

    def __init__(
        self,
        proxy_options: ProxyOptions | dict[str, Any] | None = None,
        *,
        settings: HttpSettings | None = None,
        client_factory: ClientFactory | None = None,
    ):
        options = ProxyOptions.from_value(proxy_options) or ProxyOptions()
        options.validate()
        if url_to_http_options(options.proxy_url).auth is None and not (options.username and options.password):
            logger.debug("ProxyFetch: username or password not set, proxy is anonymous")
        self.proxy_options = options
        self.settings = settings or load_http_settings()
        self._client_factory = client_factory or create_default_http_client

    def fetch(self, resource: str | HttpRequest, **options: Any) -> HttpResponse:
        request = HttpRequest.build(resource, options)
        agent = create_proxy_agent(request.url, self.proxy_options)
        logger.debug("ProxyFetch: %s %s via %s proxy %s", request.method, request.url, agent.kind.value, agent.proxy_url)
        client = self._client_factory(self.settings, agent=agent)
        try:
            return client.request(request)
        finally:
            client.close()


__all__ = ["ProxyAgent", "ProxyFetch", "ProxyKind", "create_proxy_agent"]
