# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""HTTP client exports."""

from .adapters import StubClientFactory, StubHttpClient
from .client import ClientFactory, HttpClient, create_default_http_client
from .env_proxy import EnvProxyResolver, ProxyResolver
from .fetch import Fetch, create_fetch, get_proxy_options_from_config
from .httpx_client import HttpxClient
from .models import HttpRequest, HttpResponse, ProxyOptions, RetryConfig
from .ntlm import NtlmAuthOptions, NtlmCodec, NtlmFetch, SpnegoNtlmCodec, fetch_with_ntlm
from .proxy import ProxyAgent, ProxyFetch, ProxyKind, create_proxy_agent
from .retry import (
    HttpExponentialBackoff,
    build_default_retry_config,
    default_retry_delay,
    default_retry_on,
    honor_retry_after,
    parse_retry_after,
    retrying_fetch,
    status_retry_on,
)
from .url import HttpOptions, url_to_http_options

__all__ = [
    "ClientFactory",
    "EnvProxyResolver",
    "Fetch",
    "HttpClient",
    "HttpExponentialBackoff",
    "HttpOptions",
    "HttpRequest",
    "HttpResponse",
    "HttpxClient",
    "NtlmAuthOptions",
    "NtlmCodec",
    "NtlmFetch",
    "ProxyAgent",
    "ProxyFetch",
    "ProxyKind",
    "ProxyOptions",
    "ProxyResolver",
    "RetryConfig",
    "SpnegoNtlmCodec",
    "StubClientFactory",
    "StubHttpClient",
    "build_default_retry_config",
    "create_default_http_client",
    "create_fetch",
    "create_proxy_agent",
    "default_retry_delay",
    "default_retry_on",
    "fetch_with_ntlm",
    "get_proxy_options_from_config",
    "honor_retry_after",
    "parse_retry_after",
    "retrying_fetch",
    "status_retry_on",
    "url_to_http_options",
]
