# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
corenetworking package entrypoint.

HTTP client augmentation for service integrations: retry with exponential
backoff, forward proxy routing with credentials, a proxy-aware fetch facade
and an NTLM challenge/response helper. HTTP behavior is abstracted behind an
injectable client interface backed by httpx.
"""

from .config import EnvConfigStore, HttpSettings, load_http_settings
from .errors import (
    ConfigurationError,
    ErrorCategory,
    NetworkingError,
    NtlmFetchInitializationError,
    NtlmNegotiateNoAgentError,
    ProxyFetchInitializationError,
    ProxyFetchInitializationTypeError,
    RequestCancelledError,
    TransportError,
)
from .http import (
    Fetch,
    HttpClient,
    HttpExponentialBackoff,
    HttpRequest,
    HttpResponse,
    HttpxClient,
    NtlmAuthOptions,
    NtlmFetch,
    ProxyAgent,
    ProxyFetch,
    ProxyKind,
    ProxyOptions,
    RetryConfig,
    create_default_http_client,
    create_fetch,
    create_proxy_agent,
    fetch_with_ntlm,
    get_proxy_options_from_config,
    retrying_fetch,
)
from .log import setup_logging
from .version import __version__

__all__ = [
    "ConfigurationError",
    "EnvConfigStore",
    "ErrorCategory",
    "Fetch",
    "HttpClient",
    "HttpExponentialBackoff",
    "HttpRequest",
    "HttpResponse",
    "HttpSettings",
    "HttpxClient",
    "NetworkingError",
    "NtlmAuthOptions",
    "NtlmFetch",
    "NtlmFetchInitializationError",
    "NtlmNegotiateNoAgentError",
    "ProxyAgent",
    "ProxyFetch",
    "ProxyFetchInitializationError",
    "ProxyFetchInitializationTypeError",
    "ProxyKind",
    "ProxyOptions",
    "RequestCancelledError",
    "RetryConfig",
    "TransportError",
    "create_default_http_client",
    "create_fetch",
    "create_proxy_agent",
    "fetch_with_ntlm",
    "get_proxy_options_from_config",
    "load_http_settings",
    "retrying_fetch",
    "setup_logging",
    "__version__",
]
