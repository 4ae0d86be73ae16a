# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Error taxonomy and exception helpers."""

from __future__ import annotations

import socket
import ssl as ssl_module
from enum import Enum
from typing import Any

import httpx


class ErrorCategory(str, Enum):
    TIMEOUT = "TIMEOUT"
    SSL_ERROR = "SSL_ERROR"
    CONNECTION_ERROR = "CONNECTION_ERROR"
    PROXY_ERROR = "PROXY_ERROR"
    DNS_ERROR = "DNS_ERROR"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


def categorize_exception(exc: BaseException) -> ErrorCategory:
    """
    Map Python/httpx exceptions to ErrorCategory.
    """
    if isinstance(exc, httpx.TimeoutException):
        return ErrorCategory.TIMEOUT

    if isinstance(exc, httpx.ProxyError):
        return ErrorCategory.PROXY_ERROR

    if isinstance(exc, httpx.ConnectError):
        # httpx wraps httpcore which wraps the socket/ssl error; look down the chain.
        cause = exc.__cause__
        depth = 0
        while cause is not None and depth < 5:
            if isinstance(cause, (ssl_module.SSLError, ssl_module.CertificateError)):
                return ErrorCategory.SSL_ERROR
            if isinstance(cause, (socket.gaierror, socket.herror)):
                return ErrorCategory.DNS_ERROR
            cause = cause.__cause__ or cause.__context__
            depth += 1

    if isinstance(exc, (httpx.ConnectError, httpx.RemoteProtocolError, httpx.NetworkError)):
        return ErrorCategory.CONNECTION_ERROR

    if isinstance(exc, (ssl_module.SSLError, ssl_module.CertificateError)):
        return ErrorCategory.SSL_ERROR

    if isinstance(exc, (socket.gaierror, socket.herror)):
        return ErrorCategory.DNS_ERROR

    if isinstance(exc, ConnectionError):
        return ErrorCategory.CONNECTION_ERROR

    return ErrorCategory.UNKNOWN_ERROR


class NetworkingError(Exception):
    """
    Base class for corenetworking errors.

    ``code`` is a stable identifier for callers that branch on error kinds;
    ``sdk_details`` carries the offending inputs (never passwords).
    """

    code = "ERROR_NETWORKING"
    message_template = "{}"

    def __init__(self, message_values: str = "", *, sdk_details: dict[str, Any] | None = None):
        self.message_values = message_values
        self.sdk_details = dict(sdk_details or {})
        super().__init__(f"[{self.code}] {self.message_template.format(message_values)}")


class ConfigurationError(NetworkingError):
    """Raised at construction time for missing or malformed options."""

    code = "ERROR_CONFIGURATION"


class ProxyFetchInitializationError(ConfigurationError):
    code = "ERROR_PROXY_FETCH_INITIALIZATION"
    message_template = "Proxy fetch initialization error(s). Missing arguments: {}"


class ProxyFetchInitializationTypeError(ConfigurationError):
    code = "ERROR_PROXY_FETCH_INITIALIZATION_TYPE"
    message_template = "Proxy fetch initialization error(s). Type error: {}"


class NtlmFetchInitializationError(ConfigurationError):
    code = "ERROR_NTLM_FETCH_INITIALIZATION"
    message_template = "NTLM fetch initialization error(s). Missing arguments: {}"


class NtlmNegotiateNoAgentError(NetworkingError):
    code = "ERROR_NTLM_NEGOTIATE_NO_AGENT"
    message_template = "NTLM negotiation requires a keep-alive connection. {}"


class RequestCancelledError(NetworkingError):
    code = "ERROR_REQUEST_CANCELLED"
    message_template = "Request cancelled before it was sent: {}"


class TransportError(NetworkingError):
    """A network-level failure while dispatching a request."""

    code = "ERROR_TRANSPORT"

    def __init__(self, message_values: str = "", *, category: ErrorCategory = ErrorCategory.UNKNOWN_ERROR, sdk_details: dict[str, Any] | None = None):
        self.category = category
        super().__init__(message_values, sdk_details=sdk_details)

    @classmethod
    def from_exception(cls, exc: BaseException, *, url: str | None = None) -> "TransportError":
        return cls(
            str(exc) or exc.__class__.__name__,
            category=categorize_exception(exc),
            sdk_details={"url": url, "error_type": exc.__class__.__name__},
        )


__all__ = [
    "ConfigurationError",
    "ErrorCategory",
    "NetworkingError",
    "NtlmFetchInitializationError",
    "NtlmNegotiateNoAgentError",
    "ProxyFetchInitializationError",
    "ProxyFetchInitializationTypeError",
    "RequestCancelledError",
    "TransportError",
    "categorize_exception",
]
