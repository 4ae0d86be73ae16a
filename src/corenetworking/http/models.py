# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""HTTP request/response data models used across corenetworking."""

from __future__ import annotations

import json
import threading
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

import httpx

from ..config import HttpSettings
from ..errors import ProxyFetchInitializationError
from .url import is_absolute_url, url_to_http_options

Headers = dict[str, str]

_REQUEST_OPTION_NAMES = ("method", "headers", "body", "timeout", "allow_redirects", "cancel_event")


@dataclass
class HttpRequest:
    """Normalized request representation consumed by HttpClient implementations."""

    url: str
    method: str = "GET"
    headers: Headers | None = None
    body: bytes | str | None = None
    timeout: float | None = None
    allow_redirects: bool = True
    cancel_event: threading.Event | None = None

    @classmethod
    def build(cls, resource: str | HttpRequest, options: Mapping[str, Any] | None = None) -> HttpRequest:
        """
        Build a request from a fetch-style resource plus keyword options.

        ``resource`` may already be an HttpRequest, in which case ``options``
        override its fields. Unknown option names raise TypeError.
        """
        opts = dict(options or {})
        unknown = sorted(set(opts) - set(_REQUEST_OPTION_NAMES))
        if unknown:
            raise TypeError(f"Unsupported request option(s): {', '.join(unknown)}")

        if isinstance(resource, HttpRequest):
            base = {name: getattr(resource, name) for name in _REQUEST_OPTION_NAMES}
            url = resource.url
        else:
            base = {}
            url = resource

        base.update(opts)
        headers = base.get("headers")
        if headers is not None:
            base["headers"] = dict(headers)
        method = base.get("method")
        if method:
            base["method"] = str(method).upper()
        return cls(url=url, **base)

    def is_cancelled(self) -> bool:
        return self.cancel_event is not None and self.cancel_event.is_set()


@dataclass
class HttpResponse:
    """
    Fetch-style HTTP response.

    Upstream error statuses are ordinary values here: ``ok`` is False for
    anything outside 200..299 and nothing is raised.
    """

    status: int
    reason: str = ""
    headers: httpx.Headers = field(default_factory=httpx.Headers)
    content: bytes = b""
    url: str | None = None
    encoding: str = "utf-8"
    meta: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not isinstance(self.headers, httpx.Headers):
            self.headers = httpx.Headers(self.headers or {})

    @property
    def ok(self) -> bool:
        return 200 <= self.status <= 299

    @property
    def status_text(self) -> str:
        return self.reason

    @property
    def text(self) -> str:
        try:
            return self.content.decode(self.encoding, errors="replace")
        except LookupError:
            return self.content.decode("utf-8", errors="replace")

    def json(self) -> Any:
        return json.loads(self.text)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> HttpResponse:
        """Helper to build a response from a plain mapping (stubs, recorded fixtures)."""
        raw_body = data.get("body")
        if isinstance(raw_body, (bytes, bytearray, memoryview)):
            content = bytes(raw_body)
        elif isinstance(raw_body, str):
            content = raw_body.encode("utf-8")
        elif raw_body is None:
            content = b""
        else:
            content = json.dumps(raw_body).encode("utf-8")

        return cls(
            status=int(data.get("status", 200)),
            reason=str(data.get("reason") or ""),
            headers=httpx.Headers(data.get("headers") or {}),
            content=content,
            url=data.get("url"),
            meta={k: v for k, v in data.items() if k not in {"status", "reason", "headers", "body", "url"}},
        )


@dataclass(frozen=True)
class ProxyOptions:
    """
    Forward proxy settings.

    ``username``/``password`` are only used when ``proxy_url`` carries no
    credentials of its own. ``reject_unauthorized=False`` relaxes TLS
    verification on the proxy connection and must be opted into.
    """

    proxy_url: str | None = None
    username: str | None = None
    password: str | None = field(default=None, repr=False)
    reject_unauthorized: bool = True

    def validate(self) -> None:
        """Raise ProxyFetchInitializationError unless ``proxy_url`` is an absolute URL."""
        if not self.proxy_url:
            raise ProxyFetchInitializationError("proxy_url", sdk_details={"proxy_url": self.proxy_url})
        if not isinstance(self.proxy_url, str) or not is_absolute_url(self.proxy_url):
            raise ProxyFetchInitializationError(
                "proxy_url (must be an absolute URL)",
                sdk_details={"proxy_url": self.proxy_url},
            )
        try:
            url_to_http_options(self.proxy_url)
        except ValueError as exc:
            raise ProxyFetchInitializationError(f"proxy_url ({exc})", sdk_details={"proxy_url": self.proxy_url}) from exc

    @classmethod
    def from_value(cls, value: ProxyOptions | Mapping[str, Any] | None) -> ProxyOptions | None:
        if value is None or isinstance(value, ProxyOptions):
            return value
        return cls(**dict(value))


@dataclass(frozen=True)
class RetryConfig:
    """Retry policy: at most ``max_retries`` retries spaced ``initial_delay_ms * 2**n`` apart."""

    max_retries: int = 3
    initial_delay_ms: float = 100.0
    proxy: ProxyOptions | None = None

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError("max_retries must be a non-negative integer")
        if self.initial_delay_ms <= 0:
            raise ValueError("initial_delay_ms must be a positive number")

    @classmethod
    def from_settings(cls, settings: HttpSettings, *, proxy: ProxyOptions | None = None) -> RetryConfig:
        """Build a retry config from the shared HttpSettings."""
        return cls(
            max_retries=max(0, settings.max_retries),
            initial_delay_ms=settings.initial_delay_ms,
            proxy=proxy,
        )

    @classmethod
    def from_value(cls, value: RetryConfig | Mapping[str, Any] | None) -> RetryConfig:
        """Accept a RetryConfig, a mapping of its fields, or None for defaults."""
        if isinstance(value, RetryConfig):
            return value
        data = dict(value or {})
        return cls(
            max_retries=data.get("max_retries", cls.max_retries),
            initial_delay_ms=data.get("initial_delay_ms", cls.initial_delay_ms),
            proxy=ProxyOptions.from_value(data.get("proxy")),
        )


@dataclass(frozen=True)
class AttemptOutcome:
    """What a single dispatch produced; consumed by the retry decision."""

    attempt_index: int
    transport_error: BaseException | None = None
    response: HttpResponse | None = None

    def describe(self) -> str:
        if self.transport_error is not None:
            return str(self.transport_error) or self.transport_error.__class__.__name__
        if self.response is not None:
            return f"{self.response.status} {self.response.reason}".strip()
        return "no outcome"
