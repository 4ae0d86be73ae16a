# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""httpx-backed HttpClient implementation."""

from __future__ import annotations

import re

import httpx

from ..config import HttpSettings, load_http_settings
from ..errors import TransportError
from .models import HttpRequest, HttpResponse

KEEP_ALIVE_LIMITS = httpx.Limits(max_connections=1, max_keepalive_connections=1)

# httpcore reports a refused CONNECT as "<status> <reason>".
_PROXY_STATUS_RE = re.compile(r"^(\d{3})(?:\s+(.*))?$")


def proxy_refusal_response(exc: httpx.ProxyError, url: str) -> HttpResponse | None:
    """Turn a CONNECT rejected by the proxy into the response the proxy sent, if the status is known."""
    match = _PROXY_STATUS_RE.match(str(exc).strip())
    if match is None:
        return None
    return HttpResponse(
        status=int(match.group(1)),
        reason=(match.group(2) or "").strip(),
        url=url,
        meta={"proxy_connect_refused": True},
    )


class HttpxClient:
    """Synchronous httpx client wrapper."""

    def __init__(
        self,
        settings: HttpSettings | None = None,
        client: httpx.Client | None = None,
        *,
        transport: httpx.BaseTransport | None = None,
        keep_alive: bool = False,
    ):
        self.settings = settings or load_http_settings()
        self.keep_alive = keep_alive
        # trust_env is off: proxy discovery from the environment happens in the fetch layer.
        self._client = client or httpx.Client(
            follow_redirects=self.settings.allow_redirects,
            timeout=self.settings.timeout,
            verify=self.settings.verify_ssl,
            transport=transport,
            limits=KEEP_ALIVE_LIMITS if keep_alive else httpx.Limits(),
            trust_env=False,
        )

    def request(self, request: HttpRequest) -> HttpResponse:
        headers = dict(request.headers or {})
        headers.setdefault("User-Agent", self.settings.user_agent)
        if self.keep_alive:
            headers.setdefault("Connection", "keep-alive")

        max_body_bytes = self.settings.max_body_bytes
        if max_body_bytes <= 0:
            max_body_bytes = 16 * 1024 * 1024

        timeout = request.timeout if request.timeout is not None else self.settings.timeout

        try:
            with self._client.stream(
                request.method,
                request.url,
                headers=headers,
                content=request.body,
                timeout=timeout,
                follow_redirects=request.allow_redirects,
            ) as resp:
                content = bytearray()
                truncated = False
                for chunk in resp.iter_bytes():
                    if not chunk:
                        continue
                    remaining = max_body_bytes - len(content)
                    if remaining <= 0:
                        truncated = True
                        break
                    if len(chunk) > remaining:
                        content.extend(chunk[:remaining])
                        truncated = True
                        break
                    content.extend(chunk)
        except httpx.ProxyError as exc:
            response = proxy_refusal_response(exc, request.url)
            if response is None:
                raise TransportError.from_exception(exc, url=request.url) from exc
            return response
        except httpx.HTTPError as exc:
            raise TransportError.from_exception(exc, url=request.url) from exc

        return HttpResponse(
            status=resp.status_code,
            reason=resp.reason_phrase,
            headers=httpx.Headers(resp.headers),
            content=bytes(content),
            url=str(resp.url),
            encoding=resp.encoding or "utf-8",
            meta={
                "body_truncated": truncated,
                "body_bytes_read": len(content),
                "body_bytes_limit": max_body_bytes,
            },
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> HttpxClient:
        return self

    def __exit__(self, _exc_type, _exc, _tb) -> None:  # noqa: ANN001
        self.close()
