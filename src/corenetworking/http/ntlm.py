# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
NTLM challenge/response on top of the fetch layer.

NTLM authenticates the connection rather than the request, so the first request,
the Type-1 negotiate and the Type-3 response all go through one keep-alive
client. Message construction is delegated to an NtlmCodec; the default one
is backed by pyspnego.
"""

from __future__ import annotations

import base64
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field, replace
from typing import Any, Protocol

import spnego

from ..config import HttpSettings, load_http_settings
from ..errors import NtlmFetchInitializationError, NtlmNegotiateNoAgentError
from .client import ClientFactory, HttpClient, create_default_http_client
from .models import HttpRequest, HttpResponse

logger = logging.getLogger(__name__)

NTLM_SCHEME = "ntlm"


@dataclass(frozen=True)
class NtlmAuthOptions:
    """Active Directory credentials; ``username``, ``password`` and ``domain`` are required."""

    username: str | None = None
    password: str | None = field(default=None, repr=False)
    domain: str | None = None
    workstation: str = ""

    def validate(self) -> None:
        missing = [name for name in ("username", "password", "domain") if not getattr(self, name)]
        if missing:
            raise NtlmFetchInitializationError(
                ", ".join(missing),
                sdk_details={"username": self.username, "domain": self.domain, "workstation": self.workstation},
            )

    @classmethod
    def from_value(cls, value: NtlmAuthOptions | Mapping[str, Any] | None) -> NtlmAuthOptions:
        if isinstance(value, NtlmAuthOptions):
            return value
        return cls(**dict(value or {}))


class NtlmCodec(Protocol):
    """Builds NTLM ``Authorization`` header values for one handshake."""

    def negotiate(self) -> str: ...

    def authenticate(self, challenge: str) -> str: ...


CodecFactory = Callable[[NtlmAuthOptions], NtlmCodec]


def offers_ntlm(www_authenticate: str | None) -> bool:
    """Return True when a ``WWW-Authenticate`` value lists the NTLM scheme."""
    if not www_authenticate:
        return False
    return any(part.strip().split(" ", 1)[0].lower() == NTLM_SCHEME for part in www_authenticate.split(","))


def extract_ntlm_token(www_authenticate: str | None) -> str | None:
    """Return the base64 NTLM token from a ``WWW-Authenticate`` value, if any."""
    if not www_authenticate:
        return None
    for part in www_authenticate.split(","):
        scheme, _, token = part.strip().partition(" ")
        if scheme.lower() == NTLM_SCHEME and token.strip():
            return token.strip()
    return None


class SpnegoNtlmCodec:
    """NtlmCodec backed by a pyspnego NTLM client context."""

    def __init__(self, auth_options: NtlmAuthOptions):
        self._context = spnego.client(
            username=f"{auth_options.domain}\\{auth_options.username}",
            password=auth_options.password,
            protocol="ntlm",
        )

    def negotiate(self) -> str:
        token = self._context.step()
        return f"NTLM {base64.b64encode(token).decode('ascii')}"

    def authenticate(self, challenge: str) -> str:
        token = extract_ntlm_token(challenge)
        if token is None:
            raise ValueError("WWW-Authenticate header carries no NTLM challenge")
        response = self._context.step(base64.b64decode(token))
        return f"NTLM {base64.b64encode(response).decode('ascii')}"


class NtlmFetch:
    """Fetch wrapper that completes an NTLM handshake when the server asks for one."""

    def __init__(
        self,
        auth_options: NtlmAuthOptions | Mapping[str, Any] | None = None,
        *,
        settings: HttpSettings | None = None,
        client_factory: ClientFactory | None = None,
        codec_factory: CodecFactory | None = None,
    ):
        options = NtlmAuthOptions.from_value(auth_options)
        logger.debug("NtlmFetch: username=%s domain=%s workstation=%s", options.username, options.domain, options.workstation)
        options.validate()
        self.auth_options = options
        self.settings = settings or load_http_settings()
        self._client_factory = client_factory or create_default_http_client
        self._codec_factory = codec_factory or SpnegoNtlmCodec

    def negotiate(self, request: HttpRequest, client: HttpClient | None, codec: NtlmCodec) -> str | None:
        """Send the Type-1 message over ``client`` and return the server's ``WWW-Authenticate`` value."""
        if client is None or not getattr(client, "keep_alive", False):
            logger.debug("negotiate: no keep-alive client for %s", request.url)
            raise NtlmNegotiateNoAgentError(request.url, sdk_details={"url": request.url})

        negotiate_request = HttpRequest(
            url=request.url,
            method="GET",
            headers={"Connection": "keep-alive", "Authorization": codec.negotiate()},
            timeout=request.timeout,
            allow_redirects=False,
        )
        response = client.request(negotiate_request)
        return response.headers.get("www-authenticate")

    def fetch(self, resource: str | HttpRequest, **options: Any) -> HttpResponse:
        request = HttpRequest.build(resource, options)
        client = self._client_factory(self.settings, keep_alive=True)
        try:
            response = client.request(request)
            if response.ok:
                logger.debug("http resource %s does not require auth, skipping", request.url)
                return response

            if response.status != 401:
                logger.debug("http resource %s did not return 401 Unauthorized, skipping", request.url)
                return response

            if not offers_ntlm(response.headers.get("www-authenticate")):
                logger.debug("http resource %s did not have a 'WWW-Authenticate: NTLM' header, skipping", request.url)
                return response

            codec = self._codec_factory(self.auth_options)
            challenge = self.negotiate(request, client, codec)
            if extract_ntlm_token(challenge) is None:
                logger.debug("http resource %s sent no NTLM Type-2 challenge, skipping", request.url)
                return response

            headers = dict(request.headers or {})
            headers["Authorization"] = codec.authenticate(challenge)
            headers.setdefault("Connection", "keep-alive")
            return client.request(replace(request, headers=headers))
        finally:
            client.close()


def fetch_with_ntlm(
    resource: str | HttpRequest,
    options: Mapping[str, Any] | None,
    auth_options: NtlmAuthOptions | Mapping[str, Any],
    **kwargs: Any,
) -> HttpResponse:
    """One-shot NTLM fetch; ``kwargs`` are passed to NtlmFetch."""
    return NtlmFetch(auth_options, **kwargs).fetch(resource, **dict(options or {}))


__all__ = [
    "NtlmAuthOptions",
    "NtlmCodec",
    "NtlmFetch",
    "SpnegoNtlmCodec",
    "extract_ntlm_token",
    "fetch_with_ntlm",
    "offers_ntlm",
]
