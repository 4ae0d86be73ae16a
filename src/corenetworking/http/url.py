# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""URL helpers shared by the proxy and fetch layers."""

from __future__ import annotations

from dataclasses import dataclass, field
from urllib.parse import unquote, urlsplit, urlunsplit


@dataclass(frozen=True)
class HttpOptions:
    """Structural parts of a URL, in the shape connection setup needs them."""

    scheme: str
    hostname: str
    port: int | None
    pathname: str
    search: str
    hash: str
    href: str
    auth: str | None = field(default=None, repr=False)

    @property
    def credentials(self) -> tuple[str, str] | None:
        """``auth`` split back into (username, password)."""
        return split_auth(self.auth)


def split_auth(auth: str | None) -> tuple[str, str] | None:
    """Split a ``"user:password"`` string; the password may itself contain colons."""
    if not auth:
        return None
    username, _, password = auth.partition(":")
    return username, password


def is_absolute_url(url: str) -> bool:
    """Return True when ``url`` has both a scheme and a host."""
    try:
        parts = urlsplit(str(url or ""))
    except ValueError:
        return False
    return bool(parts.scheme and parts.hostname)


def url_to_http_options(url: str) -> HttpOptions:
    """
    Parse ``url`` into HttpOptions.

    Embedded credentials are percent-decoded, so ``domain%5Cadmin`` becomes
    ``domain\\admin``. ``auth`` is only set when both username and password
    are present. Raises ValueError for URLs urllib cannot split (bad ports,
    malformed IPv6 hosts).
    """
    parts = urlsplit(url)
    port = parts.port

    auth = None
    if parts.username and parts.password:
        auth = f"{unquote(parts.username)}:{unquote(parts.password)}"

    return HttpOptions(
        scheme=parts.scheme.lower(),
        hostname=parts.hostname or "",
        port=port,
        pathname=parts.path or "/",
        search=f"?{parts.query}" if parts.query else "",
        hash=f"#{parts.fragment}" if parts.fragment else "",
        href=strip_credentials(url),
        auth=auth,
    )


def strip_credentials(url: str) -> str:
    """Return ``url`` with any ``user:password@`` userinfo removed."""
    parts = urlsplit(url)
    if "@" not in parts.netloc:
        return url
    netloc = parts.netloc.rpartition("@")[2]
    return urlunsplit((parts.scheme, netloc, parts.path, parts.query, parts.fragment))


__all__ = ["HttpOptions", "is_absolute_url", "split_auth", "strip_credentials", "url_to_http_options"]
