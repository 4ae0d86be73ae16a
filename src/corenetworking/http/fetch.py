# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Fetch facade: picks a direct or proxied transport for every call."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from ..config import (
    PROXY_PASSWORD_KEY,
    PROXY_URL_KEY,
    PROXY_USERNAME_KEY,
    ConfigStore,
    EnvConfigStore,
    HttpSettings,
    load_http_settings,
)
from .client import ClientFactory, create_default_http_client
from .env_proxy import EnvProxyResolver, ProxyResolver
from .models import HttpRequest, HttpResponse, ProxyOptions
from .proxy import ProxyFetch

logger = logging.getLogger(__name__)


def get_proxy_options_from_config(store: ConfigStore | None = None) -> ProxyOptions | None:
    """Build ProxyOptions from the config store, or None when ``proxy.url`` is unset."""
    store = store if store is not None else EnvConfigStore()
    proxy_url = store.get(PROXY_URL_KEY)
    if not proxy_url:
        logger.debug("get_proxy_options_from_config: %s not set, proxy will not be used", PROXY_URL_KEY)
        return None

    username = store.get(PROXY_USERNAME_KEY)
    password = store.get(PROXY_PASSWORD_KEY)
    logger.debug("get_proxy_options_from_config: %s=%s, %s=%s", PROXY_URL_KEY, proxy_url, PROXY_USERNAME_KEY, username)
    if not username or not password:
        logger.debug("get_proxy_options_from_config: username or password not set, proxy is anonymous")
        return ProxyOptions(proxy_url=proxy_url)
    return ProxyOptions(proxy_url=proxy_url, username=username, password=password)


class Fetch:
    """
    Drop-in fetch callable: ``fetch(resource, **options) -> HttpResponse``.

    Proxy selection, first match wins:
    1. options passed to the constructor
    2. ``proxy.url``/``proxy.username``/``proxy.password`` from the config store
    3. the environment resolver, asked again on every call with the target URL
    4. no proxy
    """

    Request = HttpRequest
    Response = HttpResponse
    Headers = httpx.Headers

    def __init__(
        self,
        proxy_options: ProxyOptions | dict[str, Any] | None = None,
        *,
        config_store: ConfigStore | None = None,
        env_resolver: ProxyResolver | None = None,
        client_factory: ClientFactory | None = None,
        settings: HttpSettings | None = None,
    ):
        self.settings = settings or load_http_settings()
        explicit = ProxyOptions.from_value(proxy_options)
        self.proxy_options = explicit if explicit is not None else get_proxy_options_from_config(config_store)
        if self.proxy_options is not None:
            self.proxy_options.validate()
        self.env_resolver = env_resolver if env_resolver is not None else EnvProxyResolver()
        self._client_factory = client_factory or create_default_http_client

    def resolve_proxy(self, url: str) -> ProxyOptions | None:
        if self.proxy_options is not None:
            return self.proxy_options
        if not isinstance(url, str):
            return None
        proxy_url = self.env_resolver.proxy_for_url(url)
        if proxy_url:
            logger.debug("Fetch: using proxy %s from the environment for %s", proxy_url, url)
            return ProxyOptions(proxy_url=proxy_url)
        return None

    def __call__(self, resource: str | HttpRequest, **options: Any) -> HttpResponse:
        request = HttpRequest.build(resource, options)
        proxy_options = self.resolve_proxy(request.url)
        if proxy_options is not None:
            proxy_fetch = ProxyFetch(proxy_options, settings=self.settings, client_factory=self._client_factory)
            return proxy_fetch.fetch(request)

        client = self._client_factory(self.settings)
        try:
            return client.request(request)
        finally:
            client.close()


def create_fetch(
    proxy_options: ProxyOptions | dict[str, Any] | None = None,
    *,
    config_store: ConfigStore | None = None,
    env_resolver: ProxyResolver | None = None,
    client_factory: ClientFactory | None = None,
    settings: HttpSettings | None = None,
) -> Fetch:
    """Return a Fetch callable for the given (or discovered) proxy settings."""
    return Fetch(
        proxy_options,
        config_store=config_store,
        env_resolver=env_resolver,
        client_factory=client_factory,
        settings=settings,
    )


__all__ = ["Fetch", "create_fetch", "get_proxy_options_from_config"]
