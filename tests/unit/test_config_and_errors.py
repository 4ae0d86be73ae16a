# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

import logging
import socket
import ssl

import httpx
import pytest

from corenetworking import config, log
from corenetworking.config import DEFAULT_USER_AGENT, EnvConfigStore, HttpSettings
from corenetworking.errors import (
    ConfigurationError,
    ErrorCategory,
    NtlmFetchInitializationError,
    ProxyFetchInitializationError,
    TransportError,
    categorize_exception,
)


def test_http_settings_env_overrides(monkeypatch):
    monkeypatch.setenv("CORENETWORKING_HTTP_TIMEOUT", "5.5")
    monkeypatch.setenv("CORENETWORKING_HTTP_RETRIES", "0")
    monkeypatch.setenv("CORENETWORKING_HTTP_INITIAL_DELAY_MS", "250")
    monkeypatch.setenv("CORENETWORKING_HTTP_MAX_BODY_BYTES", "1024")
    monkeypatch.setenv("CORENETWORKING_USER_AGENT", "CustomAgent/1.0")
    monkeypatch.setenv("CORENETWORKING_HTTP_REDIRECTS", "false")
    monkeypatch.setenv("CORENETWORKING_HTTP_VERIFY_SSL", "0")

    settings = config.load_http_settings()

    assert settings.timeout == 5.5
    assert settings.max_retries == 0
    assert settings.initial_delay_ms == 250
    assert settings.max_body_bytes == 1024
    assert settings.user_agent == "CustomAgent/1.0"
    assert settings.allow_redirects is False
    assert settings.verify_ssl is False


def test_http_settings_invalid_env_fall_back(monkeypatch):
    monkeypatch.setenv("CORENETWORKING_HTTP_TIMEOUT", "not-a-number")
    monkeypatch.setenv("CORENETWORKING_HTTP_RETRIES", "-2")
    monkeypatch.setenv("CORENETWORKING_HTTP_INITIAL_DELAY_MS", "0")
    monkeypatch.setenv("CORENETWORKING_HTTP_MAX_BODY_BYTES", "lots")
    monkeypatch.delenv("CORENETWORKING_USER_AGENT", raising=False)

    settings = config.load_http_settings()

    assert settings.timeout == HttpSettings.timeout
    assert settings.max_retries == HttpSettings.max_retries
    assert settings.initial_delay_ms == HttpSettings.initial_delay_ms
    assert settings.max_body_bytes == HttpSettings.max_body_bytes
    assert settings.user_agent == DEFAULT_USER_AGENT


def test_load_http_settings_reads_env_at_call_time(monkeypatch):
    monkeypatch.setenv("CORENETWORKING_HTTP_TIMEOUT", "7.7")
    assert config.load_http_settings().timeout == 7.7
    monkeypatch.setenv("CORENETWORKING_HTTP_TIMEOUT", "8.8")
    assert config.load_http_settings().timeout == 8.8


def test_env_config_store_maps_dotted_keys():
    store = EnvConfigStore({"CORENETWORKING_PROXY_URL": "http://proxy:3128", "CORENETWORKING_PROXY_USERNAME": ""})
    assert store.get("proxy.url") == "http://proxy:3128"
    assert store.get("proxy.username") is None
    assert store.get("proxy.password") is None


def test_setup_logging_uses_env_level(monkeypatch):
    calls = {}
    monkeypatch.setenv("CORENETWORKING_LOG_LEVEL", "debug")
    monkeypatch.setattr(logging, "basicConfig", lambda **kwargs: calls.update(kwargs))

    log.setup_logging()
    assert calls["level"] == logging.DEBUG

    log.setup_logging("error")
    assert calls["level"] == logging.ERROR


def test_default_log_level_falls_back(monkeypatch):
    monkeypatch.delenv("CORENETWORKING_LOG_LEVEL", raising=False)
    monkeypatch.setenv("LOG_LEVEL", "info")
    assert log.default_log_level() == "INFO"
    monkeypatch.delenv("LOG_LEVEL")
    assert log.default_log_level() == "WARNING"


def test_error_messages_carry_code_and_values():
    err = ProxyFetchInitializationError("proxy_url", sdk_details={"proxy_url": None})
    assert isinstance(err, ConfigurationError)
    assert err.code == "ERROR_PROXY_FETCH_INITIALIZATION"
    assert str(err) == "[ERROR_PROXY_FETCH_INITIALIZATION] Proxy fetch initialization error(s). Missing arguments: proxy_url"
    assert err.sdk_details == {"proxy_url": None}

    ntlm = NtlmFetchInitializationError("username, password, domain")
    assert "username, password, domain" in str(ntlm)


def test_categorize_exception_variants():
    assert categorize_exception(httpx.ReadTimeout("slow")) is ErrorCategory.TIMEOUT
    assert categorize_exception(httpx.ProxyError("proxy down")) is ErrorCategory.PROXY_ERROR
    assert categorize_exception(httpx.ConnectError("refused")) is ErrorCategory.CONNECTION_ERROR
    assert categorize_exception(ssl.SSLError("bad cert")) is ErrorCategory.SSL_ERROR
    assert categorize_exception(socket.gaierror("no such host")) is ErrorCategory.DNS_ERROR
    assert categorize_exception(RuntimeError("boom")) is ErrorCategory.UNKNOWN_ERROR


def test_categorize_connect_error_looks_down_the_cause_chain():
    try:
        try:
            raise socket.gaierror(-2, "Name or service not known")
        except socket.gaierror as inner:
            raise httpx.ConnectError("lookup failed") from inner
    except httpx.ConnectError as exc:
        assert categorize_exception(exc) is ErrorCategory.DNS_ERROR


def test_transport_error_from_exception():
    err = TransportError.from_exception(httpx.ConnectTimeout("timed out"), url="http://example")
    assert err.category is ErrorCategory.TIMEOUT
    assert err.sdk_details == {"url": "http://example", "error_type": "ConnectTimeout"}
    assert "timed out" in str(err)


@pytest.mark.parametrize("value", ["1", "true", "YES", "on"])
def test_bool_env_truthy_variants(monkeypatch, value):
    monkeypatch.setenv("CORENETWORKING_HTTP_REDIRECTS", value)
    assert config.load_http_settings().allow_redirects is True
