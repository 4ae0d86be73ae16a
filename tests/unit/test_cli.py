# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

import json

import pytest

from corenetworking.cli import main as cli
from corenetworking.cli.main import _pretty_print, _truncate_text_bytes, build_parser
from corenetworking.errors import ErrorCategory, TransportError
from corenetworking.http.models import HttpResponse


def test_build_parser_defaults_and_options():
    parser = build_parser()
    args = parser.parse_args(
        ["http://example.com", "--json", "--retries", "2", "--retry-on", "429,503", "-H", "X-Test: 1", "--proxy", "http://p:1"]
    )
    assert args.url == "http://example.com"
    assert args.json is True
    assert args.retries == 2
    assert args.retry_on == [429, 503]
    assert args.header == [("X-Test", "1")]
    assert args.proxy == "http://p:1"
    assert args.method == "GET"

    with pytest.raises(SystemExit):
        parser.parse_args(["http://example.com", "-H", "no-colon"])


def test_truncate_text_bytes():
    assert _truncate_text_bytes("short", 100) == "short"
    assert _truncate_text_bytes("x" * 50, 20) == "x" * 6 + "...[truncated]"


def test_pretty_print(capsys):
    _pretty_print(HttpResponse(status=503, reason="Service Unavailable", content=b"later", meta={"retry_count": 2}))
    output = capsys.readouterr().out
    assert "503 Service Unavailable" in output
    assert "Retries: 2" in output
    assert "later" in output


def test_main_prints_json_and_exit_code(monkeypatch, capsys):
    captured = {}

    def fake_retrying_fetch(url, request_options, retry_config, retry_on, retry_delay, *, fetch):
        captured.update(url=url, options=request_options, config=retry_config, retry_on=retry_on, fetch=fetch)
        return HttpResponse(status=404, reason="Not Found", content=b"missing", url=url)

    monkeypatch.setattr(cli, "setup_logging", lambda level=None: None)
    monkeypatch.setattr(cli, "retrying_fetch", fake_retrying_fetch)

    code = cli.main(["http://example.com/x", "--json", "--retries", "1", "--proxy", "http://proxy:3128", "-X", "post"])
    payload = json.loads(capsys.readouterr().out)

    assert code == 1
    assert payload["status"] == 404
    assert payload["body"] == "missing"
    assert captured["options"]["method"] == "post"
    assert captured["config"].max_retries == 1
    assert captured["config"].proxy.proxy_url == "http://proxy:3128"


def test_main_reports_transport_errors(monkeypatch, capsys):
    def failing(*args, **kwargs):
        raise TransportError("refused", category=ErrorCategory.CONNECTION_ERROR)

    monkeypatch.setattr(cli, "setup_logging", lambda level=None: None)
    monkeypatch.setattr(cli, "retrying_fetch", failing)

    assert cli.main(["http://example.com"]) == 2
    assert "CONNECTION_ERROR" in capsys.readouterr().err


def test_main_rejects_bad_proxy(monkeypatch):
    monkeypatch.setattr(cli, "setup_logging", lambda level=None: None)
    with pytest.raises(SystemExit):
        cli.main(["http://example.com", "--proxy", "not-a-url"])


def test_main_rejects_proxy_with_ntlm(monkeypatch):
    monkeypatch.setattr(cli, "setup_logging", lambda level=None: None)
    with pytest.raises(SystemExit):
        cli.main(["http://example.com", "--proxy", "http://p:1", "--ntlm-username", "alice"])
