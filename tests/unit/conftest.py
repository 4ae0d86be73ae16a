# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Local servers for end-to-end tests: a small API server (plain or TLS) and a forward proxy."""

import base64
import http.client
import json
import select
import socket
import ssl
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from urllib.parse import parse_qsl, urlsplit

import pytest
import trustme


class _Handler(BaseHTTPRequestHandler):
    protocol_version = "HTTP/1.1"

    def log_message(self, format, *args):  # noqa: A002
        return None

    def reply(self, status, body=b"", headers=None):
        self.send_response(status)
        for name, value in (headers or {}).items():
            self.send_header(name, value)
        self.send_header("Content-Length", str(len(body)))
        self.send_header("Connection", "close")
        self.end_headers()
        self.wfile.write(body)
        self.close_connection = True


class ApiHandler(_Handler):
    """``/mirror`` echoes the query as JSON; ``/status/<code>`` answers with that status."""

    def do_GET(self):  # noqa: N802
        parts = urlsplit(self.path)
        self.server.hits.append(parts.path)
        if parts.path == "/mirror":
            body = json.dumps(dict(parse_qsl(parts.query))).encode("utf-8")
            self.reply(200, body, {"Content-Type": "application/json"})
        elif parts.path.startswith("/status/"):
            self.reply(int(parts.path.rsplit("/", 1)[1]), b"status")
        else:
            self.reply(404, b"not found")


class ForwardProxyHandler(_Handler):
    """Forward proxy with optional Basic auth: plain HTTP forwarding plus CONNECT tunnels."""

    def authorized(self):
        expected = self.server.credentials
        if expected is None:
            return True
        token = base64.b64encode(":".join(expected).encode("utf-8")).decode("ascii")
        return self.headers.get("Proxy-Authorization") == f"Basic {token}"

    def do_CONNECT(self):  # noqa: N802
        if not self.authorized():
            self.reply(403, b"Forbidden")
            return

        host, _, port = self.path.rpartition(":")
        try:
            upstream = socket.create_connection((host, int(port)), timeout=5)
        except OSError:
            self.reply(502, b"Bad Gateway")
            return

        self.server.hits.append(f"CONNECT {self.path}")
        self.send_response(200, "Connection Established")
        self.end_headers()
        self.close_connection = True
        try:
            self.tunnel(upstream)
        finally:
            upstream.close()

    def tunnel(self, upstream):
        peers = {self.connection: upstream, upstream: self.connection}
        while True:
            readable, _, _ = select.select(list(peers), [], [], 5)
            if not readable:
                return
            for sock in readable:
                try:
                    data = sock.recv(65536)
                except OSError:
                    return
                if not data:
                    return
                peers[sock].sendall(data)

    def do_GET(self):  # noqa: N802
        if not self.authorized():
            self.reply(401, b"Unauthorized", {"WWW-Authenticate": 'Basic realm="proxy"'})
            return

        self.server.hits.append(self.path)
        target = urlsplit(self.path)
        path = target.path or "/"
        if target.query:
            path = f"{path}?{target.query}"
        conn = http.client.HTTPConnection(target.hostname, target.port or 80, timeout=5)
        try:
            conn.request(self.command, path)
            upstream = conn.getresponse()
            body = upstream.read()
        except OSError:
            self.reply(502, b"Bad Gateway")
            return
        finally:
            conn.close()

        headers = {}
        if upstream.getheader("Content-Type"):
            headers["Content-Type"] = upstream.getheader("Content-Type")
        self.reply(upstream.status, body, headers)


def _serve(handler, ssl_context=None, **attributes):
    server = ThreadingHTTPServer(("127.0.0.1", 0), handler)
    if ssl_context is not None:
        server.socket = ssl_context.wrap_socket(server.socket, server_side=True)
    server.daemon_threads = True
    server.hits = []
    for name, value in attributes.items():
        setattr(server, name, value)
    scheme = "https" if ssl_context is not None else "http"
    server.url = f"{scheme}://127.0.0.1:{server.server_address[1]}"
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    return server, thread


def _stop(server, thread):
    server.shutdown()
    server.server_close()
    thread.join(timeout=5)


@pytest.fixture
def api_server():
    server, thread = _serve(ApiHandler)
    yield server
    _stop(server, thread)


@pytest.fixture(scope="session")
def tls_certificate():
    ca = trustme.CA()
    return ca.issue_cert("127.0.0.1", "localhost")


@pytest.fixture
def tls_api_server(tls_certificate):
    """ApiHandler over TLS with a certificate from an untrusted, throwaway CA."""
    context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
    tls_certificate.configure_cert(context)
    server, thread = _serve(ApiHandler, ssl_context=context)
    yield server
    _stop(server, thread)


@pytest.fixture
def proxy_server():
    server, thread = _serve(ForwardProxyHandler, credentials=None)
    yield server
    _stop(server, thread)


@pytest.fixture
def auth_proxy_server():
    server, thread = _serve(ForwardProxyHandler, credentials=("admin", "secret"))
    yield server
    _stop(server, thread)


@pytest.fixture
def unused_port():
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


@pytest.fixture(autouse=True)
def _no_ambient_proxies(monkeypatch):
    for name in ("HTTP_PROXY", "HTTPS_PROXY", "ALL_PROXY", "NO_PROXY"):
        monkeypatch.delenv(name, raising=False)
        monkeypatch.delenv(name.lower(), raising=False)
    for name in ("CORENETWORKING_PROXY_URL", "CORENETWORKING_PROXY_USERNAME", "CORENETWORKING_PROXY_PASSWORD"):
        monkeypatch.delenv(name, raising=False)
