"""Shared fixtures: a fake Docker daemon listening on a unix socket."""

import http.server
import json
import logging
import shutil
import socket
import socketserver
import tempfile
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Tuple
from urllib.parse import parse_qsl, urlsplit

import pytest

from dockhand import ConnectionDescriptor, DockerClient

API_PREFIX = "/v1.39"


def split_every(data: bytes, size: int) -> List[bytes]:
    """Cut *data* into chunks of *size* bytes (last one may be shorter)."""
    return [data[i:i + size] for i in range(0, len(data), size)]


@dataclass
class RecordedRequest:
    method: str
    target: str
    headers: Dict[str, str]
    body: bytes

    @property
    def path(self) -> str:
        return urlsplit(self.target).path

    @property
    def query(self) -> Dict[str, str]:
        return dict(parse_qsl(urlsplit(self.target).query))

    @property
    def raw_query(self) -> str:
        return urlsplit(self.target).query


@dataclass
class Route:
    status: int
    chunks: List[bytes]
    content_type: str = "application/json"
    pause: float = 0.0


class _FakeDaemonHandler(http.server.BaseHTTPRequestHandler):
    protocol_version = "HTTP/1.1"

    def do_GET(self):
        self._handle()

    def do_POST(self):
        self._handle()

    def do_DELETE(self):
        self._handle()

    def _handle(self):
        length = int(self.headers.get("Content-Length") or 0)
        body = self.rfile.read(length) if length else b""
        self.server.requests.append(
            RecordedRequest(self.command, self.path, dict(self.headers), body)
        )
        route = self.server.routes.get((self.command, urlsplit(self.path).path))
        if route is None:
            route = Route(404, [b'{"message":"page not found"}'])

        self.close_connection = True
        self.send_response(route.status)
        if route.status in (204, 304):
            self.end_headers()
            return
        self.send_header("Content-Type", route.content_type)
        self.send_header("Transfer-Encoding", "chunked")
        self.end_headers()
        self.wfile.flush()
        if route.pause:
            time.sleep(route.pause)
        for chunk in route.chunks:
            if chunk:
                self.wfile.write(b"%x\r\n%s\r\n" % (len(chunk), chunk))
                self.wfile.flush()
        self.wfile.write(b"0\r\n\r\n")
        self.wfile.flush()

    def log_message(self, format, *args):
        pass


class FakeDaemon(socketserver.ThreadingMixIn, socketserver.UnixStreamServer):
    """Serves canned responses, sent chunk by chunk, and records requests."""

    daemon_threads = True

    def __init__(self, socket_path: str):
        self.socket_path = socket_path
        self.routes: Dict[Tuple[str, str], Route] = {}
        self.requests: List[RecordedRequest] = []
        super().__init__(socket_path, _FakeDaemonHandler)

    def route(self, method: str, path: str, status: int = 200, body=None, chunks=None,
              content_type: str = "application/json", pause: float = 0.0) -> None:
        """Register a response; *path* is relative to the API version prefix.

        With *pause* the daemon sends the headers, then stays silent that many
        seconds before the body.
        """
        if chunks is None:
            if body is None:
                chunks = []
            elif isinstance(body, (bytes, str)):
                chunks = [body.encode() if isinstance(body, str) else body]
            else:
                chunks = [json.dumps(body).encode()]
        self.routes[(method, API_PREFIX + path)] = Route(status, chunks, content_type, pause)

    @property
    def last_request(self) -> RecordedRequest:
        return self.requests[-1]


@pytest.fixture
def fake_daemon():
    if not hasattr(socket, "AF_UNIX"):
        pytest.skip("unix domain sockets not available")
    # short directory: unix socket paths are limited to ~100 bytes
    tmp_dir = tempfile.mkdtemp(prefix="dh")
    server = FakeDaemon(str(Path(tmp_dir) / "docker.sock"))
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield server
    server.shutdown()
    server.server_close()
    thread.join(timeout=5)
    shutil.rmtree(tmp_dir, ignore_errors=True)


@pytest.fixture
def client(fake_daemon):
    return DockerClient(ConnectionDescriptor(socket_path=fake_daemon.socket_path, timeout=5))


@pytest.fixture
def missing_socket(tmp_path):
    return str(tmp_path / "nothing-here.sock")


@pytest.fixture(autouse=True)
def _restore_package_logger():
    """The CLI detaches the package logger; put it back for caplog."""
    logger = logging.getLogger("dockhand")
    handlers, level, propagate = list(logger.handlers), logger.level, logger.propagate
    yield
    logger.handlers[:] = handlers
    logger.setLevel(level)
    logger.propagate = propagate
