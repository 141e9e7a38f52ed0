"""Daemon endpoint description and the unix-socket HTTP connection.

A connection target is either a TCP/TLS base URL (``http://host:2375``,
``https://host:2376``) or a filesystem path to the daemon's unix socket.
The classification is purely syntactic; nothing is opened here.
"""

import http.client
import logging
import os
import socket
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlparse

from .errors import InvalidInputError

logger = logging.getLogger(__name__)

# Docker Engine API version spoken by default
DEFAULT_API_VERSION = "1.39"
DEFAULT_UNIX_SOCKET = "/var/run/docker.sock"
# Seconds allowed for establishing a connection; response reads never time out
DEFAULT_TIMEOUT = 60.0


def is_http_url(target: Optional[str]) -> bool:
    """True when *target* is an absolute URL with an http or https scheme."""
    if not target:
        return False
    parsed = urlparse(target)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def is_unix_socket(target: Optional[str]) -> bool:
    """True for anything non-empty that does not parse as an http(s) URL."""
    return bool(target) and not is_http_url(target)


def _normalize_api_version(version: Optional[str]) -> str:
    version = (version or DEFAULT_API_VERSION).strip()
    if version.lower().startswith("v"):
        version = version[1:]
    if not version:
        raise InvalidInputError("API version must not be empty")
    return version


class UnixHTTPConnection(http.client.HTTPConnection):
    """HTTPConnection subclass that connects via a Unix domain socket."""

    def __init__(self, socket_path: str, timeout: Optional[float] = DEFAULT_TIMEOUT):
        # host is unused for the actual connection but required by HTTPConnection
        super().__init__("localhost", timeout=timeout)
        self._socket_path = socket_path

    def connect(self):
        sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        sock.settimeout(self.timeout)
        try:
            sock.connect(self._socket_path)
        except OSError:
            sock.close()
            raise
        # timeout bounds the connect only; reads block until the daemon answers
        sock.settimeout(None)
        self.sock = sock


@dataclass(frozen=True)
class ConnectionDescriptor:
    """One daemon endpoint: a socket path or a base URL, plus API version.

    Exactly one of ``socket_path`` and ``url`` is set. Instances are
    immutable and safe to share between threads; each call opens its own
    connection.
    """

    socket_path: Optional[str] = None
    url: Optional[str] = None
    api_version: str = DEFAULT_API_VERSION
    timeout: Optional[float] = DEFAULT_TIMEOUT

    def __post_init__(self):
        if bool(self.socket_path) == bool(self.url):
            raise InvalidInputError(
                "Exactly one of a unix socket path or a base URL is required"
            )
        if self.url and not is_http_url(self.url):
            raise InvalidInputError(f"Not an http(s) URL: {self.url}")
        object.__setattr__(self, "api_version", _normalize_api_version(self.api_version))
        if self.url:
            object.__setattr__(self, "url", self.url.rstrip("/"))

    @classmethod
    def from_target(cls, target: Optional[str], api_version: Optional[str] = None,
                    timeout: Optional[float] = DEFAULT_TIMEOUT) -> "ConnectionDescriptor":
        """Classify *target* and build a descriptor for it.

        ``tcp://`` targets (the ``DOCKER_HOST`` convention) are treated as
        ``http://`` and a ``unix://`` prefix is stripped from socket paths.
        """
        if target is None or not target.strip():
            raise InvalidInputError("A daemon URL or unix socket path is required")
        target = target.strip()
        if target.startswith("tcp://"):
            target = "http://" + target[len("tcp://"):]
        elif target.startswith("unix://"):
            target = target[len("unix://"):]
            if not target:
                raise InvalidInputError("unix:// target has no socket path")

        if is_http_url(target):
            return cls(url=target, api_version=api_version, timeout=timeout)
        return cls(socket_path=target, api_version=api_version, timeout=timeout)

    @classmethod
    def from_env(cls, environ=None) -> "ConnectionDescriptor":
        """Build a descriptor from DOCKER_HOST, DOCKER_API_VERSION and DOCKER_TIMEOUT."""
        env = os.environ if environ is None else environ
        host = env.get("DOCKER_HOST", "").strip() or DEFAULT_UNIX_SOCKET
        timeout = DEFAULT_TIMEOUT
        raw_timeout = env.get("DOCKER_TIMEOUT", "").strip()
        if raw_timeout:
            try:
                timeout = float(raw_timeout)
            except ValueError as e:
                raise InvalidInputError(f"Invalid DOCKER_TIMEOUT '{raw_timeout}'") from e
        descriptor = cls.from_target(host, env.get("DOCKER_API_VERSION") or None, timeout)
        logger.debug(f"Using Docker endpoint {descriptor.base_url} (API v{descriptor.api_version})")
        return descriptor

    @property
    def is_unix(self) -> bool:
        return self.socket_path is not None

    @property
    def base_url(self) -> str:
        """Printable base of every request URL for this endpoint."""
        if self.is_unix:
            return f"unix://{self.socket_path}"
        return self.url

    def open_unix_connection(self) -> UnixHTTPConnection:
        if not self.is_unix:
            raise InvalidInputError(f"{self.base_url} is not a unix socket endpoint")
        return UnixHTTPConnection(self.socket_path, timeout=self.timeout)
