"""Docker client - main API entry point."""

import weakref
from typing import Optional

from .call import Call
from .connection import DEFAULT_TIMEOUT, ConnectionDescriptor
from .containers import ContainerAPI
from .images import ImageAPI
from .result import Result
from .system import SystemAPI
from .transport import ResponseStream, Transport
from .volumes import VolumeAPI


class DockerClient:
    """Client bound to one daemon endpoint.

    The descriptor is immutable and every call opens its own connection,
    so one client may be used from several threads. Streams opened through
    the client are tracked weakly; ``close()`` ends those still open.
    """

    def __init__(self, descriptor: Optional[ConnectionDescriptor] = None,
                 base_url: Optional[str] = None, api_version: Optional[str] = None,
                 timeout: Optional[float] = DEFAULT_TIMEOUT):
        """
        Initialize Docker client

        Args:
            descriptor: Endpoint to talk to; wins over the other arguments
            base_url: http(s):// URL, tcp://, unix:// or a socket path
                      (default: DOCKER_HOST, then /var/run/docker.sock)
            api_version: Engine API version such as "1.41"
            timeout: Connect timeout in seconds; reads are never timed out
        """
        if descriptor is None:
            if base_url:
                descriptor = ConnectionDescriptor.from_target(base_url, api_version, timeout)
            else:
                descriptor = ConnectionDescriptor.from_env()
        self.descriptor = descriptor
        self.transport = Transport(descriptor)
        self.system = SystemAPI(self)
        self.containers = ContainerAPI(self)
        self.images = ImageAPI(self)
        self.volumes = VolumeAPI(self)
        self._streams = weakref.WeakSet()

    @classmethod
    def from_env(cls, environ=None) -> "DockerClient":
        return cls(ConnectionDescriptor.from_env(environ))

    def execute(self, call: Call) -> Result:
        return self.transport.execute(call)

    def stream(self, call: Call) -> ResponseStream:
        stream = self.transport.stream(call)
        self._streams.add(stream)
        return stream

    def ping(self) -> Result:
        return self.system.ping()

    def version(self) -> Result:
        return self.system.version()

    def info(self) -> Result:
        return self.system.info()

    def close(self):
        """Close every stream opened through this client that is still open."""
        for stream in list(self._streams):
            stream.close()
        self._streams.clear()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def __repr__(self):
        return f"<DockerClient {self.descriptor.base_url} v{self.descriptor.api_version}>"
