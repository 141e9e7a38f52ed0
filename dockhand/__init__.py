"""
dockhand - Docker Engine API client over a unix socket or TCP/TLS,
with incremental decoding of streamed JSON responses.
"""

from .call import Call
from .client import DockerClient
from .connection import ConnectionDescriptor, is_http_url, is_unix_socket
from .errors import (
    AllocFailedError,
    DockerAPIError,
    DockerException,
    ErrorKind,
    InvalidInputError,
    StreamClosedError,
)
from .logframes import LogFrame
from .result import Result
from .stream import Framing, StreamCursor, StreamDispatcher, scan_concatenated, scan_lines
from .transport import RejectedStream, ResponseStream, Transport
from .url import Category, QueryParams

__all__ = [
    'AllocFailedError',
    'Call',
    'Category',
    'ConnectionDescriptor',
    'DockerAPIError',
    'DockerClient',
    'DockerException',
    'ErrorKind',
    'Framing',
    'InvalidInputError',
    'LogFrame',
    'QueryParams',
    'ResponseStream',
    'RejectedStream',
    'Result',
    'StreamClosedError',
    'StreamCursor',
    'StreamDispatcher',
    'Transport',
    'is_http_url',
    'is_unix_socket',
    'scan_concatenated',
    'scan_lines',
]

__version__ = '1.0.0'
