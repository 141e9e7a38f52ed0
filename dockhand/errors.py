"""Error kinds and exceptions shared by every layer of the client."""

from enum import Enum
from typing import Optional


class ErrorKind(Enum):
    """Outcome of a call, independent of the HTTP status it produced."""

    SUCCESS = 0
    UNKNOWN_ERROR = 1
    INVALID_INPUT = -1
    FILE_NOT_FOUND = -2
    ALLOC_FAILED = -3
    PING_FAILED = -4
    CONNECTION_FAILED = -5

    def describe(self) -> str:
        return self.name.replace("_", " ").capitalize()


class DockerException(Exception):
    """Base class for every exception raised by dockhand."""

    kind = ErrorKind.UNKNOWN_ERROR


class InvalidInputError(DockerException, ValueError):
    """Caller supplied arguments that cannot form a valid request."""

    kind = ErrorKind.INVALID_INPUT


class AllocFailedError(DockerException, MemoryError):
    """The response buffer could not grow to hold more bytes."""

    kind = ErrorKind.ALLOC_FAILED


class StreamClosedError(DockerException):
    """Bytes were fed to a dispatcher after the stream was closed."""


class DockerAPIError(DockerException):
    """Error status returned by the Docker Engine API."""

    def __init__(self, status: int, message: str, url: Optional[str] = None):
        self.status = status
        self.message = message
        self.url = url
        super().__init__(f"Docker API error {status}: {message}")
