"""Outcome record produced by every call, whether or not it reached the daemon."""

import copy
import functools
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

from .errors import DockerAPIError, ErrorKind, InvalidInputError


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Result:
    """Timing, status and bodies of one call.

    ``http_status`` stays None when the daemon was never reached, which
    distinguishes a rejected request (``is_ok()`` may still be True with
    status 404) from a failed one. Callers must check ``is_ok()`` before
    trusting ``data``; 4xx/5xx statuses are passed through untouched
    because several endpoints use them as ordinary answers (304 on stop
    of a stopped container, 404 on inspect).
    """

    error: ErrorKind = ErrorKind.SUCCESS
    start_time: datetime = field(default_factory=_now)
    end_time: Optional[datetime] = None
    http_status: Optional[int] = None
    method: Optional[str] = None
    url: Optional[str] = None
    request_body: Optional[str] = None
    response_body: Optional[str] = None
    message: Optional[str] = None
    data: Any = None

    @classmethod
    def not_attempted(cls, error: ErrorKind, message: str, method: Optional[str] = None,
                      url: Optional[str] = None) -> "Result":
        """Result for a call rejected before any network I/O."""
        result = cls(error=error, method=method, url=url, message=message)
        result.end_time = result.start_time
        return result

    def is_ok(self) -> bool:
        return self.error is ErrorKind.SUCCESS

    @property
    def succeeded(self) -> bool:
        """True when the call completed and the daemon answered 2xx."""
        return self.is_ok() and self.http_status is not None and 200 <= self.http_status < 300

    @property
    def duration(self) -> Optional[float]:
        if self.end_time is None:
            return None
        return (self.end_time - self.start_time).total_seconds()

    def finish(self, error: Optional[ErrorKind] = None, message: Optional[str] = None) -> "Result":
        if error is not None:
            self.error = error
        if message is not None:
            self.message = message
        self.end_time = _now()
        return self

    def error_message(self) -> str:
        """Best human-readable explanation: daemon message, then our own."""
        if self.response_body:
            try:
                body = json.loads(self.response_body)
            except ValueError:
                body = None
            if isinstance(body, dict) and body.get("message"):
                return body["message"]
        if self.message:
            return self.message
        if self.response_body:
            return self.response_body.strip()
        return self.error.describe()

    def raise_for_status(self) -> "Result":
        """Raise DockerAPIError unless the call completed with a 2xx status."""
        if not self.is_ok():
            raise DockerAPIError(0, f"{self.error.describe()}: {self.error_message()}", self.url)
        if self.http_status is not None and self.http_status >= 400:
            raise DockerAPIError(self.http_status, self.error_message(), self.url)
        return self

    def copy(self) -> "Result":
        return copy.deepcopy(self)

    def release(self) -> None:
        """Drop bodies and payload; safe to call any number of times."""
        self.request_body = None
        self.response_body = None
        self.data = None

    def log(self, logger: Optional[logging.Logger] = None) -> None:
        """Write a one-line summary: INFO on success, ERROR otherwise."""
        log = logger or logging.getLogger(__name__)
        status = self.http_status if self.http_status is not None else "-"
        if self.is_ok():
            log.info(f"{self.method} {self.url} -> {status}")
        else:
            log.error(f"{self.method} {self.url} failed ({self.error.name}): {self.error_message()}")

    def __repr__(self):
        return (f"<Result {self.error.name} {self.method or ''} {self.url or ''} "
                f"status={self.http_status}>")


def invalid_input_as_result(func):
    """Turn an InvalidInputError raised while building a call into a Result."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except InvalidInputError as e:
            logging.getLogger(func.__module__).warning(f"{func.__qualname__}: {e}")
            return Result.not_attempted(ErrorKind.INVALID_INPUT, str(e))

    return wrapper
