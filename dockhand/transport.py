"""Execution of a single HTTP exchange against the daemon.

Unix-socket endpoints go through ``http.client`` with a socket-level
connect override; TCP/TLS endpoints go through ``requests``. Both are
wrapped in a small exchange object exposing the status, headers and an
iterator over body chunks as they arrive, so the rest of the call
lifecycle does not care which transport carried it.

Calls are synchronous and never retried. Every call yields a Result,
including calls that never reached the daemon.
"""

import functools
import http.client
import json
import logging
from typing import Any, Dict, Iterator, List, Optional

import requests

from .buffer import ResponseBuffer
from .call import Call
from .connection import ConnectionDescriptor
from .errors import AllocFailedError, ErrorKind, InvalidInputError
from .result import Result
from .stream import StreamDispatcher

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024
# Body bytes kept in Result.response_body for streaming calls
STREAM_BODY_LIMIT = 1024 * 1024


class _UnixExchange:
    """HTTP/1.1 over the daemon's unix domain socket."""

    def __init__(self, descriptor: ConnectionDescriptor, call: Call,
                 body: Optional[bytes], headers: Dict[str, str]):
        self._conn = descriptor.open_unix_connection()
        try:
            self._conn.request(call.http_method, call.request_target(descriptor),
                               body=body, headers=headers)
            self._response = self._conn.getresponse()
        except BaseException:
            self._conn.close()
            raise
        self.status = self._response.status
        self.headers = dict(self._response.getheaders())

    def iter_chunks(self) -> Iterator[bytes]:
        while True:
            try:
                chunk = self._response.read1(CHUNK_SIZE)
            except http.client.IncompleteRead as e:
                # the daemon closed the connection mid-chunk
                if e.partial:
                    yield e.partial
                logger.warning("Connection closed before the response was complete")
                return
            if not chunk:
                return
            yield chunk

    def close(self) -> None:
        self._conn.close()


class _HTTPExchange:
    """HTTP(S) over TCP using requests."""

    def __init__(self, descriptor: ConnectionDescriptor, call: Call,
                 body: Optional[bytes], headers: Dict[str, str]):
        self._response = requests.request(
            call.http_method, call.url(descriptor),
            data=body, headers=headers, stream=True, timeout=(descriptor.timeout, None),
        )
        self.status = self._response.status_code
        self.headers = dict(self._response.headers)

    def iter_chunks(self) -> Iterator[bytes]:
        # chunk_size=None hands over each transfer chunk as soon as it is read
        for chunk in self._response.iter_content(chunk_size=None):
            if chunk:
                yield chunk

    def close(self) -> None:
        self._response.close()


_TRANSPORT_ERRORS = (OSError, http.client.HTTPException)


def _classify(exc: Exception) -> ErrorKind:
    """Map a transport exception to an error kind."""
    # requests exceptions are OSErrors too, so they are checked first
    if isinstance(exc, (requests.ConnectionError, requests.Timeout,
                        requests.exceptions.ChunkedEncodingError)):
        return ErrorKind.CONNECTION_FAILED
    if isinstance(exc, (requests.RequestException, http.client.HTTPException)):
        return ErrorKind.UNKNOWN_ERROR
    return ErrorKind.CONNECTION_FAILED


def _describe_request_body(call: Call, body: Optional[bytes]) -> Optional[str]:
    if body is None:
        return None
    if isinstance(call.body, (bytes, bytearray)):
        return f"<{len(body)} bytes {call.content_type or 'application/octet-stream'}>"
    return body.decode("utf-8")


class ResponseStream:
    """Pull-based view of one call's response.

    Iterating yields one parsed document per event for streaming calls
    (nothing for plain calls, whose body ends up in ``result``). The
    stream cannot be restarted. Stop early by calling ``close()`` or by
    leaving a ``with`` block; that closes the underlying connection.
    ``result`` is filled as soon as the response headers arrive and
    finalised when the stream is exhausted or closed.
    """

    def __init__(self, descriptor: ConnectionDescriptor, call: Call,
                 stream_body_limit: Optional[int] = STREAM_BODY_LIMIT):
        self.call = call
        self.descriptor = descriptor
        self.buffer = ResponseBuffer(stream_body_limit if call.streaming else None)
        self.dispatcher = StreamDispatcher(call.framing) if call.streaming else None
        self.headers: Dict[str, str] = {}
        self._exchange = None
        self._iterator = None
        self._released = False

        self.result = Result(method=call.http_method, url=call.url(descriptor))
        body, headers = call.encode_body()
        self.result.request_body = _describe_request_body(call, body)
        self._open(body, headers)

    def _open(self, body: Optional[bytes], headers: Dict[str, str]) -> None:
        exchange_type = _UnixExchange if self.descriptor.is_unix else _HTTPExchange
        try:
            self._exchange = exchange_type(self.descriptor, self.call, body, headers)
        except _TRANSPORT_ERRORS as e:
            logger.error(f"Cannot reach Docker daemon at {self.descriptor.base_url}: {e}")
            self._fail(_classify(e), str(e))
            return
        self.result.http_status = self._exchange.status
        self.headers = self._exchange.headers

    def _fail(self, error: ErrorKind, message: str) -> None:
        self.result.error = error
        self.result.message = message
        self._release()

    @property
    def status_ok(self) -> bool:
        status = self.result.http_status
        return self._exchange is not None and status is not None and 200 <= status < 300

    def __iter__(self):
        return self

    def __next__(self) -> Any:
        if self._iterator is None:
            self._iterator = self._documents()
        return next(self._iterator)

    def _documents(self) -> Iterator[Any]:
        if self._exchange is None or self._released:
            return
        # error bodies are recorded whole but never dispatched
        dispatcher = self.dispatcher if self.status_ok else None
        try:
            for chunk in self._exchange.iter_chunks():
                self.buffer.append(chunk)
                if dispatcher is not None:
                    yield from dispatcher.feed(chunk)
            if dispatcher is not None:
                yield from dispatcher.close()
        except AllocFailedError as e:
            logger.error(str(e))
            self.result.error = ErrorKind.ALLOC_FAILED
            self.result.message = str(e)
        except _TRANSPORT_ERRORS as e:
            logger.error(f"Error reading response of {self.call.http_method} {self.result.url}: {e}")
            self.result.error = _classify(e)
            self.result.message = str(e)
        finally:
            self._release()

    def drain(self) -> List[Any]:
        """Consume the rest of the response and return remaining documents."""
        return list(self)

    def _release(self) -> None:
        if self._released:
            return
        self._released = True
        if self._exchange is not None:
            self._exchange.close()
        if self.dispatcher is not None and not self.dispatcher.closed:
            # stopped early: whatever is pending is never delivered
            self.dispatcher.abort()
        if self.buffer:
            self.result.response_body = self.buffer.text()
        self.result.finish()
        logger.debug(
            f"{self.result.method} {self.result.url} -> {self.result.http_status} "
            f"({self.result.error.name}, {self.buffer.total_received} bytes, "
            f"{(self.result.duration or 0) * 1000:.0f} ms)"
        )

    def close(self) -> None:
        if self._iterator is not None:
            self._iterator.close()
        self._release()

    @property
    def closed(self) -> bool:
        return self._released

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()


class RejectedStream(ResponseStream):
    """Stream for a call refused before any I/O; iterating yields nothing.

    ``result`` holds the not-attempted outcome, as the eager operations
    would have returned it.
    """

    def __init__(self, result: Result, call: Optional[Call] = None):
        self.call = call
        self.descriptor = None
        self.buffer = ResponseBuffer()
        self.dispatcher = None
        self.headers = {}
        self._exchange = None
        self._iterator = None
        self._released = True
        self.result = result


def invalid_input_as_stream(func):
    """Turn an InvalidInputError raised while building a call into a RejectedStream."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except InvalidInputError as e:
            logging.getLogger(func.__module__).warning(f"{func.__qualname__}: {e}")
            return RejectedStream(Result.not_attempted(ErrorKind.INVALID_INPUT, str(e)))

    return wrapper


def _parse_body(text: str) -> Any:
    try:
        return json.loads(text)
    except ValueError:
        return text


class Transport:
    """Runs calls against one endpoint. Holds no per-call state."""

    def __init__(self, descriptor: ConnectionDescriptor,
                 stream_body_limit: Optional[int] = STREAM_BODY_LIMIT):
        self.descriptor = descriptor
        self.stream_body_limit = stream_body_limit

    def stream(self, call: Call) -> ResponseStream:
        """Start the call and return an iterator over its documents."""
        return ResponseStream(self.descriptor, call, self.stream_body_limit)

    def execute(self, call: Call) -> Result:
        """Run the call to completion.

        Streaming calls with a callback deliver each document as
        ``callback(document, callback_args)`` in arrival order; without a
        callback the documents are collected into ``result.data``.
        Otherwise a 2xx body is parsed into ``result.data`` (JSON when it
        parses, text when not).
        """
        with self.stream(call) as response:
            documents = []
            for document in response:
                if call.callback is not None:
                    call.callback(document, call.callback_args)
                else:
                    documents.append(document)

        result = response.result
        if result.is_ok() and response.status_ok:
            if call.streaming:
                if call.callback is None:
                    result.data = documents
            elif response.buffer:
                result.data = _parse_body(response.buffer.text())
        return result
