"""Incremental splitting of a streamed response body into JSON documents.

Bytes arrive in chunks with no alignment to document boundaries. Two
framings are used by the Engine API and an endpoint always declares which
one it uses:

* LINES: one JSON document per ``\\n``-terminated line (events, stats).
* CONCATENATED: documents written back to back with no separator
  (image pull and build progress). Boundaries are found by tracking
  brace/bracket depth outside of quoted strings.

The scanners are pure functions ``(cursor, new_bytes) -> (cursor, docs)``.
A cursor keeps the unconsumed suffix and how much of it was already
examined, so every byte is scanned exactly once.
"""

import json
import logging
import re
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Callable, Iterable, Iterator, List, Tuple

from .errors import InvalidInputError, StreamClosedError
from .logframes import LogCursor, finish_log_frames, scan_log_frames

logger = logging.getLogger(__name__)


class Framing(Enum):
    NONE = "none"
    LINES = "lines"
    CONCATENATED = "concatenated"
    LOG_FRAMES = "log_frames"


class DispatchState(Enum):
    AWAITING_BYTES = "awaiting_bytes"
    SCANNING = "scanning"
    DOCUMENT_EMITTED = "document_emitted"
    STREAM_CLOSED = "stream_closed"


@dataclass(frozen=True)
class StreamCursor:
    """Scanner position inside a growing byte stream.

    ``pending`` is the unconsumed suffix, ``scanned`` how many of its bytes
    were already examined, ``consumed`` the total bytes emitted or dropped
    so far. Depth and string state belong to the concatenated framing.
    """

    pending: bytes = b""
    scanned: int = 0
    depth: int = 0
    in_string: bool = False
    escape: bool = False
    consumed: int = 0


_INVALID = object()

_QUOTE = ord('"')
_BACKSLASH = ord("\\")
_OPENERS = (ord("{"), ord("["))
_OPENER_RE = re.compile(rb"[{\[]")
_STRUCTURAL_RE = re.compile(rb'[{}\[\]"]')
_STRING_SPECIAL_RE = re.compile(rb'["\\]')


def _parse(fragment: bytes) -> Any:
    try:
        return json.loads(fragment)
    except ValueError:
        return _INVALID


def _preview(fragment: bytes, limit: int = 80) -> str:
    text = fragment.decode("utf-8", errors="replace")
    return text if len(text) <= limit else text[:limit] + "..."


def scan_lines(cursor: StreamCursor, data: bytes) -> Tuple[StreamCursor, List[Any]]:
    """Newline framing: emit every complete line that parses as JSON."""
    buf = cursor.pending + data
    docs = []
    start = 0
    search_from = cursor.scanned
    while True:
        newline = buf.find(b"\n", search_from)
        if newline < 0:
            break
        line = buf[start:newline].strip()
        if line:
            doc = _parse(line)
            if doc is _INVALID:
                logger.warning(f"Skipping malformed event line: {_preview(line)}")
            else:
                docs.append(doc)
        start = search_from = newline + 1

    rest = buf[start:]
    return replace(cursor, pending=rest, scanned=len(rest),
                   consumed=cursor.consumed + start), docs


def scan_concatenated(cursor: StreamCursor, data: bytes) -> Tuple[StreamCursor, List[Any]]:
    """Concatenated framing: emit each document as its depth returns to zero.

    Quotes and backslash escapes are honoured, so braces inside string
    values never change the depth. Non-whitespace bytes between documents
    are dropped. A balanced fragment that still fails to parse is skipped.
    """
    buf = cursor.pending + data
    n = len(buf)
    depth, in_string, escape = cursor.depth, cursor.in_string, cursor.escape
    docs = []
    dropped = 0
    # a pending suffix always starts at its document's opening bracket
    start = 0
    i = cursor.scanned

    while i < n:
        if in_string:
            if escape:
                escape = False
                i += 1
                continue
            match = _STRING_SPECIAL_RE.search(buf, i)
            if match is None:
                i = n
                break
            i = match.start()
            if buf[i] == _BACKSLASH:
                escape = True
            else:
                in_string = False
            i += 1
            continue

        if depth == 0:
            match = _OPENER_RE.search(buf, i)
            end = match.start() if match else n
            dropped += len(buf[i:end].strip())
            if match is None:
                i = start = n
                break
            start = end
            depth = 1
            i = end + 1
            continue

        match = _STRUCTURAL_RE.search(buf, i)
        if match is None:
            i = n
            break
        i = match.start()
        ch = buf[i]
        if ch == _QUOTE:
            in_string = True
        elif ch in _OPENERS:
            depth += 1
        else:
            depth -= 1
            if depth == 0:
                fragment = buf[start:i + 1]
                doc = _parse(fragment)
                if doc is _INVALID:
                    logger.warning(f"Skipping malformed document: {_preview(fragment)}")
                else:
                    docs.append(doc)
                start = i + 1
        i += 1

    if dropped:
        logger.warning(f"Dropped {dropped} stray bytes between documents")
    rest = buf[start:]
    new_cursor = StreamCursor(pending=rest, scanned=i - start, depth=depth,
                              in_string=in_string, escape=escape,
                              consumed=cursor.consumed + start)
    return new_cursor, docs


def finish_stream(cursor: StreamCursor) -> Tuple[StreamCursor, List[Any]]:
    """End of stream: try the unconsumed suffix once, else discard it."""
    docs = []
    rest = cursor.pending.strip()
    if rest:
        doc = _parse(rest)
        if doc is _INVALID:
            logger.warning(
                f"Discarding {len(rest)} unparseable bytes at end of stream: {_preview(rest)}"
            )
        else:
            docs.append(doc)
    return StreamCursor(consumed=cursor.consumed + len(cursor.pending)), docs


_SCANNERS = {
    Framing.LINES: (scan_lines, finish_stream, StreamCursor),
    Framing.CONCATENATED: (scan_concatenated, finish_stream, StreamCursor),
    Framing.LOG_FRAMES: (scan_log_frames, finish_log_frames, LogCursor),
}


class StreamDispatcher:
    """Stateful wrapper feeding chunks through one framing's scanner."""

    def __init__(self, framing: Framing):
        if framing not in _SCANNERS:
            raise InvalidInputError(f"No stream scanner for framing {framing}")
        self.framing = framing
        self._scan, self._finish, cursor_type = _SCANNERS[framing]
        self.cursor = cursor_type()
        self.state = DispatchState.AWAITING_BYTES
        self.emitted = 0

    def feed(self, chunk: bytes) -> List[Any]:
        """Scan a newly arrived chunk and return the documents it completed."""
        if self.state is DispatchState.STREAM_CLOSED:
            raise StreamClosedError("Cannot feed a closed stream")
        if not chunk:
            return []
        self.state = DispatchState.SCANNING
        self.cursor, docs = self._scan(self.cursor, bytes(chunk))
        self.emitted += len(docs)
        self.state = DispatchState.DOCUMENT_EMITTED if docs else DispatchState.AWAITING_BYTES
        return docs

    def close(self) -> List[Any]:
        if self.state is DispatchState.STREAM_CLOSED:
            return []
        self.cursor, docs = self._finish(self.cursor)
        self.emitted += len(docs)
        self.state = DispatchState.STREAM_CLOSED
        return docs

    def abort(self) -> None:
        """Close without flushing; pending bytes are dropped silently."""
        self.state = DispatchState.STREAM_CLOSED

    @property
    def closed(self) -> bool:
        return self.state is DispatchState.STREAM_CLOSED


def iter_documents(chunks: Iterable[bytes], framing: Framing) -> Iterator[Any]:
    """Yield documents from an iterable of chunks, flushing at the end."""
    dispatcher = StreamDispatcher(framing)
    for chunk in chunks:
        yield from dispatcher.feed(chunk)
    yield from dispatcher.close()


def split_documents(data: bytes, framing: Framing) -> List[Any]:
    """Split a complete body in one go."""
    return list(iter_documents([data], framing))


DocumentCallback = Callable[[Any, Any], None]
