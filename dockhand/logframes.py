"""Decoder for the multiplexed container log stream.

Non-tty containers prefix every payload with an 8-byte header::

    [stream, 0, 0, 0, size (4 bytes, big-endian)]

where stream is 0 (stdin), 1 (stdout) or 2 (stderr). Tty containers send
the raw bytes with no header; that case is detected from the first bytes
of the body and passed through as stdout.
"""

import logging
import struct
from dataclasses import dataclass, replace
from typing import List, NamedTuple, Optional, Tuple

logger = logging.getLogger(__name__)

HEADER_SIZE = 8
STREAM_NAMES = {0: "stdin", 1: "stdout", 2: "stderr"}


class LogFrame(NamedTuple):
    stream: str
    data: bytes

    @property
    def text(self) -> str:
        return self.data.decode("utf-8", errors="replace")


@dataclass(frozen=True)
class LogCursor:
    pending: bytes = b""
    raw: Optional[bool] = None
    consumed: int = 0


def _is_header_prefix(buf: bytes) -> bool:
    if not buf:
        return True
    return buf[0] in STREAM_NAMES and not any(buf[1:4])


def scan_log_frames(cursor: LogCursor, data: bytes) -> Tuple[LogCursor, List[LogFrame]]:
    """Consume *data* and return the frames completed by it."""
    buf = cursor.pending + data
    raw = cursor.raw
    if raw is None:
        if not _is_header_prefix(buf[:HEADER_SIZE]):
            raw = True
        elif len(buf) < HEADER_SIZE:
            return replace(cursor, pending=buf), []
        else:
            raw = False

    if raw:
        frames = [LogFrame("stdout", buf)] if buf else []
        return LogCursor(b"", True, cursor.consumed + len(buf)), frames

    frames = []
    pos = 0
    while len(buf) - pos >= HEADER_SIZE:
        stream_id = buf[pos]
        (size,) = struct.unpack(">I", buf[pos + 4:pos + HEADER_SIZE])
        end = pos + HEADER_SIZE + size
        if end > len(buf):
            break
        frames.append(LogFrame(STREAM_NAMES.get(stream_id, "stdout"), buf[pos + HEADER_SIZE:end]))
        pos = end
    return LogCursor(buf[pos:], False, cursor.consumed + pos), frames


def finish_log_frames(cursor: LogCursor) -> Tuple[LogCursor, List[LogFrame]]:
    """Flush at end of stream; a truncated frame is dropped with a warning."""
    frames = []
    if cursor.pending:
        if cursor.raw is None:
            # shorter than one header: cannot be framed output
            frames.append(LogFrame("stdout", cursor.pending))
        else:
            logger.warning(f"Discarding {len(cursor.pending)} bytes of truncated log frame")
    return LogCursor(b"", cursor.raw, cursor.consumed + len(cursor.pending)), frames
