"""Tests for the multiplexed container log decoder."""

import logging
import struct

import pytest

from dockhand import Framing, LogFrame, StreamDispatcher
from dockhand.logframes import LogCursor, finish_log_frames, scan_log_frames
from dockhand.stream import split_documents


def frame(stream: int, payload: bytes) -> bytes:
    return bytes([stream, 0, 0, 0]) + struct.pack(">I", len(payload)) + payload


MIXED = frame(1, b"starting\n") + frame(2, b"warning: low disk\n") + frame(1, b"ready\n")


class TestMultiplexed:
    """8-byte header followed by the payload."""

    def test_whole_body(self):
        frames = split_documents(MIXED, Framing.LOG_FRAMES)
        assert frames == [
            LogFrame("stdout", b"starting\n"),
            LogFrame("stderr", b"warning: low disk\n"),
            LogFrame("stdout", b"ready\n"),
        ]

    @pytest.mark.parametrize("at", range(len(MIXED) + 1))
    def test_split_anywhere(self, at):
        dispatcher = StreamDispatcher(Framing.LOG_FRAMES)
        frames = dispatcher.feed(MIXED[:at]) + dispatcher.feed(MIXED[at:]) + dispatcher.close()
        assert [f.text for f in frames] == ["starting\n", "warning: low disk\n", "ready\n"]

    def test_stdin_and_empty_payload(self):
        frames = split_documents(frame(0, b"") + frame(0, b"input"), Framing.LOG_FRAMES)
        assert frames == [LogFrame("stdin", b""), LogFrame("stdin", b"input")]

    def test_payload_not_utf8(self):
        (log_frame,) = split_documents(frame(1, b"\xff\xfeok"), Framing.LOG_FRAMES)
        assert log_frame.data == b"\xff\xfeok"
        assert log_frame.text.endswith("ok")

    def test_truncated_frame_dropped(self, caplog):
        data = frame(1, b"complete\n") + frame(2, b"cut short")[:-3]
        with caplog.at_level(logging.WARNING, logger="dockhand.logframes"):
            frames = split_documents(data, Framing.LOG_FRAMES)
        assert frames == [LogFrame("stdout", b"complete\n")]
        assert "truncated log frame" in caplog.text

    def test_cursor_progress(self):
        cursor, frames = scan_log_frames(LogCursor(), MIXED[:20])
        assert frames == [LogFrame("stdout", b"starting\n")]
        assert cursor.raw is False
        assert cursor.consumed == 17
        assert cursor.pending == MIXED[17:20]


class TestRaw:
    """TTY containers send the bytes unframed."""

    def test_plain_text(self):
        frames = split_documents(b"hello world\n", Framing.LOG_FRAMES)
        assert frames == [LogFrame("stdout", b"hello world\n")]

    def test_chunks_pass_through(self):
        dispatcher = StreamDispatcher(Framing.LOG_FRAMES)
        frames = dispatcher.feed(b"line one\n") + dispatcher.feed(b"\x01 not a header")
        frames += dispatcher.close()
        assert b"".join(f.data for f in frames) == b"line one\n\x01 not a header"
        assert {f.stream for f in frames} == {"stdout"}

    def test_header_like_prefix_shorter_than_header(self):
        cursor, frames = scan_log_frames(LogCursor(), b"\x01\x00")
        assert frames == []
        assert cursor.raw is None
        cursor, frames = finish_log_frames(cursor)
        assert frames == [LogFrame("stdout", b"\x01\x00")]
