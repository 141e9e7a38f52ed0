"""Tests for the response buffer."""

from unittest.mock import MagicMock

import pytest

from dockhand import AllocFailedError
from dockhand.buffer import ResponseBuffer


class TestResponseBuffer:
    """Append-only growth with an optional retention limit."""

    def test_append_reports_accepted_bytes(self):
        buf = ResponseBuffer()
        assert buf.append(b"abc") == 3
        assert buf.append(b"") == 0
        assert buf.append(b"de") == 2
        assert buf.getvalue() == b"abcde"
        assert len(buf) == 5
        assert buf.total_received == 5

    def test_many_small_chunks(self):
        buf = ResponseBuffer()
        for _ in range(10000):
            buf.append(b"x")
        assert len(buf) == 10000

    def test_empty_is_falsy(self):
        buf = ResponseBuffer()
        assert not buf
        buf.append(b"{}")
        assert buf
        buf.clear()
        assert not buf
        assert buf.total_received == 2

    def test_text_replaces_invalid_utf8(self):
        buf = ResponseBuffer()
        buf.append("café".encode("utf-8")[:-1])
        assert buf.text().startswith("caf")

    def test_limit(self):
        buf = ResponseBuffer(max_size=4)
        assert buf.append(b"abc") == 3
        assert not buf.truncated
        assert buf.append(b"defg") == 4
        assert buf.truncated
        assert buf.getvalue() == b"abcd"
        assert buf.append(b"h") == 1
        assert buf.getvalue() == b"abcd"
        assert buf.total_received == 8

    def test_memory_error(self):
        buf = ResponseBuffer()
        storage = MagicMock()
        storage.extend.side_effect = MemoryError
        storage.__len__.return_value = 0
        buf._data = storage
        with pytest.raises(AllocFailedError):
            buf.append(b"x")
