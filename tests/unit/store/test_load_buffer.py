"""Unit tests for the bounded load buffer."""

from __future__ import annotations

import threading

import pytest

from store.load_buffer import LoadBuffer, LoadBufferClosedError


def test_push_reports_backpressure_at_high_water_mark() -> None:
    """Push should return False once buffered bytes reach the mark."""
    buffer = LoadBuffer(high_water_bytes=8)

    first = buffer.push(b"1234")
    second = buffer.push(b"5678")

    assert first is True and second is False
    assert buffer.buffered_bytes == 8


def test_wait_drained_times_out_without_reader() -> None:
    """A full buffer with no reader should not report drained."""
    buffer = LoadBuffer(high_water_bytes=4)
    buffer.push(b"12345")

    assert buffer.wait_drained(timeout=0.05) is False


def test_wait_drained_after_reader_consumes() -> None:
    """Reading below the mark should release the writer."""
    buffer = LoadBuffer(high_water_bytes=4)
    buffer.push(b"12345")

    data = buffer.read(5)

    assert data == b"12345" and buffer.wait_drained(timeout=0.05) is True
    assert buffer.tell() == 5


def test_wait_drained_when_reader_is_waiting_for_more() -> None:
    """A blocked reader wanting more bytes should count as drained."""
    buffer = LoadBuffer(high_water_bytes=4)
    buffer.push(b"12345")
    chunks: list[bytes] = []
    reader = threading.Thread(target=lambda: chunks.append(buffer.read(100)))
    reader.start()

    drained = buffer.wait_drained(timeout=2.0)
    buffer.end()
    reader.join(timeout=2.0)

    assert drained is True and chunks == [b"12345"]


def test_read_returns_partial_chunks_then_eof() -> None:
    """Short reads should only happen at end of stream."""
    buffer = LoadBuffer(high_water_bytes=64)
    buffer.push(b"abc")
    buffer.push(b"def")

    head = buffer.read(4)
    buffer.end()
    tail = buffer.read(4)
    after_eof = buffer.read(4)

    assert (head, tail, after_eof) == (b"abcd", b"ef", b"")


def test_abort_discards_rows_and_rejects_writes() -> None:
    """Aborted buffers should release writers and refuse new rows."""
    buffer = LoadBuffer(high_water_bytes=4)
    buffer.push(b"12345")

    buffer.abort()

    assert buffer.wait_drained(timeout=0.05) is True and buffer.aborted
    with pytest.raises(LoadBufferClosedError):
        buffer.push(b"more")


def test_push_after_end_raises() -> None:
    """Ended buffers should refuse new rows."""
    buffer = LoadBuffer(high_water_bytes=4)
    buffer.end()

    with pytest.raises(LoadBufferClosedError):
        buffer.push(b"row")
