"""Bounded byte pipe between the pipeline and a load-job upload.

The pipeline thread pushes serialized rows; a load-job thread reads them
as a file object. ``push`` reports backpressure once the buffered bytes
reach the high-water mark, and ``wait_drained`` blocks the writer until
the reader has consumed enough, the reader is starving, or the upload
has stopped.
"""

from __future__ import annotations

import io
import threading
from collections import deque


class LoadBufferClosedError(RuntimeError):
    """Raised when writing to a buffer that has been ended or aborted."""


class LoadBuffer(io.RawIOBase):
    """Thread-safe single-writer, single-reader byte stream."""

    def __init__(self, high_water_bytes: int) -> None:
        super().__init__()
        self._high_water_bytes = high_water_bytes
        self._chunks: deque[bytes] = deque()
        self._buffered_bytes = 0
        self._position = 0
        self._ended = False
        self._aborted = False
        self._reader_waiting = False
        self._condition = threading.Condition()

    @property
    def buffered_bytes(self) -> int:
        """Return bytes pushed but not yet read."""
        with self._condition:
            return self._buffered_bytes

    @property
    def aborted(self) -> bool:
        """Return whether the reader side stopped consuming."""
        with self._condition:
            return self._aborted

    def push(self, payload: bytes) -> bool:
        """Append bytes for the reader.

        Args:
            payload: Serialized rows.

        Returns:
            False when the buffer is at or above its high-water mark and the
            writer must call ``wait_drained`` before pushing more.

        Raises:
            LoadBufferClosedError: If the buffer was ended or aborted.
        """
        with self._condition:
            if self._ended or self._aborted:
                raise LoadBufferClosedError("Cannot push to a load buffer that is closed.")
            if payload:
                self._chunks.append(payload)
                self._buffered_bytes += len(payload)
                self._condition.notify_all()
            return self._buffered_bytes < self._high_water_bytes

    def wait_drained(self, timeout: float | None = None) -> bool:
        """Block until the writer may push again.

        Args:
            timeout: Optional seconds to wait; None waits indefinitely.

        Returns:
            True when drained, False on timeout.
        """
        with self._condition:
            return self._condition.wait_for(self._is_drained, timeout)

    def end(self) -> None:
        """Mark end of stream; the reader sees EOF after remaining bytes."""
        with self._condition:
            self._ended = True
            self._condition.notify_all()

    def abort(self) -> None:
        """Stop the stream; pending and future writes are discarded."""
        with self._condition:
            self._aborted = True
            self._chunks.clear()
            self._buffered_bytes = 0
            self._condition.notify_all()

    def readable(self) -> bool:
        return True

    def tell(self) -> int:
        with self._condition:
            return self._position

    def read(self, size: int = -1) -> bytes:
        """Read up to ``size`` bytes, blocking until they are available.

        A result shorter than ``size`` is only returned at end of stream,
        which upload clients treat as the final chunk.
        """
        with self._condition:
            self._reader_waiting = True
            self._condition.notify_all()
            try:
                self._condition.wait_for(lambda: self._has_readable(size))
            finally:
                self._reader_waiting = False
            data = self._take(size)
            self._condition.notify_all()
            return data

    def readall(self) -> bytes:
        return self.read(-1)

    def readinto(self, buffer: bytearray | memoryview) -> int:  # type: ignore[override]
        data = self.read(len(buffer))
        buffer[: len(data)] = data
        return len(data)

    def _is_drained(self) -> bool:
        return (
            self._buffered_bytes < self._high_water_bytes
            or self._reader_waiting
            or self._aborted
        )

    def _has_readable(self, size: int) -> bool:
        if self._ended or self._aborted:
            return True
        return size >= 0 and self._buffered_bytes >= size

    def _take(self, size: int) -> bytes:
        if size < 0 or size >= self._buffered_bytes:
            data = b"".join(self._chunks)
            self._chunks.clear()
        else:
            parts: list[bytes] = []
            remaining = size
            while remaining > 0:
                chunk = self._chunks.popleft()
                if len(chunk) > remaining:
                    self._chunks.appendleft(chunk[remaining:])
                    chunk = chunk[:remaining]
                parts.append(chunk)
                remaining -= len(chunk)
            data = b"".join(parts)
        self._buffered_bytes -= len(data)
        self._position += len(data)
        return data
