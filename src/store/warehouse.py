"""Warehouse load-stream contract.

A load stream accepts newline-delimited JSON rows for one table and
resolves a completion future once the destination load job finishes or
fails. Implementations run the job on a dedicated thread that reads from
a bounded LoadBuffer, so writers observe backpressure explicitly.
"""

from __future__ import annotations

import threading
from concurrent.futures import Future
from dataclasses import dataclass
from typing import Callable, Protocol

from core.errors import MigrateError
from core.schema_types import ColumnSchema
from store.load_buffer import LoadBuffer


@dataclass(frozen=True)
class LoadStreamOptions:
    """Destination table options for a load stream.

    Attributes:
        create_if_missing: Create the table when it does not exist.
        append_only: Append rows instead of requiring an empty table.
        ignore_unknown_fields: Drop row values with no matching column.
        allow_field_addition: Permit new columns in the supplied schema.
        allow_field_relaxation: Permit REQUIRED columns to become NULLABLE.
    """

    create_if_missing: bool = True
    append_only: bool = True
    ignore_unknown_fields: bool = True
    allow_field_addition: bool = True
    allow_field_relaxation: bool = True


@dataclass(frozen=True)
class LoadJobResult:
    """Statistics reported by a finished load job."""

    table_name: str
    job_id: str
    output_rows: int
    bad_records: int


class LoadJobError(MigrateError):
    """Raised when a load stream or load job fails.

    Attributes:
        table_name: Destination table.
        reason: Destination error reason code, when reported.
        location: Destination error location, when reported.
    """

    def __init__(
        self,
        message: str,
        table_name: str,
        reason: str | None = None,
        location: str | None = None,
    ) -> None:
        super().__init__(message)
        self.table_name = table_name
        self.reason = reason
        self.location = location


class LoadStream(Protocol):
    """Writable handle for one table load job."""

    @property
    def completion(self) -> "Future[LoadJobResult]":
        ...

    def write(self, payload: bytes) -> bool:
        ...

    def wait_drained(self) -> None:
        ...

    def end(self) -> None:
        ...


class Warehouse(Protocol):
    """Destination that opens per-table load streams."""

    def open_load_stream(
        self,
        table_name: str,
        schema: tuple[ColumnSchema, ...],
        options: LoadStreamOptions,
    ) -> LoadStream:
        ...


LoadJob = Callable[[LoadBuffer], LoadJobResult]


class BufferedLoadStream:
    """Load stream whose job consumes a LoadBuffer on its own thread."""

    def __init__(self, table_name: str, job: LoadJob, high_water_bytes: int) -> None:
        self._buffer = LoadBuffer(high_water_bytes)
        self._completion: Future[LoadJobResult] = Future()
        self._completion.add_done_callback(lambda _future: self._buffer.abort())
        self._thread = threading.Thread(
            target=_run_load_job,
            args=(job, self._buffer, self._completion),
            name=f"load-{table_name}",
            daemon=True,
        )
        self._thread.start()

    @property
    def completion(self) -> "Future[LoadJobResult]":
        """Return the future resolved by the load job."""
        return self._completion

    def write(self, payload: bytes) -> bool:
        """Push serialized rows; False means wait for drain before writing more."""
        return self._buffer.push(payload)

    def wait_drained(self) -> None:
        """Block until the load job has consumed enough buffered rows."""
        self._buffer.wait_drained()

    def end(self) -> None:
        """Signal that no more rows will be written."""
        self._buffer.end()


def _run_load_job(job: LoadJob, buffer: LoadBuffer, completion: "Future[LoadJobResult]") -> None:
    if not completion.set_running_or_notify_cancel():
        return
    try:
        result = job(buffer)
    except Exception as error:
        completion.set_exception(error)
    else:
        completion.set_result(result)
