"""Per-table sinks and batch windows.

A BatchWindow owns at most one TableSink per destination table. Sinks are
opened lazily on the first record routed to their table, ended together
when the window closes, and settled together: every completion future is
observed before the window reports its outcomes, whether it failed or not.
"""

from __future__ import annotations

import json
from concurrent.futures import ALL_COMPLETED, Future, wait
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Literal

from core.logging_config import get_logger
from core.schema_types import ColumnSchema
from core.types import ChangeEnvelope
from store.load_buffer import LoadBufferClosedError
from store.warehouse import (
    LoadJobError,
    LoadJobResult,
    LoadStream,
    LoadStreamOptions,
    Warehouse,
)

_LOGGER = get_logger(__name__)

SinkState = Literal["open", "draining", "completed", "failed"]


class SinkClosedError(RuntimeError):
    """Raised when writing to a sink after its window closed."""


@dataclass(frozen=True)
class SinkOutcome:
    """Settled result of one table sink.

    Attributes:
        table_name: Destination table.
        rows_written: Rows accepted by the sink.
        result: Load job statistics when the job completed.
        error: Failure when the stream or job failed.
    """

    table_name: str
    rows_written: int
    result: LoadJobResult | None = None
    error: BaseException | None = None

    @property
    def succeeded(self) -> bool:
        """Return whether the load job completed."""
        return self.error is None


class TableSink:
    """One open load stream for a table within a batch window."""

    def __init__(self, table_name: str, schema: tuple[ColumnSchema, ...], stream: LoadStream) -> None:
        self.table_name = table_name
        self.schema = schema
        self.rows_written = 0
        self.rows_rejected = 0
        self._stream = stream
        self._state: SinkState = "open"

    @property
    def state(self) -> SinkState:
        """Return the lifecycle state, resolving it from the completion future."""
        completion = self._stream.completion
        if self._state == "draining" and completion.done():
            self._state = "failed" if completion.exception() is not None else "completed"
        return self._state

    @property
    def completion(self) -> Future[LoadJobResult]:
        """Return the future resolved when the load job finishes or fails."""
        return self._stream.completion

    def write(self, envelope: ChangeEnvelope) -> bool:
        """Write one envelope as a JSON row.

        Args:
            envelope: Change envelope routed to this table.

        Returns:
            False when the stream is backpressured and the caller must wait
            for ``wait_drained`` before acknowledging more input.

        Raises:
            SinkClosedError: If the sink was already ended.
        """
        if self._state != "open":
            raise SinkClosedError(
                f"Sink for table {self.table_name} is {self._state}; it accepts no more rows."
            )
        try:
            accepted = self._stream.write(serialize_row(envelope))
        except LoadBufferClosedError:
            self._reject_after_failure()
            return True
        self.rows_written += 1
        return accepted

    def wait_drained(self) -> None:
        """Block until the stream can take more rows or has stopped."""
        self._stream.wait_drained()

    def end(self) -> None:
        """Close the sink for writes; the load job finishes with the rows so far."""
        if self._state != "open":
            return
        self._state = "draining"
        self._stream.end()

    def _reject_after_failure(self) -> None:
        if self.rows_rejected == 0:
            _LOGGER.error(
                "sink_rejecting_rows",
                table_name=self.table_name,
                rows_written=self.rows_written,
            )
        self.rows_rejected += 1


class BatchWindow:
    """Set of table sinks accumulated between two flush barriers."""

    def __init__(
        self,
        warehouse: Warehouse,
        options: LoadStreamOptions | None = None,
        window_index: int = 1,
    ) -> None:
        self.window_index = window_index
        self._warehouse = warehouse
        self._options = options or LoadStreamOptions()
        self._sinks: dict[str, TableSink] = {}
        self._open_failures: dict[str, BaseException] = {}
        self._closed = False

    @property
    def table_names(self) -> tuple[str, ...]:
        """Return tables with an open or failed sink in this window."""
        return tuple(self._sinks) + tuple(self._open_failures)

    def sink_for(self, table_name: str, schema: tuple[ColumnSchema, ...]) -> TableSink | None:
        """Return the table's sink, opening it on first use.

        Args:
            table_name: Destination table.
            schema: Columns inferred for the record that opens the sink.

        Returns:
            The window's sink, or None when opening the stream failed.
        """
        sink = self._sinks.get(table_name)
        if sink is not None:
            return sink
        if table_name in self._open_failures:
            return None
        if self._closed:
            raise SinkClosedError(f"Batch window {self.window_index} is closed.")
        try:
            stream = self._warehouse.open_load_stream(table_name, schema, self._options)
        except Exception as error:
            _LOGGER.error(
                "load_stream_open_failed",
                table_name=table_name,
                window=self.window_index,
                error=str(error),
            )
            self._open_failures[table_name] = error
            return None
        sink = TableSink(table_name, schema, stream)
        self._sinks[table_name] = sink
        _LOGGER.info("sink_opened", table_name=table_name, window=self.window_index)
        return sink

    def write(
        self,
        table_name: str,
        schema: tuple[ColumnSchema, ...],
        envelope: ChangeEnvelope,
    ) -> bool:
        """Route one envelope to its table sink, honoring backpressure.

        Returns only once the sink can take more rows, so the caller may
        acknowledge the input record as consumed.

        Returns:
            True when the row was written, False when the table's stream
            could not be opened.
        """
        sink = self.sink_for(table_name, schema)
        if sink is None:
            return False
        if not sink.write(envelope):
            sink.wait_drained()
        return True

    def close(self) -> None:
        """End every sink; no further records are routed to this window."""
        self._closed = True
        for sink in self._sinks.values():
            sink.end()

    def settle(self) -> list[SinkOutcome]:
        """Wait for every sink's load job and report each outcome.

        Every completion future is awaited; one failure never short-circuits
        the wait for the others.

        Returns:
            One outcome per table, in the order sinks were opened.
        """
        if not self._closed:
            self.close()
        wait([sink.completion for sink in self._sinks.values()], return_when=ALL_COMPLETED)
        outcomes = [_sink_outcome(sink) for sink in self._sinks.values()]
        outcomes.extend(
            SinkOutcome(table_name=table_name, rows_written=0, error=error)
            for table_name, error in self._open_failures.items()
        )
        return outcomes


def serialize_row(envelope: ChangeEnvelope) -> bytes:
    """Serialize an envelope as one newline-terminated JSON row."""
    return (json.dumps(envelope.to_payload(), default=_json_default) + "\n").encode("utf-8")


def _json_default(value: Any) -> Any:
    if isinstance(value, Decimal):
        # non-integral numbers stay strings to keep their full precision
        if value == value.to_integral_value():
            return int(value)
        return str(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _sink_outcome(sink: TableSink) -> SinkOutcome:
    error = sink.completion.exception()
    if error is None:
        result = sink.completion.result()
        _log_job_completed(result)
        return SinkOutcome(table_name=sink.table_name, rows_written=sink.rows_written, result=result)
    _LOGGER.error(
        "load_job_failed",
        table_name=sink.table_name,
        rows_written=sink.rows_written,
        rows_rejected=sink.rows_rejected,
        reason=error.reason if isinstance(error, LoadJobError) else None,
        location=error.location if isinstance(error, LoadJobError) else None,
        message=str(error),
    )
    return SinkOutcome(table_name=sink.table_name, rows_written=sink.rows_written, error=error)


def _log_job_completed(result: LoadJobResult) -> None:
    _LOGGER.info(
        "load_job_completed",
        table_name=result.table_name,
        job_id=result.job_id,
        output_rows=result.output_rows,
    )
    if result.bad_records:
        _LOGGER.warning(
            "load_job_bad_records",
            table_name=result.table_name,
            job_id=result.job_id,
            bad_records=result.bad_records,
        )
