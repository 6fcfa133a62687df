"""Local directory warehouse for dry runs.

Each table stream appends rows to ``<output_dir>/<table>.jsonl`` and
evolves ``<table>.schema.json`` additively, mirroring how the warehouse
accepts new columns across load jobs.
"""

from __future__ import annotations

import json
import threading
import uuid
from pathlib import Path

from core.constants import LOCAL_SCHEMA_FILE_SUFFIX, LOCAL_TABLE_FILE_SUFFIX
from core.errors import PreprocessingError
from core.schema_types import ColumnSchema
from store.load_buffer import LoadBuffer
from store.warehouse import BufferedLoadStream, LoadJobError, LoadJobResult, LoadStreamOptions
from transforms.schema_merge import merge_field_lists

_READ_CHUNK_BYTES = 64 * 1024


class LocalWarehouse:
    """Warehouse that writes newline-delimited JSON files per table."""

    def __init__(self, output_dir: str | Path, high_water_bytes: int) -> None:
        self._output_dir = Path(output_dir).expanduser().resolve()
        self._output_dir.mkdir(parents=True, exist_ok=True)
        self._high_water_bytes = high_water_bytes
        self._schema_lock = threading.Lock()

    def table_path(self, table_name: str) -> Path:
        """Return the rows file for a table."""
        return self._output_dir / f"{table_name}{LOCAL_TABLE_FILE_SUFFIX}"

    def schema_path(self, table_name: str) -> Path:
        """Return the schema file for a table."""
        return self._output_dir / f"{table_name}{LOCAL_SCHEMA_FILE_SUFFIX}"

    def open_load_stream(
        self,
        table_name: str,
        schema: tuple[ColumnSchema, ...],
        options: LoadStreamOptions,
    ) -> BufferedLoadStream:
        """Start a local load job for ``table_name`` fed by the returned stream."""

        def run_job(buffer: LoadBuffer) -> LoadJobResult:
            return self._run_load_job(table_name, schema, options, buffer)

        return BufferedLoadStream(table_name, run_job, self._high_water_bytes)

    def _run_load_job(
        self,
        table_name: str,
        schema: tuple[ColumnSchema, ...],
        options: LoadStreamOptions,
        buffer: LoadBuffer,
    ) -> LoadJobResult:
        table_path = self.table_path(table_name)
        if not options.create_if_missing and not table_path.exists():
            raise LoadJobError(
                f"Table {table_name} does not exist in {self._output_dir}.",
                table_name,
                reason="notFound",
            )
        if not options.append_only and table_path.exists() and table_path.stat().st_size > 0:
            raise LoadJobError(
                f"Table {table_name} already holds rows and append is disabled.",
                table_name,
                reason="duplicate",
            )
        self._evolve_schema(table_name, schema, options)
        row_count = 0
        with table_path.open("ab") as table_file:
            while True:
                chunk = buffer.read(_READ_CHUNK_BYTES)
                if chunk:
                    table_file.write(chunk)
                    row_count += chunk.count(b"\n")
                if len(chunk) < _READ_CHUNK_BYTES:
                    break
        return LoadJobResult(
            table_name=table_name,
            job_id=f"local-{uuid.uuid4().hex[:12]}",
            output_rows=row_count,
            bad_records=0,
        )

    def _evolve_schema(
        self,
        table_name: str,
        schema: tuple[ColumnSchema, ...],
        options: LoadStreamOptions,
    ) -> None:
        schema_path = self.schema_path(table_name)
        with self._schema_lock:
            existing = _read_schema(schema_path)
            if existing and not options.allow_field_addition:
                new_names = {column.name for column in schema} - {column.name for column in existing}
                if new_names:
                    raise LoadJobError(
                        f"Schema for {table_name} adds fields {sorted(new_names)} "
                        "but field addition is disabled.",
                        table_name,
                        reason="invalid",
                    )
            try:
                merged = merge_field_lists((existing, schema), table_name)
            except PreprocessingError as error:
                raise LoadJobError(
                    f"Schema for {table_name} conflicts with the stored schema: {error}",
                    table_name,
                    reason="invalid",
                    location=error.field_name,
                ) from error
            payload = [column.to_api_repr() for column in merged]
            schema_path.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")


def _read_schema(schema_path: Path) -> tuple[ColumnSchema, ...]:
    if not schema_path.exists():
        return ()
    payload = json.loads(schema_path.read_text(encoding="utf-8"))
    return tuple(ColumnSchema.from_api_repr(column) for column in payload)
