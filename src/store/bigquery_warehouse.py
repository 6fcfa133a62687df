"""BigQuery load-job warehouse.

This module streams newline-delimited JSON rows into BigQuery load jobs
through a resumable upload that reads from the stream's LoadBuffer, then
waits for the job and reports its statistics.
"""

from __future__ import annotations

from typing import Any

from google.api_core.exceptions import GoogleAPICallError
from google.cloud import bigquery

from core.config import MigrateConfig
from core.logging_config import get_logger
from core.schema_types import ColumnSchema
from store.load_buffer import LoadBuffer
from store.warehouse import (
    BufferedLoadStream,
    LoadJobError,
    LoadJobResult,
    LoadStreamOptions,
)

_LOGGER = get_logger(__name__)


def create_bigquery_client(config: MigrateConfig) -> bigquery.Client:
    """Create a BigQuery client from runtime configuration.

    Args:
        config: Runtime config with optional project and key file.

    Returns:
        BigQuery client.
    """
    if config.gcp_keyfile:
        return bigquery.Client.from_service_account_json(
            config.gcp_keyfile, project=config.gcp_project
        )
    return bigquery.Client(project=config.gcp_project)


def build_load_job_config(
    schema: tuple[ColumnSchema, ...],
    options: LoadStreamOptions,
) -> bigquery.LoadJobConfig:
    """Build the load job configuration for one table stream.

    Args:
        schema: Table columns for the rows in this job.
        options: Destination table options.

    Returns:
        Load job configuration for newline-delimited JSON.
    """
    schema_update_options: list[str] = []
    if options.allow_field_addition:
        schema_update_options.append(bigquery.SchemaUpdateOption.ALLOW_FIELD_ADDITION)
    if options.allow_field_relaxation:
        schema_update_options.append(bigquery.SchemaUpdateOption.ALLOW_FIELD_RELAXATION)
    return bigquery.LoadJobConfig(
        schema=[bigquery.SchemaField.from_api_repr(column.to_api_repr()) for column in schema],
        source_format=bigquery.SourceFormat.NEWLINE_DELIMITED_JSON,
        create_disposition=(
            bigquery.CreateDisposition.CREATE_IF_NEEDED
            if options.create_if_missing
            else bigquery.CreateDisposition.CREATE_NEVER
        ),
        write_disposition=(
            bigquery.WriteDisposition.WRITE_APPEND
            if options.append_only
            else bigquery.WriteDisposition.WRITE_EMPTY
        ),
        ignore_unknown_values=options.ignore_unknown_fields,
        schema_update_options=schema_update_options,
    )


class BigQueryWarehouse:
    """Warehouse that loads each table stream with one BigQuery load job."""

    def __init__(self, dataset: str, config: MigrateConfig, client: Any | None = None) -> None:
        self._dataset = dataset
        self._high_water_bytes = config.high_water_bytes
        self._client = client if client is not None else create_bigquery_client(config)

    def open_load_stream(
        self,
        table_name: str,
        schema: tuple[ColumnSchema, ...],
        options: LoadStreamOptions,
    ) -> BufferedLoadStream:
        """Start a load job for ``table_name`` fed by the returned stream."""
        job_config = build_load_job_config(schema, options)
        destination = f"{self._dataset}.{table_name}"

        def run_job(buffer: LoadBuffer) -> LoadJobResult:
            return self._run_load_job(table_name, destination, buffer, job_config)

        return BufferedLoadStream(table_name, run_job, self._high_water_bytes)

    def _run_load_job(
        self,
        table_name: str,
        destination: str,
        buffer: LoadBuffer,
        job_config: bigquery.LoadJobConfig,
    ) -> LoadJobResult:
        try:
            job = self._client.load_table_from_file(
                buffer, destination, rewind=False, job_config=job_config
            )
        except (GoogleAPICallError, ValueError) as error:
            raise LoadJobError(
                f"Failed to upload rows for table {table_name}: {error}",
                table_name,
                reason=_first_error_field(error, "reason"),
                location=_first_error_field(error, "location"),
            ) from error
        _LOGGER.info("load_job_started", table_name=table_name, job_id=job.job_id)
        try:
            job.result()
        except GoogleAPICallError as error:
            error_result = job.error_result or {}
            raise LoadJobError(
                f"Load job {job.job_id} for table {table_name} failed: {error}",
                table_name,
                reason=error_result.get("reason") or _first_error_field(error, "reason"),
                location=error_result.get("location") or _first_error_field(error, "location"),
            ) from error
        return LoadJobResult(
            table_name=table_name,
            job_id=job.job_id,
            output_rows=int(job.output_rows or 0),
            bad_records=_bad_record_count(job),
        )


def _bad_record_count(job: Any) -> int:
    statistics = job.to_api_repr().get("statistics", {})
    return int(statistics.get("load", {}).get("badRecords", 0) or 0)


def _first_error_field(error: Exception, field_name: str) -> str | None:
    errors = getattr(error, "errors", None)
    if not errors or not isinstance(errors[0], dict):
        return None
    value = errors[0].get(field_name)
    return str(value) if value is not None else None
