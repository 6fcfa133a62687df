"""Unit tests for the BigQuery load-job warehouse."""

from __future__ import annotations

from typing import Any

from google.api_core.exceptions import BadRequest

from core.config import MigrateConfig
from core.schema_types import ColumnSchema, record_schema
from store.bigquery_warehouse import BigQueryWarehouse, build_load_job_config
from store.warehouse import LoadJobError, LoadStreamOptions

_SCHEMA = (
    record_schema("Keys", (ColumnSchema("pk", "STRING"), ColumnSchema("sk", "STRING"))),
    ColumnSchema("score", "NUMERIC"),
)


class _FakeLoadJob:
    def __init__(self, output_rows: int, failure: Exception | None = None) -> None:
        self.job_id = "job-123"
        self.output_rows = output_rows
        self.error_result = {"reason": "invalid", "location": "NewImage.age"} if failure else None
        self._failure = failure

    def result(self) -> "_FakeLoadJob":
        if self._failure is not None:
            raise self._failure
        return self

    def to_api_repr(self) -> dict[str, Any]:
        return {"statistics": {"load": {"badRecords": "1"}}}


class _FakeBigQueryClient:
    def __init__(self, failure: Exception | None = None) -> None:
        self.failure = failure
        self.calls: list[dict[str, Any]] = []

    def load_table_from_file(self, file_obj, destination, rewind, job_config):
        data = file_obj.read()
        self.calls.append(
            {"destination": destination, "rewind": rewind, "data": data, "config": job_config}
        )
        return _FakeLoadJob(data.count(b"\n"), self.failure)


def _config() -> MigrateConfig:
    return MigrateConfig(
        s3_region=None,
        s3_profile=None,
        gcp_project="analytics-prod",
        gcp_keyfile=None,
        high_water_bytes=64,
    )


def test_build_load_job_config_sets_dispositions_and_schema() -> None:
    """Default options should append NDJSON with additive schema updates."""
    job_config = build_load_job_config(_SCHEMA, LoadStreamOptions())

    assert job_config.source_format == "NEWLINE_DELIMITED_JSON"
    assert job_config.write_disposition == "WRITE_APPEND"
    assert job_config.create_disposition == "CREATE_IF_NEEDED"
    assert job_config.ignore_unknown_values is True
    assert set(job_config.schema_update_options) == {"ALLOW_FIELD_ADDITION", "ALLOW_FIELD_RELAXATION"}
    assert [field.name for field in job_config.schema] == ["Keys", "score"]
    assert job_config.schema[0].field_type == "RECORD"


def test_build_load_job_config_honors_strict_options() -> None:
    """Disabled append and creation should map to strict dispositions."""
    options = LoadStreamOptions(create_if_missing=False, append_only=False)

    job_config = build_load_job_config(_SCHEMA, options)

    assert job_config.write_disposition == "WRITE_EMPTY"
    assert job_config.create_disposition == "CREATE_NEVER"


def test_load_stream_uploads_rows_and_reports_statistics() -> None:
    """Streamed rows should reach the load job for the dataset table."""
    client = _FakeBigQueryClient()
    warehouse = BigQueryWarehouse("clinical_raw", _config(), client=client)

    stream = warehouse.open_load_stream("patients", _SCHEMA, LoadStreamOptions())
    stream.write(b'{"score": 1}\n')
    stream.write(b'{"score": 2}\n')
    stream.end()
    result = stream.completion.result(timeout=5)

    assert client.calls[0]["destination"] == "clinical_raw.patients"
    assert client.calls[0]["rewind"] is False
    assert result.output_rows == 2 and result.bad_records == 1 and result.job_id == "job-123"


def test_load_stream_failure_carries_job_error_details() -> None:
    """Failed jobs should surface reason and location from the job."""
    client = _FakeBigQueryClient(failure=BadRequest("row 2 is invalid"))
    warehouse = BigQueryWarehouse("clinical_raw", _config(), client=client)

    stream = warehouse.open_load_stream("patients", _SCHEMA, LoadStreamOptions())
    stream.write(b'{"score": "x"}\n')
    stream.end()
    error = stream.completion.exception(timeout=5)

    assert isinstance(error, LoadJobError)
    assert error.reason == "invalid" and error.location == "NewImage.age"
