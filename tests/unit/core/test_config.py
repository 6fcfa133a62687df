"""Unit tests for core config parsing."""

from __future__ import annotations

import os

import pytest

from core.config import MigrateConfig
from core.constants import DEFAULT_HIGH_WATER_BYTES
from core.errors import MigrateConfigError


def test_from_env_reads_cloud_settings(monkeypatch: pytest.MonkeyPatch) -> None:
    """Config should read S3 and BigQuery settings from environment."""
    monkeypatch.setenv("MIGRATE_S3_REGION", "us-east-1")
    monkeypatch.setenv("MIGRATE_GCP_PROJECT", "analytics-prod")
    monkeypatch.setenv("MIGRATE_PROGRESS_INTERVAL", "500")

    config = MigrateConfig.from_env()

    assert config.s3_region == "us-east-1" and config.gcp_project == "analytics-prod"
    assert config.progress_interval_rows == 500


def test_from_env_defaults_high_water_mark(monkeypatch: pytest.MonkeyPatch) -> None:
    """Unset buffer size should use the default high-water mark."""
    monkeypatch.delenv("MIGRATE_HIGH_WATER_BYTES", raising=False)

    config = MigrateConfig.from_env()

    assert config.high_water_bytes == DEFAULT_HIGH_WATER_BYTES


def test_from_env_raises_for_invalid_high_water_mark(monkeypatch: pytest.MonkeyPatch) -> None:
    """Config should fail for non-numeric buffer sizes."""
    monkeypatch.setenv("MIGRATE_HIGH_WATER_BYTES", "lots")

    with pytest.raises(MigrateConfigError):
        MigrateConfig.from_env()

    assert os.getenv("MIGRATE_HIGH_WATER_BYTES") == "lots"


def test_from_env_raises_for_non_positive_interval(monkeypatch: pytest.MonkeyPatch) -> None:
    """Progress interval must be a positive integer."""
    monkeypatch.setenv("MIGRATE_PROGRESS_INTERVAL", "0")

    with pytest.raises(MigrateConfigError):
        MigrateConfig.from_env()
