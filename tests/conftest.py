"""Pytest configuration for repository test runs."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest


def pytest_sessionstart() -> None:
    """Add src directory to sys.path for test imports."""
    project_root = Path(__file__).resolve().parent.parent
    src_path = project_root / "src"
    if str(src_path) not in sys.path:
        sys.path.insert(0, str(src_path))


@pytest.fixture
def local_config():
    """Runtime config with no cloud settings and per-row progress events."""
    from core.config import MigrateConfig

    return MigrateConfig(
        s3_region=None,
        s3_profile=None,
        gcp_project=None,
        gcp_keyfile=None,
        high_water_bytes=4096,
        progress_interval_rows=1,
    )
