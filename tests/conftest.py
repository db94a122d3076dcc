"""Pytest configuration and shared fixtures."""
from __future__ import annotations

import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]

if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))


@pytest.fixture()
def reports_dir(tmp_path):
    return tmp_path / "reports"


@pytest.fixture()
def reporter():
    from jobs.progress import ProgressReporter

    return ProgressReporter()
