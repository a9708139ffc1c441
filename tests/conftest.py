"""Pytest configuration and shared fixtures."""

import sys
from pathlib import Path

import pytest

# Ensure src directory is in Python path for all tests
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from timetable_cli.config import Config  # noqa: E402


@pytest.fixture(autouse=True)
def reset_config():
    """Keep the configuration singleton from leaking between tests."""
    Config._instance = None
    yield
    Config._instance = None
