"""
Shared fixtures for the test suite.
"""

from pathlib import Path

import pytest

from helpers import StatusRecorder


@pytest.fixture
def recorder():
    return StatusRecorder()


@pytest.fixture
def watch_dir(tmp_path) -> Path:
    directory = tmp_path / "watch"
    directory.mkdir()
    return directory


@pytest.fixture
def target_dir(tmp_path) -> Path:
    directory = tmp_path / "target"
    directory.mkdir()
    return directory
