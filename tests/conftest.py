"""
Shared pytest fixtures for the tracker test suite.

This module provides fixtures that are automatically available to all test files:
- Temporary log, game and data directories
- A TrackerConfig pointed at those directories (webhook off)
- A fresh TrackerState

Nothing here touches the real config/ or data/ directories.
"""

from collections.abc import Generator
from pathlib import Path

import pytest

from eq_tracker.config import ConsiderSettings, TrackerConfig, use_test_data_dir
from eq_tracker.ingest.types import TrackerState
from tests.constants import TEST_ENTITIES

# ============================================================================
# DIRECTORY FIXTURES
# ============================================================================


@pytest.fixture
def log_dir(tmp_path: Path) -> Path:
    """Empty directory standing in for the client's Logs folder."""
    path = tmp_path / "Logs"
    path.mkdir()
    return path


@pytest.fixture
def game_dir(tmp_path: Path) -> Path:
    """Empty directory standing in for the game folder (inventory dumps)."""
    path = tmp_path / "EverQuest"
    path.mkdir()
    return path


@pytest.fixture
def data_dir(tmp_path: Path) -> Generator[Path, None, None]:
    """Temporary data directory, also applied to the config singleton."""
    path = tmp_path / "data"
    with use_test_data_dir(path):
        yield path


# ============================================================================
# CONFIG / STATE FIXTURES
# ============================================================================


@pytest.fixture
def tracker_config(log_dir: Path, game_dir: Path, data_dir: Path) -> TrackerConfig:
    """
    Config for one test: logs, game and data directories under tmp_path.

    The override file points into the data directory (absent by default),
    and the webhook is disabled so no test reaches the network.
    """
    cfg = TrackerConfig()
    cfg.paths.logs_dir = str(log_dir)
    cfg.paths.base_dir = str(game_dir)
    cfg.paths.data_dir = str(data_dir)
    cfg.webhook.enabled = False
    cfg.webhook.url = ""
    return cfg


@pytest.fixture
def consider_settings() -> ConsiderSettings:
    return ConsiderSettings()


@pytest.fixture
def entity_set() -> frozenset[str]:
    return TEST_ENTITIES


@pytest.fixture
def state() -> TrackerState:
    return TrackerState()
