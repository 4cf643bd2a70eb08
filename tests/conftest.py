"""
Pytest configuration for the test suite.

This file is automatically loaded by pytest and applies configuration
to all tests in the tests/ directory.
"""

import os
import sys

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# Renderer tests never open a real window
os.environ.setdefault("SDL_VIDEODRIVER", "dummy")
os.environ.setdefault("SDL_AUDIODRIVER", "dummy")

from config import Config


def pytest_configure(config):
    """Configure pytest with custom markers and settings."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )


@pytest.fixture
def small_config(tmp_path):
    """Small, fast configuration that writes only under tmp_path."""
    return Config(
        BOARD_WIDTH=10,
        BOARD_HEIGHT=10,
        HIDDEN_SIZE_1=16,
        HIDDEN_SIZE_2=8,
        BATCH_SIZE=4,
        MEMORY_SIZE=10,
        MAX_STEPS_PER_EPISODE=50,
        MODEL_PATH=str(tmp_path / "models" / "snake_dqn.pt"),
        LOG_DIR=str(tmp_path / "logs"),
    )
