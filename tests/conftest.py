"""Pytest configuration and shared fixtures for the table reader.

Images are synthetic NumPy arrays in OpenCV's BGR layout; recognizer
engines are replaced by scripted fakes from ``support``.
"""
import sys
import tempfile
import logging
from pathlib import Path

import numpy as np
import pytest

# Add the project root to Python path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from tablereader.config.settings import Config
from tablereader.core.entities import Region

from support import make_block_pattern, make_checkerboard


# Disable some verbose loggers during testing
logging.getLogger('PIL').setLevel(logging.WARNING)


@pytest.fixture
def temp_dir():
    """Provide a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def test_config(temp_dir):
    """Configuration pointing every directory at a temporary location."""
    return Config(
        templates_dir=str(temp_dir / "templates"),
        bad_matches_dir=str(temp_dir / "bad_matches"),
        table_map_path=str(temp_dir / "table_map.json"),
        debounce_seconds=0.05,
    )


@pytest.fixture
def checkerboard():
    return make_checkerboard()


@pytest.fixture
def card_image():
    """Card-sized crop with enough structure to survive binarization."""
    return make_block_pattern(35, 50, block=5, seed=11)


@pytest.fixture
def screenshot():
    """Dark 320x200 table screenshot."""
    return np.full((200, 320, 3), 30, dtype=np.uint8)


@pytest.fixture
def region():
    return Region(name="seat1_balance", x=10, y=20, width=60, height=20)
