"""
Pytest configuration and shared fixtures for usbmap tests.
"""

from __future__ import annotations

import tempfile
from pathlib import Path
from typing import Generator

import pytest
import yaml

from tests.fakes import FakeDevice, make_keyboard


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def keyboard_device() -> FakeDevice:
    """Fake HID keyboard as PyUSB would expose it."""
    return make_keyboard()


@pytest.fixture
def sample_config(temp_dir: Path) -> Path:
    """Create a sample configuration file."""
    config_path = temp_dir / "usbmap.yaml"
    config_data = {
        "logging": {
            "level": "debug",
        },
        "enumeration": {
            "skip_unreadable": False,
        },
        "capture": {
            "configuration": 1,
            "interface": 0,
            "endpoint": 0x81,
        },
        "keymap": {
            "path": str(temp_dir / "keymap.json"),
            "indent": 2,
        },
    }
    with open(config_path, "w") as f:
        yaml.dump(config_data, f)
    return config_path
