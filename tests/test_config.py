"""
Tests for configuration loading and validation.
"""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from usbmap.config import (
    CaptureConfig,
    MapperConfig,
    load_config,
    validate_config,
)


class TestMapperConfig:
    """Tests for MapperConfig dataclass."""

    def test_default_config(self) -> None:
        """Test default configuration values."""
        config = MapperConfig()

        assert config.logging.level == "info"
        assert config.enumeration.skip_unreadable is True
        assert config.capture.configuration is None
        assert config.capture.interface == 1
        assert config.capture.endpoint == 129
        assert config.capture.drain_timeout_ms == 100
        assert config.keymap.path == "config.json"

    def test_from_dict(self) -> None:
        """Test creating config from dictionary."""
        data = {
            "logging": {"level": "debug"},
            "capture": {"endpoint": 0x82},
        }
        config = MapperConfig.from_dict(data)

        assert config.logging.level == "debug"
        assert config.capture.endpoint == 0x82
        # Check defaults still work
        assert config.capture.interface == 1

    def test_from_dict_empty(self) -> None:
        """Test creating config from empty dictionary."""
        config = MapperConfig.from_dict({})

        assert config.logging.level == "info"
        assert config.keymap.indent is None


class TestLoadConfig:
    """Tests for load_config function."""

    def test_load_from_file(self, sample_config: Path, temp_dir: Path) -> None:
        """Test loading configuration from file."""
        config = load_config(sample_config)

        assert config.logging.level == "debug"
        assert config.enumeration.skip_unreadable is False
        assert config.capture.configuration == 1
        assert config.capture.interface == 0
        assert config.keymap.path == str(temp_dir / "keymap.json")
        assert config.keymap.indent == 2

    def test_load_missing_file(self, temp_dir: Path) -> None:
        """Test loading from non-existent file raises error."""
        with pytest.raises(FileNotFoundError):
            load_config(temp_dir / "nonexistent.yaml")

    def test_load_default_when_no_path(
        self, temp_dir: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test loading returns default config when no file found."""
        monkeypatch.chdir(temp_dir)
        monkeypatch.setattr("usbmap.config.DEFAULT_CONFIG_PATH", temp_dir / "absent.yaml")

        config = load_config(None)
        assert config == MapperConfig()

    def test_load_from_working_directory(
        self, temp_dir: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test usbmap.yaml in the working directory is picked up."""
        (temp_dir / "usbmap.yaml").write_text("capture:\n  interface: 2\n")
        monkeypatch.chdir(temp_dir)
        monkeypatch.setattr("usbmap.config.DEFAULT_CONFIG_PATH", temp_dir / "absent.yaml")

        assert load_config().capture.interface == 2

    def test_load_invalid_yaml(self, temp_dir: Path) -> None:
        """Test loading invalid YAML raises error."""
        bad_file = temp_dir / "bad.yaml"
        bad_file.write_text("invalid: yaml: content: [")

        with pytest.raises(yaml.YAMLError):
            load_config(bad_file)


class TestValidateConfig:
    """Tests for validate_config function."""

    def test_valid_config(self) -> None:
        """Test validation passes for valid config."""
        assert validate_config(MapperConfig()) == []

    def test_invalid_log_level(self) -> None:
        """Test validation catches invalid log level."""
        config = MapperConfig()
        config.logging.level = "verbose"

        errors = validate_config(config)
        assert any("log level" in e for e in errors)

    def test_invalid_backend(self) -> None:
        """Test validation catches unknown backends."""
        config = MapperConfig()
        config.enumeration.backend = "winusb"

        errors = validate_config(config)
        assert any("backend" in e for e in errors)

    def test_out_endpoint(self) -> None:
        """Test validation rejects OUT endpoints for capture."""
        config = MapperConfig(capture=CaptureConfig(endpoint=0x02))

        errors = validate_config(config)
        assert any("not an IN endpoint" in e for e in errors)

    def test_out_of_range(self) -> None:
        """Test validation catches values that do not fit a byte."""
        config = MapperConfig(capture=CaptureConfig(interface=300, configuration=-1))

        errors = validate_config(config)
        assert any("interface" in e for e in errors)
        assert any("configuration" in e for e in errors)

    def test_negative_timeout(self) -> None:
        """Test validation catches negative drain timeouts."""
        config = MapperConfig(capture=CaptureConfig(drain_timeout_ms=-1))

        errors = validate_config(config)
        assert any("drain timeout" in e for e in errors)

    def test_zero_timeout(self) -> None:
        """Test a zero drain timeout is rejected since 0 means wait forever."""
        config = MapperConfig(capture=CaptureConfig(drain_timeout_ms=0))

        errors = validate_config(config)
        assert any("drain timeout" in e for e in errors)
