"""
Configuration management for usbmap.

Handles loading, validation, and access to tool configuration.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml


# Default configuration paths
DEFAULT_CONFIG_PATH = Path("/etc/usbmap/usbmap.yaml")
DEFAULT_KEYMAP_PATH = "config.json"

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


@dataclass
class LoggingConfig:
    """Logging settings."""

    level: str = "info"
    file: str | None = None
    format: str = LOG_FORMAT


@dataclass
class EnumerationConfig:
    """Device enumeration settings."""

    backend: str = "auto"
    skip_unreadable: bool = True


@dataclass
class CaptureConfig:
    """Interrupt capture settings."""

    configuration: int | None = None
    interface: int = 1
    endpoint: int = 0x81
    drain_timeout_ms: int = 100
    detach_kernel_driver: bool = True
    reattach_on_close: bool = True


@dataclass
class KeymapConfig:
    """Keymap file settings."""

    path: str = DEFAULT_KEYMAP_PATH
    indent: int | None = None


@dataclass
class MapperConfig:
    """Main configuration container."""

    logging: LoggingConfig = field(default_factory=LoggingConfig)
    enumeration: EnumerationConfig = field(default_factory=EnumerationConfig)
    capture: CaptureConfig = field(default_factory=CaptureConfig)
    keymap: KeymapConfig = field(default_factory=KeymapConfig)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MapperConfig:
        """Create configuration from dictionary."""
        return cls(
            logging=LoggingConfig(**data.get("logging", {})),
            enumeration=EnumerationConfig(**data.get("enumeration", {})),
            capture=CaptureConfig(**data.get("capture", {})),
            keymap=KeymapConfig(**data.get("keymap", {})),
        )


def load_config(path: str | Path | None = None) -> MapperConfig:
    """
    Load configuration from YAML file.

    Args:
        path: Path to configuration file. If None, uses default paths.

    Returns:
        MapperConfig instance with loaded settings.

    Raises:
        FileNotFoundError: If an explicit config file is not found.
        yaml.YAMLError: If config file is invalid YAML.
    """
    if path is None:
        candidates = [
            DEFAULT_CONFIG_PATH,
            Path("config/usbmap.yaml"),
            Path("usbmap.yaml"),
        ]
        for candidate in candidates:
            if candidate.exists():
                path = candidate
                break

    if path is None:
        return MapperConfig()

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    with open(path) as f:
        data = yaml.safe_load(f) or {}

    return MapperConfig.from_dict(data)


def validate_config(config: MapperConfig) -> list[str]:
    """
    Validate configuration and return list of errors.

    Args:
        config: Configuration to validate.

    Returns:
        List of error messages. Empty list if valid.
    """
    errors: list[str] = []

    valid_log_levels = {"debug", "info", "warning", "error"}
    if config.logging.level not in valid_log_levels:
        errors.append(f"Invalid log level: {config.logging.level}")

    valid_backends = {"auto", "libusb1", "libusb0", "openusb"}
    if config.enumeration.backend not in valid_backends:
        errors.append(f"Invalid USB backend: {config.enumeration.backend}")

    capture = config.capture
    if capture.configuration is not None and not (0 <= capture.configuration <= 255):
        errors.append(f"Invalid configuration value: {capture.configuration}")
    if not (0 <= capture.interface <= 255):
        errors.append(f"Invalid interface number: {capture.interface}")
    if not (0 <= capture.endpoint <= 255):
        errors.append(f"Invalid endpoint address: {capture.endpoint}")
    elif not capture.endpoint & 0x80:
        errors.append(f"Endpoint 0x{capture.endpoint:02x} is not an IN endpoint")
    if capture.drain_timeout_ms <= 0:
        errors.append(f"Invalid drain timeout: {capture.drain_timeout_ms}")

    if config.keymap.indent is not None and config.keymap.indent < 0:
        errors.append(f"Invalid keymap indent: {config.keymap.indent}")

    return errors
