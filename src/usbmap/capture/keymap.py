"""
Keymap records and persistence.

A keymap is the ordered list of operator-named keys and the raw HID
report each one produced.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Sequence

from pydantic import BaseModel, Field, TypeAdapter, ValidationError, field_validator


logger = logging.getLogger(__name__)

REPORT_SIZE = 8
DEFAULT_KEYMAP_PATH = Path("config.json")


class PersistenceError(Exception):
    """Keymap could not be serialized, written or read back."""

    pass


def _current_umask() -> int:
    mask = os.umask(0)
    os.umask(mask)
    return mask


class Keymap(BaseModel):
    """One learned key binding."""

    key_name: str
    map: list[int] = Field(..., min_length=REPORT_SIZE, max_length=REPORT_SIZE)

    @field_validator("map", mode="before")
    @classmethod
    def coerce_report(cls, v: object) -> object:
        """Accept raw bytes as the report."""
        if isinstance(v, (bytes, bytearray)):
            return list(v)
        return v

    @field_validator("map")
    @classmethod
    def validate_bytes(cls, v: list[int]) -> list[int]:
        """Every report element must fit in a byte."""
        for b in v:
            if not 0 <= b <= 0xFF:
                raise ValueError(f"Report byte out of range: {b}")
        return v

    @property
    def report(self) -> bytes:
        """Get the report as bytes."""
        return bytes(self.map)


_KEYMAP_LIST = TypeAdapter(list[Keymap])


class KeymapStore:
    """
    Writes and reads the keymap file.

    Every persist overwrites the previous file in full.
    """

    def __init__(self, path: str | Path = DEFAULT_KEYMAP_PATH, indent: int | None = None) -> None:
        self.path = Path(path)
        self.indent = indent

    def dumps(self, entries: Sequence[Keymap]) -> str:
        """Serialize entries to JSON text."""
        try:
            data = [entry.model_dump() for entry in entries]
            return json.dumps(data, indent=self.indent)
        except (TypeError, ValueError) as e:
            raise PersistenceError(f"Failed to serialize keymap: {e}") from e

    def persist(self, entries: Sequence[Keymap]) -> None:
        """
        Write entries to the keymap file.

        The text goes to a temporary file next to the target which then
        replaces it, so a failed write leaves the previous file intact.

        Raises:
            PersistenceError: If serialization or the write fails
        """
        text = self.dumps(entries)
        tmp_path = None
        try:
            directory = self.path.parent
            fd, tmp_path = tempfile.mkstemp(
                dir=directory, prefix=f".{self.path.name}.", suffix=".tmp"
            )
            with os.fdopen(fd, "w") as f:
                f.write(text)
                f.flush()
                os.fsync(f.fileno())
            # mkstemp creates 0600; give the keymap regular file permissions
            os.chmod(tmp_path, 0o666 & ~_current_umask())
            os.replace(tmp_path, self.path)
        except OSError as e:
            if tmp_path is not None and os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise PersistenceError(f"Failed to write keymap to {self.path}: {e}") from e

        logger.info("Wrote %d keymap entries to %s", len(entries), self.path)

    def load(self) -> list[Keymap]:
        """
        Read entries back from the keymap file.

        Raises:
            PersistenceError: If the file cannot be read or is malformed
        """
        try:
            text = self.path.read_text()
        except OSError as e:
            raise PersistenceError(f"Failed to read keymap {self.path}: {e}") from e
        return self.loads(text)

    @staticmethod
    def loads(text: str) -> list[Keymap]:
        """Parse JSON text into keymap entries."""
        try:
            return _KEYMAP_LIST.validate_json(text)
        except ValidationError as e:
            raise PersistenceError(f"Invalid keymap data: {e}") from e
