"""
Interactive interrupt capture session.

Learns which raw HID report each physical key produces: stale reports are
drained, the operator names a key, presses it, and chooses to capture the
next one or quit.
"""

from __future__ import annotations

import logging
import sys
from enum import Enum
from typing import Any, Callable, TextIO

from usbmap.capture.keymap import REPORT_SIZE, Keymap
from usbmap.capture.transport import TransportError


logger = logging.getLogger(__name__)

DRAIN_TIMEOUT_MS = 100
SEPARATOR = "-" * 57


class CaptureState(Enum):
    """Capture session states."""

    DRAINING = "draining"
    AWAITING_NAME = "awaiting_name"
    AWAITING_KEY_PRESS = "awaiting_key_press"
    AWAITING_MENU_CHOICE = "awaiting_menu_choice"
    TERMINATED = "terminated"


class CaptureReadError(Exception):
    """The blocking key-press read failed; the session is over."""

    def __init__(
        self,
        identity: str,
        endpoint: int,
        cause: Exception,
        entries: list[Keymap] | None = None,
    ) -> None:
        super().__init__(
            f"Failed to capture key press from {identity} endpoint 0x{endpoint:02x}: {cause}"
        )
        self.identity = identity
        self.endpoint = endpoint
        self.cause = cause
        self.entries = entries or []


class Console:
    """Line-oriented terminal prompts."""

    def __init__(self, stdin: TextIO | None = None, stdout: TextIO | None = None) -> None:
        self.stdin = stdin if stdin is not None else sys.stdin
        self.stdout = stdout if stdout is not None else sys.stdout

    def write(self, text: str) -> None:
        """Write text and flush; write errors propagate."""
        self.stdout.write(text)
        self.stdout.flush()

    def println(self, text: str = "") -> None:
        self.write(f"{text}\n")

    def prompt(self, text: str) -> str:
        """
        Show a prompt and read one line.

        Returns:
            The line without its trailing newline

        Raises:
            EOFError: If input is closed
        """
        self.write(text)
        line = self.stdin.readline()
        if not line:
            raise EOFError("console input closed")
        return line.rstrip("\r\n")


class CaptureSession:
    """
    Key capture state machine over one open interrupt transport.

    The transport must provide ``read_interrupt(length, timeout_ms)``
    returning bytes, raise TransportError on failure, and expose
    ``identity`` and ``endpoint``.
    """

    def __init__(
        self,
        transport: Any,
        console: Console | None = None,
        drain_timeout_ms: int = DRAIN_TIMEOUT_MS,
    ) -> None:
        self.transport = transport
        self.console = console or Console()
        self.drain_timeout_ms = drain_timeout_ms
        self.state = CaptureState.DRAINING
        self.entries: list[Keymap] = []
        self._pending_name: str | None = None
        self._handlers: dict[CaptureState, Callable[[], CaptureState]] = {
            CaptureState.DRAINING: self._drain,
            CaptureState.AWAITING_NAME: self._read_name,
            CaptureState.AWAITING_KEY_PRESS: self._capture_key,
            CaptureState.AWAITING_MENU_CHOICE: self._read_menu_choice,
        }

    @property
    def finished(self) -> bool:
        return self.state is CaptureState.TERMINATED

    def step(self) -> CaptureState:
        """
        Run the current state's action and move to the next state.

        Console EOF ends the session like a quit; captured entries are kept.

        Returns:
            The new state

        Raises:
            CaptureReadError: If the key-press read fails
        """
        if self.finished:
            return self.state
        handler = self._handlers[self.state]
        try:
            next_state = handler()
        except EOFError:
            logger.warning("Console input closed, ending capture session")
            next_state = CaptureState.TERMINATED
        except CaptureReadError:
            self.state = CaptureState.TERMINATED
            raise
        logger.debug("Capture state %s -> %s", self.state.value, next_state.value)
        self.state = next_state
        return next_state

    def run(self) -> list[Keymap]:
        """
        Drive the session until the operator quits.

        Returns:
            Captured entries in capture order

        Raises:
            CaptureReadError: If a key-press read fails; the error carries
                the entries captured before the failure
        """
        while not self.finished:
            self.step()
        return list(self.entries)

    def _drain(self) -> CaptureState:
        while True:
            try:
                data = self.transport.read_interrupt(REPORT_SIZE, self.drain_timeout_ms)
            except TransportError as e:
                logger.debug("Drain read failed, treating as empty: %s", e)
                data = b""
            if not data:
                break
            logger.debug("Discarded stale report: %s", list(data))
        return CaptureState.AWAITING_NAME

    def _read_name(self) -> CaptureState:
        self._pending_name = self.console.prompt("Input a name: ")
        return CaptureState.AWAITING_KEY_PRESS

    def _capture_key(self) -> CaptureState:
        self.console.println("Press a button on your keyboard: ")
        try:
            data = self.transport.read_interrupt(REPORT_SIZE, 0)
        except TransportError as e:
            raise CaptureReadError(
                self.transport.identity, self.transport.endpoint, e, list(self.entries)
            ) from e

        report = bytes(data[:REPORT_SIZE]).ljust(REPORT_SIZE, b"\x00")
        entry = Keymap(key_name=self._pending_name or "", map=report)
        self.entries.append(entry)
        self._pending_name = None

        self.console.println(f"Key {entry.key_name} => {entry.map}")
        self.console.println(SEPARATOR)
        return CaptureState.AWAITING_MENU_CHOICE

    def _read_menu_choice(self) -> CaptureState:
        choice = self.console.prompt("Q: Quit | N: Next => ").strip()
        self.console.println(SEPARATOR)
        if choice.lower() == "q":
            return CaptureState.TERMINATED
        if choice.lower() == "n":
            return CaptureState.DRAINING
        self.console.println(f"{choice} is not a valid option")
        return CaptureState.AWAITING_MENU_CHOICE
