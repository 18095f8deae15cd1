"""
Tests for the interactive capture session.
"""

from __future__ import annotations

import io

import pytest

from usbmap.capture.keymap import Keymap
from usbmap.capture.session import (
    CaptureReadError,
    CaptureSession,
    CaptureState,
    Console,
)
from usbmap.capture.transport import TransportError
from tests.fakes import ScriptedTransport


KEY_A = [1, 0, 0, 0, 0, 0, 0, 0]
KEY_B = [2, 0, 0, 0, 0, 0, 0, 0]


def make_console(text: str) -> tuple[Console, io.StringIO]:
    out = io.StringIO()
    return Console(stdin=io.StringIO(text), stdout=out), out


class TestConsole:
    """Tests for Console."""

    def test_prompt_strips_newline(self) -> None:
        """Test prompt returns the line without its newline."""
        console, out = make_console("Enter \n")
        assert console.prompt("Name: ") == "Enter "
        assert out.getvalue() == "Name: "

    def test_prompt_windows_newline(self) -> None:
        """Test CRLF line endings are stripped too."""
        console, _ = make_console("Space\r\n")
        assert console.prompt("> ") == "Space"

    def test_prompt_eof(self) -> None:
        """Test closed input raises EOFError."""
        console, _ = make_console("")
        with pytest.raises(EOFError):
            console.prompt("> ")


class TestCaptureSession:
    """Tests for CaptureSession."""

    def test_two_key_session(self) -> None:
        """Test draining, naming and capturing two keys in order."""
        transport = ScriptedTransport([
            b"\x09" * 5,  # stale
            b"\x09" * 3,  # stale
            b"",
            bytes(KEY_A),
            b"",
            bytes(KEY_B),
        ])
        console, _ = make_console("A\nN\nB\nQ\n")

        entries = CaptureSession(transport, console).run()

        assert entries == [
            Keymap(key_name="A", map=KEY_A),
            Keymap(key_name="B", map=KEY_B),
        ]

    def test_read_timeouts(self) -> None:
        """Test drain reads use the short timeout and capture waits forever."""
        transport = ScriptedTransport([b"\x01", b"", bytes(KEY_A)])
        console, _ = make_console("A\nQ\n")

        CaptureSession(transport, console, drain_timeout_ms=100).run()

        assert transport.reads == [(8, 100), (8, 100), (8, 0)]

    def test_state_transitions(self) -> None:
        """Test each step moves through the states in order."""
        transport = ScriptedTransport([b"", bytes(KEY_A)])
        console, _ = make_console("A\nq\n")
        session = CaptureSession(transport, console)

        assert session.state is CaptureState.DRAINING
        assert session.step() is CaptureState.AWAITING_NAME
        assert session.step() is CaptureState.AWAITING_KEY_PRESS
        assert session.step() is CaptureState.AWAITING_MENU_CHOICE
        assert session.step() is CaptureState.TERMINATED
        assert session.finished

    def test_invalid_menu_choice(self) -> None:
        """Test an invalid choice re-prompts without advancing."""
        transport = ScriptedTransport([b"", bytes(KEY_A)])
        console, out = make_console("A\nX\nq\n")
        session = CaptureSession(transport, console)

        for _ in range(3):
            session.step()
        assert session.state is CaptureState.AWAITING_MENU_CHOICE

        assert session.step() is CaptureState.AWAITING_MENU_CHOICE
        assert len(session.entries) == 1
        assert "X is not a valid option" in out.getvalue()

        assert session.step() is CaptureState.TERMINATED
        assert len(session.entries) == 1

    def test_menu_case_insensitive(self) -> None:
        """Test lowercase n continues to another key."""
        transport = ScriptedTransport([b"", bytes(KEY_A), b"", bytes(KEY_B)])
        console, _ = make_console("A\nn\nB\nQ\n")

        entries = CaptureSession(transport, console).run()

        assert [e.key_name for e in entries] == ["A", "B"]

    def test_drain_failure_is_empty(self) -> None:
        """Test a failed drain read counts as no stale data."""
        transport = ScriptedTransport([
            b"\x05",
            TransportError("pipe error"),
            bytes(KEY_A),
        ])
        console, _ = make_console("A\nQ\n")

        entries = CaptureSession(transport, console).run()

        assert entries == [Keymap(key_name="A", map=KEY_A)]

    def test_short_report_padded(self) -> None:
        """Test reports shorter than 8 bytes are zero-padded."""
        transport = ScriptedTransport([b"", b"\x00\x00\x04"])
        console, _ = make_console("a\nQ\n")

        entries = CaptureSession(transport, console).run()

        assert entries[0].map == [0, 0, 4, 0, 0, 0, 0, 0]

    def test_capture_failure_keeps_entries(self) -> None:
        """Test a failed key-press read ends the session with prior entries."""
        transport = ScriptedTransport([
            b"",
            bytes(KEY_A),
            b"",
            TransportError("no device"),
        ])
        console, _ = make_console("A\nN\nB\n")
        session = CaptureSession(transport, console)

        with pytest.raises(CaptureReadError) as exc_info:
            session.run()

        error = exc_info.value
        assert error.identity == "04d8:00dd"
        assert error.endpoint == 0x81
        assert "04d8:00dd" in str(error)
        assert "0x81" in str(error)
        assert error.entries == [Keymap(key_name="A", map=KEY_A)]
        assert session.state is CaptureState.TERMINATED

    def test_console_eof_ends_session(self) -> None:
        """Test closed console input terminates and keeps entries."""
        transport = ScriptedTransport([b"", bytes(KEY_A)])
        console, _ = make_console("A\n")

        entries = CaptureSession(transport, console).run()

        assert entries == [Keymap(key_name="A", map=KEY_A)]

    def test_empty_name_allowed(self) -> None:
        """Test an empty key name is recorded as entered."""
        transport = ScriptedTransport([b"", bytes(KEY_A)])
        console, _ = make_console("\nQ\n")

        entries = CaptureSession(transport, console).run()

        assert entries[0].key_name == ""

    def test_output(self) -> None:
        """Test prompts and the captured key line."""
        transport = ScriptedTransport([b"", bytes(KEY_A)])
        console, out = make_console("A\nQ\n")

        CaptureSession(transport, console).run()

        text = out.getvalue()
        assert "Input a name: " in text
        assert "Press a button on your keyboard: " in text
        assert "Key A => [1, 0, 0, 0, 0, 0, 0, 0]" in text
        assert "Q: Quit | N: Next => " in text
