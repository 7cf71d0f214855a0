from __future__ import annotations

from typing import List, Optional, Tuple

import pytest

from svi import logger
from svi.__main__ import EditorContext
from svi.ui.terminal import TermEvent, char_event, key_event, Key


class FakeTerminal:
    """Stands in for TerminalSession: records output, replays scripted events."""

    def __init__(self, size: Optional[Tuple[int, int]] = (80, 24), events=None) -> None:
        self.output = bytearray()
        self.sizes: List[Optional[Tuple[int, int]]] = [size]
        self.events: List[TermEvent] = list(events or [])
        self.initialized = False
        self.shutdowns = 0

    def __enter__(self):
        self.initialized = True
        return self

    def __exit__(self, *exc):
        self.initialized = False
        self.shutdowns += 1
        return False

    def write(self, data: bytes) -> None:
        self.output += data

    def size(self):
        if len(self.sizes) > 1:
            return self.sizes.pop(0)
        return self.sizes[0]

    def wait_event(self) -> TermEvent:
        if not self.events:
            raise AssertionError("editor waited for more input than was scripted")
        return self.events.pop(0)


def buffer_lines(buf) -> List[bytes]:
    """The text of rows 0..len-1; absent rows come back as b""."""
    return [buf.row_bytes(row) for row in range(buf.len)]


def keys(text: str) -> List[TermEvent]:
    """Events for typing text; \r is Enter and \x1b is Esc."""
    events = []
    for ch in text:
        if ch == "\r":
            events.append(key_event(Key.ENTER))
        elif ch == "\x1b":
            events.append(key_event(Key.ESC))
        else:
            events.append(char_event(ch))
    return events


@pytest.fixture(autouse=True)
def log_to_tmp(tmp_path, monkeypatch):
    monkeypatch.setattr(logger, "LOG_FILE_PATH", str(tmp_path / "svi.log"))
    monkeypatch.setenv("SVI_CONFIG", str(tmp_path / "missing.conf"))


@pytest.fixture
def term() -> FakeTerminal:
    return FakeTerminal()


@pytest.fixture
def context(term) -> EditorContext:
    ctx = EditorContext(term)
    ctx.query_size()
    return ctx
