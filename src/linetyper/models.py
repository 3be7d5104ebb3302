"""Core value types shared by the engine, renderer and main loop."""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

MAX_WIDTH = 1024
DEFAULT_WIDTH = 80
DEFAULT_TOTAL = 1024
RATE_CEILING = 9999.0


@dataclass(frozen=True)
class Settings:
    """Validated session configuration."""

    width: int = DEFAULT_WIDTH
    total: int = DEFAULT_TOTAL
    quiet: bool = False
    file: Path | None = None
    ipsum: bool = False
    seed: int | None = None
    log_file: Path | None = None


@dataclass(frozen=True)
class Clock:
    """Monotonic session start instant."""

    start: float
    now: Callable[[], float] = field(default=time.monotonic, compare=False, repr=False)

    @classmethod
    def started(cls, now: Callable[[], float] = time.monotonic) -> Clock:
        """Create a clock that starts at the current instant."""
        return cls(start=now(), now=now)

    def elapsed(self) -> float:
        """Seconds since the session started, never negative."""
        return max(0.0, self.now() - self.start)


@dataclass(frozen=True)
class Counters:
    """Snapshot of the session judgment counters."""

    right: int = 0
    wrong: int = 0
    words: int = 0

    @property
    def judged(self) -> int:
        return self.right + self.wrong


@dataclass(frozen=True)
class Metrics:
    """Derived accuracy and speed figures."""

    elapsed: float
    accuracy: float | None
    cpm: float
    wpm: float

    @classmethod
    def compute(cls, counters: Counters, elapsed: float) -> Metrics:
        """Derive rates from counters, clamping the early-session spike."""
        accuracy = None if counters.judged == 0 else 100.0 * counters.right / counters.judged
        return cls(
            elapsed=elapsed,
            accuracy=accuracy,
            cpm=_rate(counters.judged, elapsed),
            wpm=_rate(counters.words, elapsed),
        )


def _rate(count: int, elapsed: float) -> float:
    """Per-minute rate clamped to the display ceiling."""
    if elapsed <= 0.0:
        return RATE_CEILING if count else 0.0
    return min(60.0 * count / elapsed, RATE_CEILING)


def format_elapsed(seconds: float) -> str:
    """Format seconds as HH:MM:SS, wrapping hours at a day."""
    total = int(seconds)
    secs = total % 60
    total //= 60
    mins = total % 60
    total //= 60
    hours = total % 24
    return f"{hours:02}:{mins:02}:{secs:02}"


@dataclass(frozen=True)
class Tick:
    """Render timer event."""


@dataclass(frozen=True)
class Char:
    """A printable character typed by the user."""

    char: str


@dataclass(frozen=True)
class Key:
    """A named non-printable key such as ``enter`` or ``ctrl-c``."""

    name: str


@dataclass(frozen=True)
class Mouse:
    """An undecoded mouse report."""

    raw: bytes


InputEvent = Char | Key | Mouse
Event = Tick | InputEvent


@dataclass(frozen=True)
class Style:
    """Terminal text attributes for one segment."""

    fg: str | None = None
    bold: bool = False
    dim: bool = False
    underline: bool = False


@dataclass(frozen=True)
class Segment:
    """One styled write instruction."""

    text: str
    style: Style = Style()
