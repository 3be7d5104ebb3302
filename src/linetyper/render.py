"""Paint the practice line and live statistics onto the terminal."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import TextIO

from .engine import LINE_END_GLYPH, JudgmentEngine, display_glyph
from .models import Clock, Counters, Metrics, Segment, Style, format_elapsed

ESC = "\x1b"
SAVE_CURSOR = f"{ESC}7"
RESTORE_CURSOR = f"{ESC}8"
CLEAR_BELOW = f"{ESC}[J"
RESET = f"{ESC}[0m"

COLORS = {
    "black": 30,
    "red": 31,
    "green": 32,
    "yellow": 33,
    "blue": 34,
    "magenta": 35,
    "cyan": 36,
    "white": 37,
}

PLAIN = Style()
BORDER = Style(fg="green")
CORRECT = Style(fg="white")
WRONG = Style(fg="red")
CURSOR = Style(bold=True, underline=True)
PENDING = Style(fg="white", dim=True)
ACCURACY_LABEL = Style(fg="green")
SPEED_LABEL = Style(fg="cyan")
VALUE = Style(fg="white")

STATUS_GAP = " " * 6


def format_accuracy(accuracy: float | None) -> str:
    if accuracy is None:
        return " 00.00%"
    return f"{accuracy:>6.2f}%"


def clip_segments(segments: Sequence[Segment], columns: int) -> list[Segment]:
    """Keep at most ``columns`` characters of ``segments``, cutting the last one short."""
    clipped: list[Segment] = []
    for segment in segments:
        if columns <= 0:
            break
        if len(segment.text) > columns:
            segment = Segment(segment.text[:columns], segment.style)
        clipped.append(segment)
        columns -= len(segment.text)
    return clipped


def build_frame(
    line: bytes,
    record: Sequence[bool],
    width: int,
    counters: Counters,
    elapsed: float,
    available_width: int,
) -> list[Segment] | None:
    """Lay out one frame, or return ``None`` when it would not fit."""
    if available_width < width + 2:
        return None

    segments = [Segment("[", BORDER)]
    judged = len(record)
    for pos, byte in enumerate(line):
        if pos < judged:
            style = CORRECT if record[pos] else WRONG
        elif pos == judged:
            style = CURSOR
        else:
            style = PENDING
        segments.append(Segment(display_glyph(byte), style))

    used = len(line)
    if used < width:
        segments.append(Segment(LINE_END_GLYPH, PLAIN))
        used += 1
    if used < width:
        segments.append(Segment(" " * (width - used), PLAIN))

    segments.append(Segment("]", BORDER))
    metrics = Metrics.compute(counters, elapsed)
    status = [
        Segment(STATUS_GAP, PLAIN),
        Segment("✓: ", ACCURACY_LABEL),
        Segment(format_accuracy(metrics.accuracy), VALUE),
        Segment(" ", PLAIN),
        Segment("⚑: ", SPEED_LABEL),
        Segment(f"{metrics.cpm:>4.0f}(cpm)/{metrics.wpm:>4.0f}(wpm)", VALUE),
        Segment(" ", PLAIN),
        Segment(format_elapsed(elapsed), VALUE),
    ]
    segments.extend(clip_segments(status, available_width - width - 2))
    return segments


def sgr(style: Style) -> str:
    """ANSI select-graphic-rendition prefix for ``style``."""
    codes: list[int] = []
    if style.bold:
        codes.append(1)
    if style.dim:
        codes.append(2)
    if style.underline:
        codes.append(4)
    if style.fg is not None:
        codes.append(COLORS[style.fg])
    if not codes:
        return ""
    return f"{ESC}[{';'.join(str(code) for code in codes)}m"


def encode(segments: Sequence[Segment]) -> str:
    """Turn a frame into one escape-sequence string bracketed by cursor save/restore."""
    parts = [SAVE_CURSOR, CLEAR_BELOW]
    index = 0
    while index < len(segments):
        style = segments[index].style
        texts = []
        while index < len(segments) and segments[index].style == style:
            texts.append(segments[index].text)
            index += 1
        prefix = sgr(style)
        parts.append(f"{prefix}{''.join(texts)}{RESET}" if prefix else "".join(texts))
    parts.append(RESTORE_CURSOR)
    return "".join(parts)


class Renderer:
    """Write frames to the terminal, skipping frames identical to the last one."""

    def __init__(self, stream: TextIO, columns: Callable[[], int]) -> None:
        self.stream = stream
        self.columns = columns
        self._last: str | None = None

    def draw(self, engine: JudgmentEngine, clock: Clock) -> bool:
        """Paint the current state; return whether anything was written."""
        frame = build_frame(
            engine.line,
            engine.record,
            engine.width,
            engine.counters,
            clock.elapsed(),
            self.columns(),
        )
        if frame is None:
            self._last = None
            return False
        painted = encode(frame)
        if painted == self._last:
            return False
        self.stream.write(painted)
        self.stream.flush()
        self._last = painted
        return True

    def erase(self) -> None:
        """Remove the practice line from the screen."""
        self.stream.write(f"\r{CLEAR_BELOW}")
        self.stream.flush()
        self._last = None
