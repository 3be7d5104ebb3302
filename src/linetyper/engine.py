"""Keystroke judgment against the current practice line."""

from __future__ import annotations

import logging

from .errors import BudgetReached, ExhaustedSource, SourceError
from .models import Counters
from .sources import TextSource

logger = logging.getLogger(__name__)

SPACE = 0x20
NEWLINE_BYTES = frozenset(b"\n\r")
TAB = 0x09
DELETE = 0x7F

SPACE_GLYPH = "␣"
NEWLINE_GLYPH = "↵"
TAB_GLYPH = "→"
OPAQUE_GLYPH = "·"
LINE_END_GLYPH = "§"


def display_glyph(byte: int) -> str:
    """Map one practice byte to the single-column glyph shown for it."""
    if byte == SPACE:
        return SPACE_GLYPH
    if byte in NEWLINE_BYTES:
        return NEWLINE_GLYPH
    if byte == TAB:
        return TAB_GLYPH
    if is_lenient(byte):
        return OPAQUE_GLYPH
    return chr(byte)


def is_lenient(byte: int) -> bool:
    """Bytes that accept any keystroke.

    That is non-ASCII payload, line breaks and every control byte a key cannot
    produce as a plain character. Tab stays strict since the Tab key types it.
    """
    if byte >= 0x80 or byte in NEWLINE_BYTES:
        return True
    return (byte < SPACE and byte != TAB) or byte == DELETE


def judge(expected: int, char: str) -> bool:
    """Return whether ``char`` is an accepted keystroke for ``expected``."""
    return is_lenient(expected) or chr(expected) == char


class JudgmentEngine:
    """Own the practice line, its judgment record and the session counters.

    The judgment record is always a prefix of the line. A fresh engine holds an
    empty line, which counts as complete, so the first ``advance_line`` call
    loads the opening line.
    """

    def __init__(self, source: TextSource, width: int, total: int) -> None:
        self.source = source
        self.width = width
        self.total = total
        self.line = b""
        self.record: list[bool] = []
        self.right = 0
        self.wrong = 0
        self.words = 0
        # Last byte of the previous line, so a word split across lines is counted once.
        self._carry: int | None = None

    @property
    def counters(self) -> Counters:
        return Counters(right=self.right, wrong=self.wrong, words=self.words)

    @property
    def cursor(self) -> int:
        """Index of the next position to judge."""
        return len(self.record)

    @property
    def line_complete(self) -> bool:
        return len(self.record) == len(self.line)

    @property
    def remaining_budget(self) -> int:
        return max(0, self.total - self.right - self.wrong)

    def _previous_byte(self, pos: int) -> int | None:
        if pos > 0:
            return self.line[pos - 1]
        return self._carry

    def _opens_word_gap(self, pos: int) -> bool:
        """Whether judging ``pos`` crosses a non-space to space transition."""
        previous = self._previous_byte(pos)
        return self.line[pos] == SPACE and previous is not None and previous != SPACE

    def feed(self, char: str) -> bool | None:
        """Judge one keystroke; return the outcome or ``None`` when the line is full."""
        if self.line_complete:
            return None
        pos = len(self.record)
        if self._opens_word_gap(pos):
            self.words += 1
        accepted = judge(self.line[pos], char)
        self.record.append(accepted)
        if accepted:
            self.right += 1
        else:
            self.wrong += 1
        return accepted

    def undo(self) -> bool | None:
        """Revert the last keystroke; return its outcome or ``None`` if nothing to undo."""
        if not self.record:
            return None
        pos = len(self.record) - 1
        if self._opens_word_gap(pos):
            self.words -= 1
        accepted = self.record.pop()
        if accepted:
            self.right -= 1
        else:
            self.wrong -= 1
        return accepted

    def advance_line(self) -> bool:
        """Replace a completed line with fresh text from the source.

        Returns ``False`` without touching the source when the current line is
        not fully judged yet. Raises ``BudgetReached`` when no budget is left,
        ``ExhaustedSource`` when the source has nothing more and ``SourceError``
        when reading fails.
        """
        if not self.line_complete:
            return False
        request = min(self.width, self.remaining_budget)
        if request == 0:
            logger.info("Character budget of %d reached", self.total)
            raise BudgetReached()
        try:
            chunk = self.source.read(request)
        except OSError as exc:
            raise SourceError(f"Could not read practice text: {exc}") from exc
        if not chunk:
            logger.info("Text source exhausted after %d characters", self.right + self.wrong)
            raise ExhaustedSource()
        if self.line:
            self._carry = self.line[-1]
        self.line = bytes(chunk[:request])
        self.record = []
        logger.debug("Advanced to line of %d bytes (%d budget left)", len(self.line), self.remaining_budget)
        return True
