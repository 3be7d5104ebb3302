"""Scoped raw-mode terminal resource."""

from __future__ import annotations

import logging
import shutil
import termios
import tty
from collections.abc import Iterator
from contextlib import contextmanager
from typing import TextIO

from .errors import TerminalSetupError

logger = logging.getLogger(__name__)

HIDE_CURSOR = "\x1b[?25l"
SHOW_CURSOR = "\x1b[?25h"

Attributes = list[object]


def terminal_columns() -> int:
    """Current viewport width in columns."""
    return shutil.get_terminal_size(fallback=(80, 24)).columns


def _restore(fd: int, saved: Attributes, stdout: TextIO) -> None:
    """Best-effort return to cooked mode with a visible cursor."""
    try:
        stdout.write(SHOW_CURSOR)
        stdout.flush()
    except OSError:
        logger.warning("Could not show the cursor again", exc_info=True)
    try:
        termios.tcsetattr(fd, termios.TCSADRAIN, saved)
    except (termios.error, OSError):
        logger.error("Could not restore terminal attributes", exc_info=True)


@contextmanager
def raw_terminal(stdin: TextIO, stdout: TextIO) -> Iterator[int]:
    """Put the terminal in raw mode with a hidden cursor; yield the input descriptor.

    The original attributes are restored on every exit path.
    """
    try:
        fd = stdin.fileno()
        saved: Attributes = termios.tcgetattr(fd)
    except (termios.error, OSError, ValueError) as exc:
        raise TerminalSetupError(f"Standard input is not a usable terminal: {exc}") from exc

    try:
        tty.setraw(fd)
        stdout.write(HIDE_CURSOR)
        stdout.flush()
    except (termios.error, OSError) as exc:
        _restore(fd, saved, stdout)
        raise TerminalSetupError(f"Could not enter raw mode: {exc}") from exc

    logger.debug("Terminal switched to raw mode")
    try:
        yield fd
    finally:
        _restore(fd, saved, stdout)
        logger.debug("Terminal restored")
