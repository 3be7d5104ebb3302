"""Error taxonomy for a practice session."""

from __future__ import annotations


class LineTyperError(Exception):
    """Base class for all linetyper errors and session signals."""


class ConfigError(LineTyperError):
    """Malformed command-line configuration."""


class SourceError(LineTyperError):
    """Practice text could not be read."""


class TerminalSetupError(LineTyperError):
    """Raw mode or screen setup failed."""


class SessionEnd(LineTyperError):
    """Legitimate end of a session, not a failure."""

    reason = "finished"


class ExhaustedSource(SessionEnd):
    """The text source has no more content."""

    reason = "source exhausted"


class BudgetReached(SessionEnd):
    """The total character budget has been consumed."""

    reason = "completed"
