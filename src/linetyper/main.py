"""CLI entrypoint and main loop for terminal typing practice."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Protocol, TextIO

from . import __version__
from .engine import LINE_END_GLYPH, NEWLINE_GLYPH, OPAQUE_GLYPH, SPACE_GLYPH, TAB_GLYPH, JudgmentEngine
from .errors import ConfigError, ExhaustedSource, SessionEnd, SourceError, TerminalSetupError
from .events import EventMerger
from .models import (
    DEFAULT_TOTAL,
    DEFAULT_WIDTH,
    MAX_WIDTH,
    Char,
    Clock,
    Event,
    Key,
    Metrics,
    Settings,
    Tick,
    format_elapsed,
)
from .render import Renderer, format_accuracy
from .sources import open_source
from .terminal import raw_terminal, terminal_columns

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
QUIT_KEYS = {"ctrl-c", "eof"}
QUIT_REASON = "quit"


class EventSource(Protocol):
    def recv(self) -> Event: ...


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="linetyper", description="Line-by-line typing practice")
    parser.add_argument("-q", "--quiet", action="store_true", help="do not print the key legend")
    parser.add_argument("-i", "--ipsum", action="store_true", help="generate text (learned from --file if given)")
    parser.add_argument("-f", "--file", metavar="FILE", help="practice text file")
    parser.add_argument("--width", metavar="WIDTH", default=str(DEFAULT_WIDTH), help="practice line width")
    parser.add_argument("--total", metavar="TOTAL", default=str(DEFAULT_TOTAL), help="total characters to type")
    parser.add_argument("--seed", metavar="SEED", help="random seed for generated text")
    parser.add_argument("--log-file", metavar="PATH", help="write debug logs to PATH")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def _parse_int(option: str, raw: str) -> int:
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"{option} expects an integer, got {raw!r}.") from None


def build_settings(args: argparse.Namespace) -> Settings:
    """Validate parsed arguments into settings."""
    width = _parse_int("--width", args.width)
    if not 1 <= width <= MAX_WIDTH:
        raise ConfigError(f"--width must be between 1 and {MAX_WIDTH}, got {width}.")
    total = _parse_int("--total", args.total)
    if total < 0:
        raise ConfigError(f"--total must not be negative, got {total}.")
    seed = None if args.seed is None else _parse_int("--seed", args.seed)
    return Settings(
        width=width,
        total=total,
        quiet=args.quiet,
        file=None if args.file is None else Path(args.file),
        ipsum=args.ipsum,
        seed=seed,
        log_file=None if args.log_file is None else Path(args.log_file),
    )


def configure_logging(log_file: Path | None) -> None:
    """Send debug logs to ``log_file``; the terminal itself stays log-free."""
    if log_file is None:
        return
    try:
        handler = logging.FileHandler(log_file, encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Cannot open log file {log_file}: {exc}") from exc
    logging.basicConfig(level=logging.DEBUG, format=LOG_FORMAT, handlers=[handler])


def run(argv: list[str] | None = None) -> int:
    """Run the CLI application."""
    args = build_parser().parse_args(argv)
    try:
        settings = build_settings(args)
        configure_logging(settings.log_file)
    except ConfigError as exc:
        print(f"linetyper: {exc}", file=sys.stderr)
        return 2
    logger.debug("Starting with %s", settings)
    return play(settings)


def print_help(out: TextIO) -> None:
    out.write(
        "$ linetyper\n"
        f"$ version {__version__}\n"
        "\n"
        "- Ctrl-C: exit\n"
        "- Enter: next line\n"
        "- Backspace: undo\n"
        f"- '{SPACE_GLYPH}': space\n"
        f"- '{NEWLINE_GLYPH}': newline\n"
        f"- '{TAB_GLYPH}': tab\n"
        f"- '{OPAQUE_GLYPH}': untypeable char (any key)\n"
        f"- '{LINE_END_GLYPH}': end of line\n"
        "\n"
    )
    out.flush()


def summary_line(engine: JudgmentEngine, clock: Clock, reason: str) -> str:
    metrics = Metrics.compute(engine.counters, clock.elapsed())
    return (
        f"Report: {metrics.wpm:.0f} words per minute, {metrics.cpm:.0f} characters per minute, "
        f"{format_accuracy(metrics.accuracy).strip()} accuracy over "
        f"{format_elapsed(metrics.elapsed)} ({reason})"
    )


def handle_input(engine: JudgmentEngine, event: Event) -> str | None:
    """Apply one input event; return a termination reason when the session ends."""
    if isinstance(event, Char):
        engine.feed(event.char)
        return None
    if not isinstance(event, Key):
        return None
    if event.name in QUIT_KEYS:
        return QUIT_REASON
    if event.name == "backspace":
        engine.undo()
    elif event.name == "enter":
        try:
            engine.advance_line()
        except SessionEnd as end:
            return end.reason
    return None


def main_loop(engine: JudgmentEngine, clock: Clock, events: EventSource, renderer: Renderer) -> str:
    """Consume events until the session ends; return why it ended."""
    renderer.draw(engine, clock)
    while True:
        event = events.recv()
        if isinstance(event, Tick):
            renderer.draw(engine, clock)
            continue
        reason = handle_input(engine, event)
        if reason is not None:
            return reason


def _event_merger(fd: int) -> EventMerger:
    merger = EventMerger()
    merger.start(fd)
    return merger


def play(settings: Settings, stdin: TextIO | None = None, stdout: TextIO | None = None) -> int:
    """Run one practice session end to end and return the exit status."""
    if stdin is None:
        stdin = sys.stdin
    if stdout is None:
        stdout = sys.stdout
    try:
        source = open_source(settings)
    except SourceError as exc:
        logger.exception("Could not open text source")
        print(f"linetyper: {exc}", file=sys.stderr)
        return 1

    try:
        if not settings.quiet:
            print_help(stdout)
        engine = JudgmentEngine(source, settings.width, settings.total)
        clock = Clock.started()
        try:
            engine.advance_line()
        except ExhaustedSource:
            print("linetyper: no practice text available.", file=sys.stderr)
            return 1
        except SessionEnd as end:
            print(summary_line(engine, clock, end.reason), file=stdout)
            return 0

        renderer = Renderer(stdout, terminal_columns)
        with raw_terminal(stdin, stdout) as fd:
            events = _event_merger(fd)
            try:
                reason = main_loop(engine, clock, events, renderer)
            finally:
                events.stop()
                renderer.erase()
        logger.info("Session ended: %s", reason)
        print(summary_line(engine, clock, reason), file=stdout)
        return 0
    except (SourceError, TerminalSetupError) as exc:
        logger.exception("Session failed")
        print(f"linetyper: {exc}", file=sys.stderr)
        return 1
    finally:
        source.close()


def main_entry() -> None:
    """Console script entrypoint."""
    raise SystemExit(run())


if __name__ == "__main__":  # pragma: no cover
    main_entry()
