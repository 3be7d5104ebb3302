"""Producers of terminal input and render ticks, and the merge point between them."""

from __future__ import annotations

import codecs
import logging
import os
import queue
import threading
from collections.abc import Callable

from .models import Char, Event, InputEvent, Key, Mouse, Tick

logger = logging.getLogger(__name__)

QUEUE_CAPACITY = 1024
TICK_PERIOD = 0.015
READ_CHUNK = 1024

ESC = "\x1b"

CSI_KEYS = {
    "A": "up",
    "B": "down",
    "C": "right",
    "D": "left",
    "H": "home",
    "F": "end",
    "Z": "backtab",
    "1~": "home",
    "2~": "insert",
    "3~": "delete",
    "4~": "end",
    "5~": "page-up",
    "6~": "page-down",
}

SS3_KEYS = {
    "A": "up",
    "B": "down",
    "C": "right",
    "D": "left",
    "H": "home",
    "F": "end",
    "P": "f1",
    "Q": "f2",
    "R": "f3",
    "S": "f4",
}

CONTROL_KEYS = {
    "\r": "enter",
    "\n": "enter",
    "\x7f": "backspace",
    "\x08": "backspace",
    "\x03": "ctrl-c",
    "\x04": "ctrl-d",
}


class KeyDecoder:
    """Turn raw terminal bytes into key, character and mouse events.

    Multi-byte UTF-8 characters split across reads are reassembled. Escape
    sequences are expected to arrive within a single read, which is how
    terminals deliver them.
    """

    def __init__(self) -> None:
        self._utf8 = codecs.getincrementaldecoder("utf-8")(errors="replace")

    def feed(self, data: bytes) -> list[InputEvent]:
        text = self._utf8.decode(data)
        events: list[InputEvent] = []
        index = 0
        while index < len(text):
            ch = text[index]
            if ch == ESC:
                event, index = self._escape(text, index)
                events.append(event)
                continue
            if ch in CONTROL_KEYS:
                events.append(Key(CONTROL_KEYS[ch]))
            elif ch == "\t":
                events.append(Char(ch))
            elif ord(ch) < 0x20:
                events.append(Key(f"ctrl-{chr(ord(ch) + 0x60)}"))
            else:
                events.append(Char(ch))
            index += 1
        return events

    def _escape(self, text: str, start: int) -> tuple[InputEvent, int]:
        """Decode the escape sequence at ``start``; return the event and the next index."""
        if start + 1 >= len(text):
            return Key("escape"), start + 1
        kind = text[start + 1]
        if kind == "[":
            return self._csi(text, start)
        if kind == "O" and start + 2 < len(text):
            name = SS3_KEYS.get(text[start + 2], "unknown")
            return Key(name), start + 3
        if kind == ESC:
            return Key("escape"), start + 1
        return Key(f"alt-{kind}"), start + 2

    def _csi(self, text: str, start: int) -> tuple[InputEvent, int]:
        body_start = start + 2
        if text.startswith("M", body_start):
            end = min(body_start + 4, len(text))
            return Mouse(text[start:end].encode("utf-8", errors="replace")), end
        end = body_start
        while end < len(text) and not ("\x40" <= text[end] <= "\x7e"):
            end += 1
        if end >= len(text):
            return Key("unknown"), len(text)
        sequence = text[body_start : end + 1]
        if sequence.startswith("<"):
            return Mouse(text[start : end + 1].encode("utf-8")), end + 1
        params, final = sequence[:-1], sequence[-1]
        # Modified keys arrive as "1;5A" or "3;5~"; the modifier is dropped.
        if ";" in params:
            params = params.split(";")[0] if final == "~" else ""
        return Key(CSI_KEYS.get(params + final, "unknown")), end + 1


def read_terminal_events(
    fd: int,
    sink: Callable[[InputEvent], None],
    read: Callable[[int, int], bytes] = os.read,
) -> None:
    """Forward decoded events from ``fd`` until end of input.

    An ``eof`` key is posted when the descriptor closes or fails, so the
    consumer never waits on a dead reader.
    """
    decoder = KeyDecoder()
    while True:
        try:
            data = read(fd, READ_CHUNK)
        except OSError:
            logger.exception("Terminal read failed")
            sink(Key("eof"))
            return
        if not data:
            sink(Key("eof"))
            return
        for event in decoder.feed(data):
            sink(event)


def run_ticker(post: Callable[[], object], period: float, stop: threading.Event) -> None:
    """Post a tick every ``period`` seconds until ``stop`` is set."""
    while not stop.wait(period):
        post()


class EventMerger:
    """Single wait point over the tick queue and the input queue.

    Each producer owns one bounded queue. ``recv`` blocks until either queue
    holds an event and alternates between them when both do. Ticks are
    dropped when their queue is full; input events block their producer
    instead of being lost.
    """

    def __init__(self, capacity: int = QUEUE_CAPACITY) -> None:
        self.ticks: queue.Queue[Tick] = queue.Queue(maxsize=capacity)
        self.inputs: queue.Queue[InputEvent] = queue.Queue(maxsize=capacity)
        self.dropped_ticks = 0
        self._ready = threading.Semaphore(0)
        self._queues: tuple[queue.Queue[Tick] | queue.Queue[InputEvent], ...] = (self.ticks, self.inputs)
        self._turn = 0
        self._stop = threading.Event()

    def post_tick(self) -> bool:
        try:
            self.ticks.put_nowait(Tick())
        except queue.Full:
            self.dropped_ticks += 1
            return False
        self._ready.release()
        return True

    def post_input(self, event: InputEvent) -> None:
        self.inputs.put(event)
        self._ready.release()

    def recv(self) -> Event:
        """Block until an event is available and return it."""
        self._ready.acquire()
        count = len(self._queues)
        for offset in range(count):
            slot = (self._turn + offset) % count
            try:
                event = self._queues[slot].get_nowait()
            except queue.Empty:
                continue
            self._turn = (slot + 1) % count
            return event
        raise RuntimeError("Event merger was signalled with both queues empty.")

    def start(self, fd: int, period: float = TICK_PERIOD) -> None:
        """Spawn the terminal reader and ticker threads.

        Both are daemons: the reader blocks on the terminal forever and is
        abandoned at process exit.
        """
        reader = threading.Thread(
            target=read_terminal_events,
            args=(fd, self.post_input),
            name="term_events",
            daemon=True,
        )
        ticker = threading.Thread(
            target=run_ticker,
            args=(self.post_tick, period, self._stop),
            name="ticker",
            daemon=True,
        )
        reader.start()
        ticker.start()
        logger.debug("Event producers started (tick period %.3fs)", period)

    def stop(self) -> None:
        """Stop ticking; the reader is left to die with the process."""
        self._stop.set()
        logger.debug("Ticker stopped; %d ticks dropped on a full queue", self.dropped_ticks)
