import logging
import os
import threading

import pytest

from linetyper.events import EventMerger, KeyDecoder, read_terminal_events, run_ticker
from linetyper.models import Char, Key, Mouse, Tick


@pytest.mark.parametrize(
    ("data", "expected"),
    [
        (b"ab", [Char("a"), Char("b")]),
        (b"A ", [Char("A"), Char(" ")]),
        (b"\r", [Key("enter")]),
        (b"\n", [Key("enter")]),
        (b"\x7f", [Key("backspace")]),
        (b"\x08", [Key("backspace")]),
        (b"\x03", [Key("ctrl-c")]),
        (b"\x04", [Key("ctrl-d")]),
        (b"\x01", [Key("ctrl-a")]),
        (b"\t", [Char("\t")]),
        (b"\x1b", [Key("escape")]),
        (b"\x1bx", [Key("alt-x")]),
        (b"\x1b[A", [Key("up")]),
        (b"\x1b[1;5C", [Key("right")]),
        (b"\x1b[3~", [Key("delete")]),
        (b"\x1b[3;5~", [Key("delete")]),
        (b"\x1bOP", [Key("f1")]),
        (b"\x1b[99z", [Key("unknown")]),
        (b"a\x1b[Db", [Char("a"), Key("left"), Char("b")]),
        ("é".encode(), [Char("é")]),
    ],
)
def test_key_decoder(data: bytes, expected: list[object]) -> None:
    assert KeyDecoder().feed(data) == expected


def test_key_decoder_joins_utf8_split_across_reads() -> None:
    decoder = KeyDecoder()
    assert decoder.feed(b"\xc3") == []
    assert decoder.feed(b"\xa9") == [Char("é")]


def test_key_decoder_reports_mouse() -> None:
    sgr_report = b"\x1b[<0;10;5M"
    assert KeyDecoder().feed(sgr_report + b"a") == [Mouse(sgr_report), Char("a")]
    x10_report = b"\x1b[M !!"
    assert KeyDecoder().feed(x10_report) == [Mouse(x10_report)]


def test_reader_forwards_events_then_eof() -> None:
    chunks = [b"ab", b"\r", b""]
    received: list[object] = []
    read_terminal_events(3, received.append, read=lambda fd, size: chunks.pop(0))
    assert received == [Char("a"), Char("b"), Key("enter"), Key("eof")]


def test_reader_posts_eof_on_read_error() -> None:
    def failing_read(fd: int, size: int) -> bytes:
        raise OSError("terminal gone")

    received: list[object] = []
    read_terminal_events(3, received.append, read=failing_read)
    assert received == [Key("eof")]


def test_ticker_posts_until_stopped() -> None:
    stop = threading.Event()
    calls: list[int] = []

    def post() -> None:
        calls.append(1)
        if len(calls) == 3:
            stop.set()

    run_ticker(post, 0.001, stop)
    assert len(calls) == 3


def test_merger_alternates_between_ready_queues() -> None:
    merger = EventMerger()
    merger.post_tick()
    merger.post_tick()
    merger.post_input(Char("a"))
    merger.post_input(Char("b"))
    assert [merger.recv() for _ in range(4)] == [Tick(), Char("a"), Tick(), Char("b")]


def test_merger_serves_whichever_queue_has_data() -> None:
    merger = EventMerger()
    merger.post_input(Char("a"))
    merger.post_input(Char("b"))
    merger.post_input(Key("enter"))
    assert [merger.recv() for _ in range(3)] == [Char("a"), Char("b"), Key("enter")]


def test_merger_drops_ticks_when_full() -> None:
    merger = EventMerger(capacity=2)
    assert merger.post_tick() is True
    assert merger.post_tick() is True
    assert merger.post_tick() is False
    assert merger.dropped_ticks == 1
    assert merger.recv() == Tick()
    assert merger.recv() == Tick()


def test_merger_stop_logs_dropped_ticks(caplog: pytest.LogCaptureFixture) -> None:
    merger = EventMerger(capacity=1)
    merger.post_tick()
    merger.post_tick()
    merger.post_tick()
    with caplog.at_level(logging.DEBUG, logger="linetyper.events"):
        merger.stop()
    assert "2 ticks dropped" in caplog.text


def test_merger_never_drops_input_under_backpressure() -> None:
    merger = EventMerger(capacity=4)
    sent = [Char(chr(ord("a") + index % 26)) for index in range(200)]

    def produce() -> None:
        for event in sent:
            merger.post_input(event)

    producer = threading.Thread(target=produce, daemon=True)
    producer.start()
    received = [merger.recv() for _ in sent]
    producer.join(timeout=5)
    assert received == sent


def test_merger_start_reads_from_descriptor() -> None:
    read_fd, write_fd = os.pipe()
    merger = EventMerger()
    try:
        os.write(write_fd, b"x\x03")
        os.close(write_fd)
        merger.start(read_fd, period=0.001)
        inputs: list[object] = []
        saw_tick = False
        while Key("eof") not in inputs:
            event = merger.recv()
            if isinstance(event, Tick):
                saw_tick = True
            else:
                inputs.append(event)
        assert inputs == [Char("x"), Key("ctrl-c"), Key("eof")]
        while not saw_tick:
            saw_tick = isinstance(merger.recv(), Tick)
    finally:
        merger.stop()
        os.close(read_fd)
