"""Practice text sources: raw files and Markov-generated words."""

from __future__ import annotations

import logging
import random
from collections.abc import Iterator
from importlib import resources
from pathlib import Path
from typing import BinaryIO, Protocol

from .errors import SourceError
from .models import Settings

logger = logging.getLogger(__name__)

CORPUS_PACKAGE = "linetyper.corpus"

State = tuple[str, str]


class TextSource(Protocol):
    """Anything that hands out practice text a few bytes at a time."""

    def read(self, max_bytes: int) -> bytes:
        """Return up to ``max_bytes`` bytes, ``b""`` at end of content.

        Raises ``OSError`` when the underlying reader fails.
        """
        ...

    def close(self) -> None: ...


class FileSource:
    """Serve the raw bytes of a binary stream."""

    def __init__(self, stream: BinaryIO) -> None:
        self._stream = stream

    @classmethod
    def open(cls, path: Path) -> FileSource:
        try:
            stream = path.open("rb")
        except OSError as exc:
            raise SourceError(f"Could not open {path}: {exc}") from exc
        return cls(stream)

    def read(self, max_bytes: int) -> bytes:
        return self._stream.read(max_bytes)

    def close(self) -> None:
        self._stream.close()


class MarkovChain:
    """Word-level Markov chain where each pair of words predicts the next."""

    def __init__(self, rng: random.Random | None = None) -> None:
        self._rng = rng or random.Random()
        self._table: dict[State, list[str]] = {}

    def __len__(self) -> int:
        return len(self._table)

    def learn(self, text: str) -> None:
        """Add every word triple in ``text`` to the chain."""
        words = text.split()
        for first, second, third in zip(words, words[1:], words[2:]):
            self._table.setdefault((first, second), []).append(third)

    def words(self) -> Iterator[str]:
        """Yield words forever, restarting from a random state at dead ends."""
        if not self._table:
            raise SourceError("Cannot generate text from an empty corpus.")
        states = list(self._table)
        state = self._rng.choice(states)
        yield from state
        while True:
            choices = self._table.get(state)
            if not choices:
                state = self._rng.choice(states)
                yield from state
                continue
            word = self._rng.choice(choices)
            yield word
            state = (state[1], word)


class MarkovSource:
    """Endless generated text: chain words joined by single spaces.

    Every read is filled completely; a word cut at the end of one read
    continues at the start of the next.
    """

    def __init__(self, chain: MarkovChain) -> None:
        self._words = chain.words()
        self._pending = b""
        self._started = False

    def read(self, max_bytes: int) -> bytes:
        out = bytearray(self._pending[:max_bytes])
        self._pending = self._pending[max_bytes:]
        while len(out) < max_bytes:
            word = next(self._words).encode("utf-8")
            piece = word if not self._started else b" " + word
            self._started = True
            room = max_bytes - len(out)
            out += piece[:room]
            self._pending = piece[room:]
        return bytes(out)

    def close(self) -> None:
        """Nothing to release."""


def load_corpora() -> list[str]:
    """Load the bundled corpora in name order."""
    entries = sorted(
        (entry for entry in resources.files(CORPUS_PACKAGE).iterdir() if entry.name.endswith(".txt")),
        key=lambda entry: entry.name,
    )
    return [entry.read_text(encoding="utf-8") for entry in entries]


def build_chain(texts: list[str], seed: int | None = None) -> MarkovChain:
    """Learn a chain from ``texts``; fail when nothing usable was learned."""
    chain = MarkovChain(random.Random(seed))
    for text in texts:
        chain.learn(text)
    if not len(chain):
        raise SourceError("Corpus needs at least three words to generate text.")
    return chain


def open_source(settings: Settings) -> TextSource:
    """Pick the text source described by ``settings``."""
    if settings.file is None:
        logger.info("Generating text from bundled corpora")
        return MarkovSource(build_chain(load_corpora(), settings.seed))
    if settings.ipsum:
        logger.info("Generating text learned from %s", settings.file)
        try:
            text = settings.file.read_text(encoding="utf-8", errors="replace")
        except OSError as exc:
            raise SourceError(f"Could not read {settings.file}: {exc}") from exc
        return MarkovSource(build_chain([text], settings.seed))
    logger.info("Reading practice text from %s", settings.file)
    return FileSource.open(settings.file)
