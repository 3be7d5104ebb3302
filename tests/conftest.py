from collections.abc import Callable
from pathlib import Path

import pytest


@pytest.fixture
def practice_file(tmp_path: Path) -> Callable[[bytes], Path]:
    """Write practice bytes to a file and return its path."""

    def write(data: bytes) -> Path:
        path = tmp_path / "practice.txt"
        path.write_bytes(data)
        return path

    return write
