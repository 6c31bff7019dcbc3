import pytest

from connectn.debug import debug, DebugLevel

SYMBOLS = {'.': 0, 'X': 1, 'O': 2}


@pytest.fixture(autouse=True)
def quiet_logging():
    debug.configure(level=DebugLevel.ERROR)
    yield


@pytest.fixture
def make_grid():
    """Build nested row lists from bottom-aligned strings ('.', 'X', 'O')."""
    def _make(lines, rows=6):
        cols = len(lines[0])
        body = [[SYMBOLS[ch] for ch in line] for line in lines]
        return [[0] * cols for _ in range(rows - len(body))] + body
    return _make
