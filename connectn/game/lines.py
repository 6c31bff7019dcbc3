"""
lines.py - Precomputed axis lines for vectorized window scans

Every board shape has a fixed set of maximal lines along the four axes. They are
computed once per shape and reused by the win detector, the threat analyzer and
the evaluator to pull line values out of the grid with a single fancy-index.
"""

from functools import lru_cache
from typing import Tuple

import numpy as np
from numpy.lib.stride_tricks import sliding_window_view

from connectn.utils import Direction, DIRECTION_VECTORS

Line = Tuple[Direction, np.ndarray]


def _walk(row: int, col: int, dr: int, dc: int, rows: int, cols: int) -> np.ndarray:
    coords = []
    while 0 <= row < rows and 0 <= col < cols:
        coords.append((row, col))
        row += dr
        col += dc
    return np.array(coords, dtype=np.intp)


@lru_cache(maxsize=None)
def axis_lines(rows: int, cols: int) -> Tuple[Line, ...]:
    """
    All maximal lines of a rows x cols board.

    Returns:
        Tuple of (direction, coords) pairs; coords has shape (length, 2) and is
        ordered along the direction vector
    """
    lines = []

    dr, dc = DIRECTION_VECTORS[Direction.HORIZONTAL]
    for row in range(rows):
        lines.append((Direction.HORIZONTAL, _walk(row, 0, dr, dc, rows, cols)))

    dr, dc = DIRECTION_VECTORS[Direction.VERTICAL]
    for col in range(cols):
        lines.append((Direction.VERTICAL, _walk(0, col, dr, dc, rows, cols)))

    dr, dc = DIRECTION_VECTORS[Direction.DIAGONAL_DOWN]
    starts = [(row, 0) for row in range(rows)] + [(0, col) for col in range(1, cols)]
    for row, col in starts:
        lines.append((Direction.DIAGONAL_DOWN, _walk(row, col, dr, dc, rows, cols)))

    dr, dc = DIRECTION_VECTORS[Direction.DIAGONAL_UP]
    starts = [(row, 0) for row in range(rows)] + [(rows - 1, col) for col in range(1, cols)]
    for row, col in starts:
        lines.append((Direction.DIAGONAL_UP, _walk(row, col, dr, dc, rows, cols)))

    for _, coords in lines:
        coords.setflags(write=False)
    return tuple(lines)


def line_values(grid: np.ndarray, coords: np.ndarray) -> np.ndarray:
    return grid[coords[:, 0], coords[:, 1]]


def iter_windows(grid: np.ndarray, length: int):
    """
    Yield every window of `length` consecutive cells along every axis.

    Yields:
        (direction, coords, windows) where windows has shape (n, length) and
        window i covers coords[i:i + length]
    """
    rows, cols = grid.shape
    for direction, coords in axis_lines(rows, cols):
        if len(coords) < length:
            continue
        values = line_values(grid, coords)
        yield direction, coords, sliding_window_view(values, length)
