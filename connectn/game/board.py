"""
board.py - Board representation shared by the gravity and free-placement games

This module implements the Board class: a numpy grid holding one small integer per
intersection, bounds-checked reads and writes, column-height tracking for gravity mode,
and cheap independent clones for speculative search.
"""

from typing import List, Tuple, Optional, Sequence

import numpy as np

from connectn.debug import debug
from connectn.errors import ConfigError, OutOfBounds, InvalidPlayer, InvalidMove
from connectn.utils import Player, render_board_ascii

Cell = Tuple[int, int]

_CELL_VALUES = (Player.EMPTY.value, Player.ONE.value, Player.TWO.value)


class Board:
    """
    A rows x cols connection-game board.

    In gravity mode stones occupy the lowest empty row of their column, and every
    write is checked so that no empty cell ever sits beneath an occupied one.
    """

    def __init__(self, rows: int, cols: int, gravity: bool = False):
        """
        Initialize an empty board.

        Args:
            rows: Number of rows (must be positive)
            cols: Number of columns (must be positive)
            gravity: True for drop-in-column games
        """
        if int(rows) <= 0 or int(cols) <= 0:
            raise ConfigError(f"Board dimensions must be positive, got {rows}x{cols}")

        debug.trace(f"Initializing {rows}x{cols} board (gravity={gravity})", "board")
        self.rows = int(rows)
        self.cols = int(cols)
        self.gravity = bool(gravity)
        self.grid = np.zeros((self.rows, self.cols), dtype=np.int8)
        self.column_heights = np.zeros(self.cols, dtype=np.int16) if self.gravity else None

    @classmethod
    def from_rows(cls, rows_data: Sequence[Sequence[int]], gravity: bool = False) -> 'Board':
        """
        Build a board from nested row lists (row 0 is the top row).

        Raises:
            ConfigError: if the data is not rectangular, holds unknown values, or
                has floating stones in gravity mode
        """
        try:
            grid = np.array(rows_data, dtype=np.int8)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Board rows must be a rectangular grid of integers: {e}") from e
        if grid.ndim != 2:
            raise ConfigError("Board rows must be a rectangular grid")
        if not np.isin(grid, _CELL_VALUES).all():
            raise ConfigError("Board cells must be 0 (empty), 1 or 2")

        board = cls(grid.shape[0], grid.shape[1], gravity)
        board.grid[:, :] = grid

        if gravity:
            occupied = grid != Player.EMPTY.value
            for col in range(board.cols):
                column = occupied[:, col]
                height = int(column.sum())
                # Stones must form a solid stack from the bottom row up
                if height and not column[board.rows - height:].all():
                    raise ConfigError(f"Floating stone in column {col}")
                board.column_heights[col] = height

        return board

    @classmethod
    def from_flat(cls, values: Sequence[int], rows: int, cols: int, gravity: bool = False) -> 'Board':
        """Build a board from a row-major flat snapshot."""
        if len(values) != rows * cols:
            raise ConfigError(f"Expected {rows * cols} cells, got {len(values)}")
        return cls.from_rows(np.asarray(values).reshape(rows, cols), gravity)

    def clone(self) -> 'Board':
        """
        Create a deep, independent copy of the board.

        Returns:
            A new Board instance with the same cells and column heights
        """
        new_board = Board.__new__(Board)
        new_board.rows = self.rows
        new_board.cols = self.cols
        new_board.gravity = self.gravity
        new_board.grid = self.grid.copy()
        new_board.column_heights = None if self.column_heights is None else self.column_heights.copy()
        return new_board

    def in_bounds(self, row: int, col: int) -> bool:
        return 0 <= row < self.rows and 0 <= col < self.cols

    def _check_bounds(self, row: int, col: int):
        if not self.in_bounds(row, col):
            raise OutOfBounds(f"Position ({row}, {col}) is outside the {self.rows}x{self.cols} board",
                              row, col)

    def _check_column(self, col: int):
        if not 0 <= col < self.cols:
            raise OutOfBounds(f"Column {col} is outside 0..{self.cols - 1}", None, col)

    def get(self, row: int, col: int) -> int:
        """
        Read a cell.

        Returns:
            0 for empty, 1 or 2 for a player's stone
        """
        self._check_bounds(row, col)
        return int(self.grid[row, col])

    def set(self, row: int, col: int, value) -> None:
        """
        Write a cell.

        Args:
            row: Row index
            col: Column index
            value: Player or raw cell value (0 clears the cell)

        Raises:
            OutOfBounds: outside the board
            InvalidPlayer: value is not 0, 1 or 2
            InvalidMove: the write would float a stone or hollow a column (gravity mode)
        """
        self._check_bounds(row, col)
        value = value.value if isinstance(value, Player) else value
        if value not in _CELL_VALUES:
            raise InvalidPlayer(f"Invalid cell value: {value!r}", row, col)

        current = int(self.grid[row, col])
        if self.gravity and (current == Player.EMPTY.value) != (value == Player.EMPTY.value):
            height = int(self.column_heights[col])
            if value != Player.EMPTY.value:
                if row != self.rows - 1 - height:
                    raise InvalidMove(f"Stone at ({row}, {col}) would float above row "
                                      f"{self.rows - 1 - height}", row, col)
                self.column_heights[col] = height + 1
            else:
                if row != self.rows - height:
                    raise InvalidMove(f"Only the top stone of column {col} can be removed", row, col)
                self.column_heights[col] = height - 1

        self.grid[row, col] = value

    def is_empty(self, row: int, col: int) -> bool:
        return self.get(row, col) == Player.EMPTY.value

    def is_playable(self, row: int, col: int) -> bool:
        """True if a stone may legally be placed at (row, col) right now."""
        if not self.in_bounds(row, col) or self.grid[row, col] != Player.EMPTY.value:
            return False
        if self.gravity:
            return row == self.rows - 1 - int(self.column_heights[col])
        return True

    def is_full(self) -> bool:
        return not (self.grid == Player.EMPTY.value).any()

    def is_column_full(self, col: int) -> bool:
        self._check_column(col)
        if self.gravity:
            return int(self.column_heights[col]) >= self.rows
        return not (self.grid[:, col] == Player.EMPTY.value).any()

    def column_height(self, col: int) -> int:
        """Number of stones in a column."""
        self._check_column(col)
        if self.gravity:
            return int(self.column_heights[col])
        return int(np.count_nonzero(self.grid[:, col]))

    def drop_row(self, col: int) -> Optional[int]:
        """
        Get the row a stone dropped into this column would land on.

        Returns:
            The landing row, or None if the column is full
        """
        if self.is_column_full(col):
            return None
        if self.gravity:
            return self.rows - 1 - int(self.column_heights[col])
        empty_rows = np.flatnonzero(self.grid[:, col] == Player.EMPTY.value)
        return int(empty_rows[-1])

    def legal_cells(self) -> List[Cell]:
        """
        List the cells a stone may be placed on.

        Gravity mode yields one landing cell per open column, ordered by column;
        free-placement mode yields every empty cell in row-major order.
        """
        if self.gravity:
            return [(self.rows - 1 - int(h), col)
                    for col, h in enumerate(self.column_heights) if h < self.rows]
        rows, cols = np.nonzero(self.grid == Player.EMPTY.value)
        return list(zip(rows.tolist(), cols.tolist()))

    def cell_order_key(self, cell: Cell) -> Tuple[int, int]:
        """Deterministic tie-break order: by column in gravity mode, row-major otherwise."""
        row, col = cell
        return (col, row) if self.gravity else (row, col)

    def stone_count(self) -> int:
        return int(np.count_nonzero(self.grid))

    def empty_count(self) -> int:
        return self.rows * self.cols - self.stone_count()

    def to_flat(self) -> List[int]:
        """Row-major snapshot, one small integer per cell."""
        return self.grid.ravel().tolist()

    def to_rows(self) -> List[List[int]]:
        return self.grid.tolist()

    def fingerprint(self) -> bytes:
        """Compact key identifying the cell contents."""
        return self.grid.tobytes()

    def render(self) -> str:
        return render_board_ascii(self.grid)

    def __eq__(self, other) -> bool:
        if not isinstance(other, Board):
            return NotImplemented
        return (self.gravity == other.gravity
                and self.grid.shape == other.grid.shape
                and np.array_equal(self.grid, other.grid))

    __hash__ = None

    def __str__(self) -> str:
        return self.render()

    def __repr__(self) -> str:
        mode = "gravity" if self.gravity else "free"
        return f"Board({self.rows}x{self.cols}, {mode}, stones={self.stone_count()})"
