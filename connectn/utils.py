"""
utils.py - Utility functions and constants for the connection-game core

This module provides common constants, game variant presets, enumerations, and helper
functions used throughout the board, rules and AI modules.
"""

from enum import Enum, auto
from typing import Dict, Any, Optional

import numpy as np

from connectn.errors import ConfigError, InvalidPlayer

# Game variant presets
CONNECT4_ROWS = 6
CONNECT4_COLS = 7
CONNECT4_WIN = 4

GOMOKU_SIZE = 15
GOMOKU_WIN = 5

VARIANTS: Dict[str, Dict[str, Any]] = {
    'connect4': {
        'rows': CONNECT4_ROWS,
        'cols': CONNECT4_COLS,
        'win_condition': CONNECT4_WIN,
        'gravity': True,
    },
    'gomoku': {
        'rows': GOMOKU_SIZE,
        'cols': GOMOKU_SIZE,
        'win_condition': GOMOKU_WIN,
        'gravity': False,
    },
}

# Score magnitude of a decided position; dominates every heuristic sum
WIN_SCORE = 10000
HEURISTIC_CAP = WIN_SCORE // 2


class Player(Enum):
    """A side of the game; EMPTY doubles as the value of a vacant cell."""
    EMPTY = 0
    ONE = 1    # Moves first unless a series says otherwise
    TWO = 2

    def other(self) -> 'Player':
        """The opponent; EMPTY has none and maps to itself."""
        return _OPPONENT[self]

    @property
    def symbol(self) -> str:
        return _SYMBOLS[self.value]

    @classmethod
    def from_value(cls, value) -> 'Player':
        """Resolve a Player or a raw cell value to a real (non-empty) player."""
        if isinstance(value, Player):
            player = value
        else:
            try:
                player = Player(int(value))
            except (TypeError, ValueError):
                raise InvalidPlayer(f"Unknown player: {value!r}") from None
        if player == Player.EMPTY:
            raise InvalidPlayer("EMPTY is not a player")
        return player

    def __str__(self):
        return " " if self == Player.EMPTY else self.symbol


_OPPONENT = {Player.ONE: Player.TWO, Player.TWO: Player.ONE, Player.EMPTY: Player.EMPTY}
_SYMBOLS = {Player.EMPTY.value: ".", Player.ONE.value: "X", Player.TWO.value: "O"}


class GameResult(Enum):
    """Final or running outcome of a game."""
    IN_PROGRESS = auto()
    PLAYER_ONE_WIN = auto()
    PLAYER_TWO_WIN = auto()
    DRAW = auto()

    @property
    def winner(self) -> Optional[Player]:
        return {GameResult.PLAYER_ONE_WIN: Player.ONE,
                GameResult.PLAYER_TWO_WIN: Player.TWO}.get(self)

    @classmethod
    def win_for(cls, player: Player) -> 'GameResult':
        return cls.PLAYER_ONE_WIN if player == Player.ONE else cls.PLAYER_TWO_WIN


class Direction(Enum):
    """The four line axes a run can lie on."""
    HORIZONTAL = auto()
    VERTICAL = auto()
    DIAGONAL_UP = auto()  # bottom-left to top-right
    DIAGONAL_DOWN = auto()  # top-left to bottom-right


# Forward step (row, col) along each axis; rows grow downwards
DIRECTION_VECTORS = {
    Direction.HORIZONTAL: (0, 1),
    Direction.VERTICAL: (1, 0),
    Direction.DIAGONAL_UP: (-1, 1),
    Direction.DIAGONAL_DOWN: (1, 1)
}


class GamePhase(Enum):
    """Coarse game progression used to adapt evaluation and search depth."""
    OPENING = 0
    MIDDLE = 1
    ENDGAME = 2


def get_variant(name: str) -> Dict[str, Any]:
    """
    Look up a game variant preset.

    Args:
        name: Variant name ('connect4' or 'gomoku')

    Returns:
        A copy of the preset with rows, cols, win_condition and gravity
    """
    try:
        return dict(VARIANTS[name.lower()])
    except KeyError:
        raise ConfigError(f"Unknown variant '{name}'. Choose from: {', '.join(VARIANTS)}") from None


def render_board_ascii(grid: np.ndarray) -> str:
    """
    Render a board grid as ASCII art.

    Args:
        grid: 2D array of cell values

    Returns:
        ASCII representation of the board
    """
    rows, cols = grid.shape
    result = ["+" + "-" * (cols * 2 - 1) + "+"]
    for row in range(rows):
        cells = " ".join(_SYMBOLS.get(int(v), "?") for v in grid[row])
        result.append(f"|{cells}| {row}")
    result.append("+" + "-" * (cols * 2 - 1) + "+")

    # Column numbers wrap after 9 so wide boards stay aligned
    result.append(" " + " ".join(str(col % 10) for col in range(cols)))

    return "\n".join(result)
