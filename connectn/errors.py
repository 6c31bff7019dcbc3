"""
errors.py - Exception hierarchy for the connection-game core

Every failure the core reports is an explicit exception carrying an ErrorKind tag,
so a presentation layer can match on the kind and choose its own wording.
"""

from enum import Enum
from typing import Optional


class ErrorKind(Enum):
    """Closed set of failure kinds reported by the core."""
    CONFIG = 0
    OUT_OF_BOUNDS = 1
    POSITION_OCCUPIED = 2
    GAME_ALREADY_OVER = 3
    INVALID_PLAYER = 4
    COLUMN_FULL = 5
    NO_LEGAL_MOVES = 6
    INVALID_MOVE = 7


class GameError(Exception):
    """Base class for all errors raised by the core."""
    kind: ErrorKind = None


class ConfigError(GameError, ValueError):
    """Invalid board dimensions, win length or loaded position."""
    kind = ErrorKind.CONFIG


class NoLegalMoves(GameError):
    """A move was requested from a position with no legal moves."""
    kind = ErrorKind.NO_LEGAL_MOVES


class MoveError(GameError):
    """Base class for rejected moves and cell writes."""

    def __init__(self, message: str, row: Optional[int] = None, col: Optional[int] = None):
        super().__init__(message)
        self.row = row
        self.col = col


class OutOfBounds(MoveError, IndexError):
    kind = ErrorKind.OUT_OF_BOUNDS


class PositionOccupied(MoveError):
    kind = ErrorKind.POSITION_OCCUPIED


class GameAlreadyOver(MoveError):
    kind = ErrorKind.GAME_ALREADY_OVER


class InvalidPlayer(MoveError, ValueError):
    kind = ErrorKind.INVALID_PLAYER


class ColumnFull(MoveError):
    kind = ErrorKind.COLUMN_FULL


class InvalidMove(MoveError):
    """Malformed move, or a write that would break the gravity invariant."""
    kind = ErrorKind.INVALID_MOVE
