"""
move.py - Immutable move and history records
"""

from dataclasses import dataclass
from typing import Optional, Tuple, List

from connectn.utils import Player


@dataclass(frozen=True)
class Move:
    """
    A move request.

    In gravity mode only the column is required; the landing row is derived when the
    move is applied. Free-placement moves carry both coordinates.
    """
    col: int
    row: Optional[int] = None

    @classmethod
    def drop(cls, col: int) -> 'Move':
        return cls(col=col)

    @classmethod
    def at(cls, row: int, col: int) -> 'Move':
        return cls(col=col, row=row)

    @property
    def cell(self) -> Tuple[int, int]:
        if self.row is None:
            raise ValueError("Move has no row until it is applied")
        return (self.row, self.col)

    def __str__(self) -> str:
        return f"col {self.col}" if self.row is None else f"({self.row}, {self.col})"


@dataclass(frozen=True)
class MoveRecord:
    """A move that was applied: where the stone landed and who placed it."""
    row: int
    col: int
    player: Player

    def as_move(self) -> Move:
        return Move.at(self.row, self.col)


@dataclass(frozen=True)
class MoveOutcome:
    """Result of a successfully applied move."""
    record: MoveRecord
    winner: Optional[Player] = None
    is_draw: bool = False
    winning_line: Tuple[Tuple[int, int], ...] = ()

    @property
    def game_over(self) -> bool:
        return self.winner is not None or self.is_draw

    @property
    def move(self) -> Move:
        return self.record.as_move()


def moves_from_cells(cells: List[Tuple[int, int]]) -> List[Move]:
    return [Move.at(row, col) for row, col in cells]
