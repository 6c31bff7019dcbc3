"""
win.py - Win detection for connection games

The WinDetector scans outward from the last-placed stone along the four axes and
reports a winner as soon as one axis holds `win_condition` contiguous stones. The
scan is bounded by the win length, so checking a move costs O(win_condition) per
axis regardless of board size; the search calls it once per visited move.
"""

from typing import List, Optional, Tuple

from connectn.debug import debug
from connectn.errors import ConfigError
from connectn.game.board import Board
from connectn.game.lines import iter_windows
from connectn.utils import Player, Direction, DIRECTION_VECTORS


class WinDetector:
    """Directional run-length scanner parametrized by the win length."""

    def __init__(self, win_condition: int):
        if int(win_condition) < 2:
            raise ConfigError(f"Win condition must be at least 2, got {win_condition}")
        self.win_condition = int(win_condition)

    def _count(self, grid, row: int, col: int, dr: int, dc: int, value: int, limit: int) -> int:
        rows, cols = grid.shape
        count = 0
        r, c = row + dr, col + dc
        while count < limit and 0 <= r < rows and 0 <= c < cols and grid[r, c] == value:
            count += 1
            r += dr
            c += dc
        return count

    def run_length(self, board: Board, row: int, col: int, direction: Direction,
                   player: Optional[Player] = None) -> int:
        """
        Length of the run through (row, col) along one axis, capped at win_condition.

        Args:
            player: Count as if this player's stone sat on (row, col); defaults to the
                stone actually there
        """
        value = player.value if player is not None else board.get(row, col)
        if value == Player.EMPTY.value:
            return 0
        dr, dc = DIRECTION_VECTORS[direction]
        limit = self.win_condition - 1
        return (1 + self._count(board.grid, row, col, dr, dc, value, limit)
                + self._count(board.grid, row, col, -dr, -dc, value, limit))

    def winning_axis(self, board: Board, row: int, col: int,
                     player: Optional[Player] = None) -> Optional[Direction]:
        """First axis on which the stone at (row, col) completes a winning run."""
        for direction in DIRECTION_VECTORS:
            if self.run_length(board, row, col, direction, player) >= self.win_condition:
                return direction
        return None

    def check_win(self, board: Board, row: int, col: int) -> Optional[Player]:
        """
        Check if the stone at (row, col) is part of a winning run.

        Args:
            board: The board after the stone was placed
            row: Row of the last-placed stone
            col: Column of the last-placed stone

        Returns:
            The winning player, or None
        """
        value = board.get(row, col)
        if value == Player.EMPTY.value:
            return None
        if self.winning_axis(board, row, col) is not None:
            return Player(value)
        return None

    def would_win(self, board: Board, row: int, col: int, player: Player) -> bool:
        """Check whether `player` placing on the empty cell (row, col) wins, without writing."""
        if board.get(row, col) != Player.EMPTY.value:
            return False
        return self.winning_axis(board, row, col, player) is not None

    def winning_line(self, board: Board, row: int, col: int) -> List[Tuple[int, int]]:
        """
        Get the full winning run through (row, col).

        Returns:
            Ordered list of (row, col) positions, or an empty list if there is no win
        """
        value = board.get(row, col)
        if value == Player.EMPTY.value:
            return []

        direction = self.winning_axis(board, row, col)
        if direction is None:
            return []

        dr, dc = DIRECTION_VECTORS[direction]
        uncapped = board.rows + board.cols
        back = self._count(board.grid, row, col, -dr, -dc, value, uncapped)
        forward = self._count(board.grid, row, col, dr, dc, value, uncapped)
        start_r, start_c = row - back * dr, col - back * dc
        return [(start_r + i * dr, start_c + i * dc) for i in range(back + forward + 1)]

    def find_winner(self, board: Board) -> Optional[Player]:
        """
        Full-board scan for a completed run.

        Used for positions loaded from outside the move flow; the move flow itself only
        ever needs check_win on the last-placed stone.
        """
        for _, _, windows in iter_windows(board.grid, self.win_condition):
            for player in (Player.ONE, Player.TWO):
                if (windows == player.value).all(axis=1).any():
                    debug.trace(f"Found completed run for {player.name}", "win")
                    return player
        return None
