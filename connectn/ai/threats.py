"""
threats.py - Tactical pattern analysis for connection games

The ThreatAnalyzer classifies runs and windows along the four axes, parametrized by
the win length k:

- completion cell: the single empty cell of a k-window holding k-1 own stones
  (this also covers broken shapes such as X.XX)
- open run: contiguous stones with both flanks empty and enough room to reach k
- closed run: the same with exactly one empty flank
- fork: two or more distinct completion cells that are playable right now, so the
  defender cannot block them all with one move

All functions are pure: they read a Board snapshot and return data. Anything that
needs a hypothetical stone works on a clone.
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence, Tuple

import numpy as np

from connectn.debug import debug
from connectn.game.board import Board, Cell
from connectn.game.lines import axis_lines, iter_windows, line_values
from connectn.game.win import WinDetector
from connectn.utils import Player, Direction, DIRECTION_VECTORS

# Threat levels, most urgent first
LEVEL_WIN = 5
LEVEL_BLOCK = 4
LEVEL_FORK = 3
LEVEL_OPEN_RUN = 2
LEVEL_MINOR = 1
LEVEL_NONE = 0


class ThreatKind(Enum):
    OPEN_THREE = 0     # open run two short of a win
    CLOSED_FOUR = 1    # run one short of a win with a single completion point
    FORK = 2
    WINNING_MOVE = 3
    BLOCKING_MOVE = 4


@dataclass(frozen=True)
class ThreatRecord:
    """
    A tactical pattern found on the board.

    `position` is the key cell of the pattern (the cell to play to complete or block
    it); `completions` lists every completion cell the pattern has. For blocking
    moves `owner` is the player who has to block.
    """
    position: Cell
    kind: ThreatKind
    owner: Player
    axis: Optional[Direction] = None
    completions: Tuple[Cell, ...] = ()


@dataclass(frozen=True)
class Run:
    """A maximal run of one player's stones along an axis."""
    player: Player
    axis: Direction
    cells: Tuple[Cell, ...]
    flanks: Tuple[Cell, ...]  # empty in-bounds cells touching either end
    room: int                 # non-opponent stretch containing the run

    @property
    def length(self) -> int:
        return len(self.cells)

    @property
    def is_open(self) -> bool:
        return len(self.flanks) == 2

    @property
    def is_closed(self) -> bool:
        return len(self.flanks) == 1


def near_mask(grid: np.ndarray, radius: int, value: Optional[int] = None) -> np.ndarray:
    """
    Boolean mask of cells within `radius` (Chebyshev distance) of a stone.

    Args:
        grid: Board grid
        radius: Neighborhood radius
        value: Only consider stones with this cell value (default: any stone)
    """
    source = grid != Player.EMPTY.value if value is None else grid == value
    rows, cols = grid.shape
    mask = np.zeros_like(source)
    for dr in range(-radius, radius + 1):
        for dc in range(-radius, radius + 1):
            r0, r1 = max(0, dr), rows + min(0, dr)
            c0, c1 = max(0, dc), cols + min(0, dc)
            if r0 < r1 and c0 < c1:
                mask[r0:r1, c0:c1] |= source[r0 - dr:r1 - dr, c0 - dc:c1 - dc]
    return mask


class ThreatAnalyzer:
    """Pattern library for one win length."""

    def __init__(self, win_condition: int):
        self.detector = WinDetector(win_condition)
        self.win_condition = self.detector.win_condition
        # Shortest run that counts as an open threat worth a threat level of 2
        self.open_run_threshold = max(2, self.win_condition - 2)

    # ------------------------------------------------------------------
    # Completion cells
    # ------------------------------------------------------------------

    def completion_cells(self, board: Board, player: Player, playable_only: bool = False) -> List[Cell]:
        """
        Empty cells that would complete a k-window for `player`.

        Args:
            board: Board snapshot
            player: Player whose windows are scanned
            playable_only: Keep only cells that are legal right now

        Returns:
            Distinct cells in deterministic board order
        """
        k = self.win_condition
        value = player.value
        found = set()
        for _, coords, windows in iter_windows(board.grid, k):
            own = (windows == value).sum(axis=1)
            empty = (windows == Player.EMPTY.value).sum(axis=1)
            for start in np.flatnonzero((own == k - 1) & (empty == 1)).tolist():
                offset = int(np.argmax(windows[start] == Player.EMPTY.value))
                row, col = coords[start + offset]
                found.add((int(row), int(col)))

        cells = [cell for cell in found if not playable_only or board.is_playable(*cell)]
        return sorted(cells, key=board.cell_order_key)

    def winning_cells(self, board: Board, player: Player) -> List[Cell]:
        """Legal cells where `player` wins immediately."""
        return self.completion_cells(board, player, playable_only=True)

    def blocking_cells(self, board: Board, player: Player) -> List[Cell]:
        """Legal cells `player` must occupy to stop an immediate opponent win."""
        return self.completion_cells(board, player.other(), playable_only=True)

    def fork_cells(self, board: Board, player: Player) -> List[Cell]:
        """Completion cells of a fork, or an empty list if `player` has no fork."""
        cells = self.winning_cells(board, player)
        return cells if len(cells) >= 2 else []

    def has_fork(self, board: Board, player: Player) -> bool:
        return len(self.winning_cells(board, player)) >= 2

    # ------------------------------------------------------------------
    # Runs
    # ------------------------------------------------------------------

    def find_runs(self, board: Board, player: Player, min_length: int = 2) -> List[Run]:
        """
        Find every live run of `player` stones.

        Runs boxed in so tightly by opponent stones or edges that they can never reach
        the win length are skipped.
        """
        k = self.win_condition
        value = player.value
        blocker = player.other().value
        empty = Player.EMPTY.value
        runs = []

        for direction, coords in axis_lines(board.rows, board.cols):
            values = line_values(board.grid, coords).tolist()
            n = len(values)
            i = 0
            while i < n:
                if values[i] != value:
                    i += 1
                    continue
                j = i
                while j < n and values[j] == value:
                    j += 1

                if j - i >= min_length:
                    lo = i
                    while lo > 0 and values[lo - 1] != blocker:
                        lo -= 1
                    hi = j
                    while hi < n and values[hi] != blocker:
                        hi += 1

                    if hi - lo >= k:
                        flanks = []
                        if i > 0 and values[i - 1] == empty:
                            flanks.append((int(coords[i - 1][0]), int(coords[i - 1][1])))
                        if j < n and values[j] == empty:
                            flanks.append((int(coords[j][0]), int(coords[j][1])))
                        cells = tuple((int(r), int(c)) for r, c in coords[i:j])
                        runs.append(Run(player, direction, cells, tuple(flanks), hi - lo))
                i = j

        return runs

    # ------------------------------------------------------------------
    # Threat records
    # ------------------------------------------------------------------

    def find_threats(self, board: Board, player: Player) -> List[ThreatRecord]:
        """
        Collect every threat record for `player`.

        Returns:
            Winning moves, blocking moves, closed runs one short of a win, open runs
            two short of a win and the fork record if the player has one
        """
        k = self.win_condition
        opponent = player.other()
        records = []

        winning = self.winning_cells(board, player)
        for cell in winning:
            axis = self.detector.winning_axis(board, cell[0], cell[1], player)
            records.append(ThreatRecord(cell, ThreatKind.WINNING_MOVE, player, axis, (cell,)))

        for cell in self.winning_cells(board, opponent):
            axis = self.detector.winning_axis(board, cell[0], cell[1], opponent)
            records.append(ThreatRecord(cell, ThreatKind.BLOCKING_MOVE, player, axis, (cell,)))

        for run in self.find_runs(board, player, min_length=self.open_run_threshold):
            if run.length == k - 1 and run.is_closed:
                records.append(ThreatRecord(run.flanks[0], ThreatKind.CLOSED_FOUR, player,
                                            run.axis, run.flanks))
            elif run.length == k - 2 and run.is_open:
                records.append(ThreatRecord(run.flanks[0], ThreatKind.OPEN_THREE, player,
                                            run.axis, run.flanks))

        if len(winning) >= 2:
            records.append(ThreatRecord(winning[0], ThreatKind.FORK, player, None, tuple(winning)))

        debug.trace(f"{len(records)} threat records for {player.name}", "threats")
        return records

    # ------------------------------------------------------------------
    # Per-cell classification
    # ------------------------------------------------------------------

    def _profile(self, grid: np.ndarray, row: int, col: int, dr: int, dc: int, value: int):
        """
        Local shape of the line through (row, col) if `value` sat on it.

        Returns:
            (run length, open ends, room) where room is capped near 2k
        """
        rows, cols = grid.shape
        k = self.win_condition
        blocker = 3 - value
        length = 1
        open_ends = 0
        room = 1
        for sign in (1, -1):
            r, c = row + sign * dr, col + sign * dc
            while 0 <= r < rows and 0 <= c < cols and grid[r, c] == value:
                length += 1
                room += 1
                r, c = r + sign * dr, c + sign * dc
            if 0 <= r < rows and 0 <= c < cols and grid[r, c] == Player.EMPTY.value:
                open_ends += 1
            steps = 0
            while steps < k and 0 <= r < rows and 0 <= c < cols and grid[r, c] != blocker:
                room += 1
                steps += 1
                r, c = r + sign * dr, c + sign * dc
        return length, open_ends, room

    def creates_open_run(self, board: Board, row: int, col: int, player: Player) -> bool:
        """True if a `player` stone on (row, col) sits in a live open run of threat length."""
        for dr, dc in DIRECTION_VECTORS.values():
            length, open_ends, room = self._profile(board.grid, row, col, dr, dc, player.value)
            if length >= self.open_run_threshold and open_ends == 2 and room >= self.win_condition:
                return True
        return False

    def cell_potential(self, board: Board, row: int, col: int, player: Player) -> int:
        """
        Local line strength of a `player` stone on (row, col).

        Longer runs with more open ends score exponentially higher; lines that can no
        longer reach the win length score nothing.
        """
        k = self.win_condition
        total = 0
        for dr, dc in DIRECTION_VECTORS.values():
            length, open_ends, room = self._profile(board.grid, row, col, dr, dc, player.value)
            if room < k:
                continue
            if length >= k:
                total += 4 ** k
            elif open_ends:
                total += (4 ** (length - 1)) * open_ends
        return total

    def threat_level(self, board: Board, row: int, col: int, player: Player) -> int:
        """
        Ordinal urgency (0-5) of `player` playing (row, col).

        5 wins immediately, 4 blocks an immediate opponent win, 3 creates or extends a
        fork, 2 creates an open run or a new completion cell, 1 touches an existing
        stone, 0 otherwise (including cells that are not legal right now).
        """
        if not board.is_playable(row, col):
            return LEVEL_NONE
        if self.detector.would_win(board, row, col, player):
            return LEVEL_WIN
        if self.detector.would_win(board, row, col, player.other()):
            return LEVEL_BLOCK

        trial = board.clone()
        trial.set(row, col, player.value)

        before = set(self.winning_cells(board, player))
        after = set(self.winning_cells(trial, player))
        if len(after) >= 2 and after - before:
            return LEVEL_FORK

        new_completions = (set(self.completion_cells(trial, player))
                           - set(self.completion_cells(board, player)))
        if new_completions or self.creates_open_run(trial, row, col, player):
            return LEVEL_OPEN_RUN

        if self.has_neighbor(board, row, col):
            return LEVEL_MINOR
        return LEVEL_NONE

    def has_neighbor(self, board: Board, row: int, col: int) -> bool:
        """True if any stone touches (row, col), diagonals included."""
        block = board.grid[max(0, row - 1):row + 2, max(0, col - 1):col + 2]
        return bool(np.count_nonzero(block))

    def threatening_cells(self, board: Board, player: Player) -> List[Cell]:
        """
        Legal cells where `player` wins or creates at least one new completion cell.
        """
        # A new completion cell needs k-2 own stones in a window with the placed cell
        reach = near_mask(board.grid, self.win_condition - 1, player.value)
        before = set(self.completion_cells(board, player))
        cells = []
        for row, col in board.legal_cells():
            if self.detector.would_win(board, row, col, player):
                cells.append((row, col))
                continue
            if not reach[row, col]:
                continue
            trial = board.clone()
            trial.set(row, col, player.value)
            if set(self.completion_cells(trial, player)) - before:
                cells.append((row, col))
        return cells

    def forking_cells(self, board: Board, player: Player) -> List[Cell]:
        """
        Legal cells where `player` would create a fork.

        These are exactly the cells whose threat level for `player` is LEVEL_FORK:
        afterwards `player` has two or more playable winning cells, at least one new.
        """
        opponent = player.other()
        # A new winning cell needs k-2 own stones in a window with the placed cell
        reach = near_mask(board.grid, self.win_condition - 1, player.value)
        before = set(self.winning_cells(board, player))
        cells = []
        for row, col in board.legal_cells():
            if not reach[row, col]:
                continue
            if (self.detector.would_win(board, row, col, player)
                    or self.detector.would_win(board, row, col, opponent)):
                continue
            trial = board.clone()
            trial.set(row, col, player.value)
            after = set(self.winning_cells(trial, player))
            if len(after) >= 2 and after - before:
                cells.append((row, col))
        return cells

    def rank_cells(self, board: Board, player: Player, cells: Sequence[Cell],
                   limit: Optional[int] = None) -> List[Cell]:
        """
        Sort cells by combined attack and defense potential, strongest first.

        Ties fall back to board order; `limit` keeps only the first cells.
        """
        opponent = player.other()

        def potential(cell):
            row, col = cell
            return (self.cell_potential(board, row, col, player)
                    + self.cell_potential(board, row, col, opponent))

        ranked = sorted(cells, key=lambda cell: (-potential(cell), board.cell_order_key(cell)))
        return ranked if limit is None else ranked[:limit]
