"""
simulation.py - Random-playout move evaluation

Each candidate cell is scored by playing random games to completion from the
position after that move. Every candidate receives the same number of independent
playouts, run in rounds so that a deadline cuts all candidates at the same count;
the final choice is the best average result.
"""

import time
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

import numpy as np

from connectn.debug import debug
from connectn.game.board import Board, Cell
from connectn.game.win import WinDetector
from connectn.ai.threats import near_mask
from connectn.utils import Player


@dataclass
class CellStats:
    total: float = 0.0
    visits: int = 0

    @property
    def mean(self) -> float:
        return self.total / self.visits if self.visits else 0.0


@dataclass
class PlayoutResult:
    cell: Cell
    score: float
    simulations: int
    elapsed: float
    stats: Dict[Cell, CellStats]


class PlayoutEvaluator:
    """Monte Carlo evaluation of candidate cells."""

    def __init__(self, win_condition: int, simulations: int = 1000, min_simulations: int = 0,
                 time_limit: Optional[float] = None, max_playout_moves: Optional[int] = None):
        """
        Args:
            win_condition: Win length
            simulations: Playouts per candidate
            min_simulations: Playouts per candidate completed before the time limit applies
            time_limit: Seconds to spend
            max_playout_moves: Playouts longer than this count as draws
        """
        self.detector = WinDetector(win_condition)
        self.simulations = max(1, int(simulations))
        self.min_simulations = min_simulations
        self.time_limit = time_limit
        self.max_playout_moves = max_playout_moves

    def _playout_cells(self, board: Board) -> List[Cell]:
        if board.gravity:
            return board.legal_cells()
        nearby = near_mask(board.grid, 1) & (board.grid == Player.EMPTY.value)
        cells = np.argwhere(nearby)
        if len(cells) == 0:
            return board.legal_cells()
        return [(int(r), int(c)) for r, c in cells]

    def playout(self, board: Board, cell: Cell, player: Player, rng: np.random.Generator) -> float:
        """
        Play `cell` for `player`, then random moves until the game ends.

        Returns:
            1.0 if `player` wins, -1.0 if the opponent wins, 0.0 for draws and
            playouts cut off by max_playout_moves
        """
        sim = board.clone()
        row, col = cell
        sim.set(row, col, player.value)
        if self.detector.check_win(sim, row, col) is not None:
            return 1.0

        to_move = player.other()
        limit = self.max_playout_moves or sim.rows * sim.cols
        for _ in range(limit):
            cells = self._playout_cells(sim)
            if not cells:
                return 0.0
            row, col = cells[int(rng.integers(len(cells)))]
            sim.set(row, col, to_move.value)
            if self.detector.check_win(sim, row, col) is not None:
                return 1.0 if to_move == player else -1.0
            to_move = to_move.other()
        return 0.0

    def evaluate(self, board: Board, player: Player, candidates: Sequence[Cell],
                 rng: np.random.Generator) -> PlayoutResult:
        """
        Run `simulations` playouts per candidate and pick the best average.

        Once `min_simulations` rounds are done the deadline is checked before each
        further round. Ties keep the earlier candidate.
        """
        start = time.perf_counter()
        deadline = start + self.time_limit if self.time_limit is not None else None
        candidates = list(candidates)
        stats = {cell: CellStats() for cell in candidates}

        total = 0
        for round_index in range(self.simulations):
            if (deadline is not None and round_index >= self.min_simulations
                    and time.perf_counter() > deadline):
                break
            for cell in candidates:
                result = self.playout(board, cell, player, rng)
                stats[cell].total += result
                stats[cell].visits += 1
                total += 1

        best = max(candidates, key=lambda c: stats[c].mean)
        elapsed = time.perf_counter() - start
        debug.debug(f"{total} playouts for {player.name}: best {best} "
                    f"mean={stats[best].mean:.3f} in {elapsed:.3f}s", "playout")
        return PlayoutResult(best, stats[best].mean, total, elapsed, stats)
