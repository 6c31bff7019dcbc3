"""
minimax.py - Minimax algorithm with alpha-beta pruning for connection games

This module provides an AlphaBetaSearch class that searches the game tree on a
private board clone with make/undo, up to a configurable depth.

The search is designed to:
1. Deepen iteratively, so a deadline or node budget always leaves the best move of
   the last completed iteration
2. Prefer faster wins and slower losses (terminal scores carry the remaining depth)
3. Order moves center-out in gravity games for better pruning
4. Restrict free-placement games to cells touching existing stones, strongest first
"""

import math
import time
from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np

from connectn.debug import debug
from connectn.game.board import Board, Cell
from connectn.ai.evaluation import PositionEvaluator
from connectn.ai.threats import near_mask
from connectn.utils import Player, WIN_SCORE


class SearchTimeout(Exception):
    """Raised inside the search when the deadline or node budget runs out."""


@dataclass
class SearchResult:
    cell: Cell
    score: float
    depth: int       # deepest fully completed iteration
    nodes: int
    elapsed: float
    timed_out: bool = False
    moves_to_terminal: Optional[int] = None  # plies to a proven win or loss


class AlphaBetaSearch:
    """
    Iterative-deepening alpha-beta search.

    The caller's board is never touched: every search runs on a clone that is
    restored move by move and checked against its starting fingerprint.
    """

    # Deadline is checked every this many nodes
    CLOCK_INTERVAL = 64

    def __init__(self, evaluator: PositionEvaluator, max_depth: int = 4,
                 time_limit: Optional[float] = None, node_budget: Optional[int] = None,
                 max_branching: int = 12):
        """
        Initialize the search.

        Args:
            evaluator: Static evaluator used at the depth limit
            max_depth: Deepest iteration to attempt (higher = stronger but slower)
            time_limit: Seconds before the search stops deepening
            node_budget: Maximum nodes visited across all iterations
            max_branching: Cap on candidate cells per node in free-placement games
        """
        self.evaluator = evaluator
        self.detector = evaluator.detector
        self.analyzer = evaluator.analyzer
        self.max_depth = max(1, int(max_depth))
        self.time_limit = time_limit
        self.node_budget = node_budget
        self.max_branching = max_branching
        self.nodes_evaluated = 0  # For performance tracking
        self._deadline = None
        self._enforce_limits = False

    def order_moves(self, board: Board, player: Player,
                    cells: Optional[Sequence[Cell]] = None) -> List[Cell]:
        """
        Order candidate cells for search.

        Gravity games sort columns by distance from center. Free-placement games keep
        cells touching a stone, sorted by combined attack and defense potential and
        capped at max_branching.
        """
        if board.gravity:
            cells = board.legal_cells() if cells is None else list(cells)
            center = board.cols // 2
            return sorted(cells, key=lambda cell: (abs(cell[1] - center), cell[1]))

        if cells is None:
            nearby = near_mask(board.grid, 1) & (board.grid == Player.EMPTY.value)
            cells = [(int(r), int(c)) for r, c in np.argwhere(nearby)]
            if not cells:
                center = (board.rows // 2, board.cols // 2)
                cells = [center] if board.is_playable(*center) else board.legal_cells()

        return self.analyzer.rank_cells(board, player, cells, self.max_branching)

    def _tick(self):
        self.nodes_evaluated += 1
        if not self._enforce_limits:
            return
        if self.node_budget is not None and self.nodes_evaluated > self.node_budget:
            raise SearchTimeout()
        if (self._deadline is not None and self.nodes_evaluated % self.CLOCK_INTERVAL == 0
                and time.perf_counter() > self._deadline):
            raise SearchTimeout()

    def search(self, board: Board, player: Player,
               candidates: Optional[Sequence[Cell]] = None) -> SearchResult:
        """
        Find the best cell for `player`.

        Args:
            board: Position to search (not modified)
            player: Player to move
            candidates: Root cells to consider (default: all ordered moves)

        Returns:
            SearchResult of the last completed iteration
        """
        start = time.perf_counter()
        self.nodes_evaluated = 0
        self._deadline = start + self.time_limit if self.time_limit is not None else None

        work = board.clone()
        fingerprint = work.fingerprint()

        root = self.order_moves(work, player, candidates)
        if not root:
            root = list(candidates) if candidates else work.legal_cells()

        best_cell = root[0]
        best_score = -math.inf
        completed = 0
        timed_out = False

        for depth in range(1, self.max_depth + 1):
            # The first iteration always completes so there is a searched answer
            self._enforce_limits = depth > 1
            try:
                cell, score = self._search_root(work, player, root, depth)
            except SearchTimeout:
                timed_out = True
                debug.debug(f"Search stopped during depth {depth} after "
                            f"{self.nodes_evaluated} nodes", "search")
                break

            best_cell, best_score, completed = cell, score, depth
            if abs(score) >= WIN_SCORE:
                break
            # Search the previous best first on the next iteration
            root = [cell] + [c for c in root if c != cell]

        assert work.fingerprint() == fingerprint, "search clone was not restored"

        # Terminal scores carry the depth left when the game ended
        moves_to_terminal = None
        if completed and abs(best_score) >= WIN_SCORE:
            moves_to_terminal = completed - int(abs(best_score) - WIN_SCORE)

        elapsed = time.perf_counter() - start
        debug.debug(f"Search for {player.name}: {best_cell} score={best_score} depth={completed} "
                    f"nodes={self.nodes_evaluated} in {elapsed:.3f}s", "search")
        return SearchResult(best_cell, best_score, completed, self.nodes_evaluated, elapsed, timed_out,
                            moves_to_terminal)

    def _search_root(self, board: Board, player: Player, root: List[Cell], depth: int):
        best_score = -math.inf
        best_cell = root[0]
        alpha = -math.inf
        beta = math.inf

        for row, col in root:
            board.set(row, col, player.value)
            try:
                score = self._minimax(board, depth - 1, alpha, beta, False, player, (row, col))
            finally:
                board.set(row, col, Player.EMPTY.value)

            if score > best_score:
                best_score = score
                best_cell = (row, col)
            alpha = max(alpha, score)

        return best_cell, best_score

    def _minimax(self, board: Board, depth: int, alpha: float, beta: float,
                 is_maximizing: bool, maximizing_player: Player, last: Cell) -> float:
        """
        Minimax algorithm with alpha-beta pruning.

        Args:
            board: Current board state (last move already placed)
            depth: Remaining search depth
            alpha: Best score the maximizer can guarantee
            beta: Best score the minimizer can guarantee
            is_maximizing: True if maximizing_player is to move
            maximizing_player: The player we're trying to maximize score for
            last: Cell of the move that led here

        Returns:
            The evaluation score for this position
        """
        self._tick()

        winner = self.detector.check_win(board, last[0], last[1])
        if winner is not None:
            # Prefer faster wins
            return WIN_SCORE + depth if winner == maximizing_player else -WIN_SCORE - depth

        if board.is_full():
            return 0

        if depth == 0:
            return self.evaluator.heuristic(board, maximizing_player)

        to_move = maximizing_player if is_maximizing else maximizing_player.other()
        moves = self.order_moves(board, to_move)
        if not moves:
            moves = board.legal_cells()[:self.max_branching]

        if is_maximizing:
            max_score = -math.inf
            for row, col in moves:
                board.set(row, col, to_move.value)
                try:
                    score = self._minimax(board, depth - 1, alpha, beta, False, maximizing_player, (row, col))
                finally:
                    board.set(row, col, Player.EMPTY.value)

                max_score = max(max_score, score)
                alpha = max(alpha, score)

                # Beta cutoff
                if beta <= alpha:
                    break

            return max_score

        else:  # Minimizing
            min_score = math.inf
            for row, col in moves:
                board.set(row, col, to_move.value)
                try:
                    score = self._minimax(board, depth - 1, alpha, beta, True, maximizing_player, (row, col))
                finally:
                    board.set(row, col, Player.EMPTY.value)

                min_score = min(min_score, score)
                beta = min(beta, score)

                # Alpha cutoff
                if beta <= alpha:
                    break

            return min_score
