"""
evaluation.py - Static position evaluation for connection games

The heuristic evaluation is designed to:
1. Score both sides with the same function, so the result is exactly antisymmetric
2. Reward open runs far above closed runs of the same length
3. Count completion cells, discounting gravity cells that are not reachable yet
4. Detect and reward fork positions (two playable threats at once)
5. Prefer central stones, more so in the opening
"""

from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

import numpy as np

from connectn.debug import debug
from connectn.game.board import Board
from connectn.game.win import WinDetector
from connectn.ai.threats import ThreatAnalyzer
from connectn.utils import Player, GamePhase, WIN_SCORE, HEURISTIC_CAP

# Run values indexed by stones still missing (k - length)
OPEN_RUN_WEIGHTS = {1: 500, 2: 100, 3: 10}
CLOSED_RUN_WEIGHTS = {1: 100, 2: 10, 3: 2}
FAR_RUN_WEIGHT = 1

THREAT_WEIGHT = 50
HEIGHT_PENALTY = 8
MIN_THREAT_WEIGHT = 5
FORK_WEIGHT = 2000
CENTER_WEIGHT = 3
CONNECTIVITY_WEIGHT = 2

OPENING_FILL = 0.2
ENDGAME_FILL = 0.8
ENDGAME_HORIZON = 4


def classify_phase(move_count: int, total_cells: int,
                   moves_to_terminal: Optional[int] = None) -> GamePhase:
    """
    Classify the game phase from board fill.

    Args:
        move_count: Stones on the board
        total_cells: rows * cols
        moves_to_terminal: Known distance to a forced result, if any

    Returns:
        OPENING below 20% fill, ENDGAME above 80% fill or within 4 moves of a
        known result, MIDDLE otherwise
    """
    if moves_to_terminal is not None and moves_to_terminal <= ENDGAME_HORIZON:
        return GamePhase.ENDGAME
    fill = move_count / total_cells if total_cells else 1.0
    if fill < OPENING_FILL:
        return GamePhase.OPENING
    if fill > ENDGAME_FILL:
        return GamePhase.ENDGAME
    return GamePhase.MIDDLE


@lru_cache(maxsize=None)
def center_weights(rows: int, cols: int, gravity: bool) -> np.ndarray:
    """
    Per-cell center proximity.

    Gravity boards weight columns only (3,2,1,0,1,2,3 -> 0,1,2,3,2,1,0 for 7 columns);
    free boards use the Manhattan distance to the central cell.
    """
    col_weight = (cols // 2) - np.abs(np.arange(cols) - cols // 2)
    if gravity:
        weights = np.tile(col_weight, (rows, 1))
    else:
        row_weight = (rows // 2) - np.abs(np.arange(rows) - rows // 2)
        weights = row_weight[:, None] + col_weight[None, :]
    weights = np.maximum(weights, 0).astype(np.int32)
    weights.setflags(write=False)
    return weights


def adjacent_pairs(grid: np.ndarray, value: int) -> int:
    """Count pairs of touching `value` stones along the four axes."""
    own = grid == value
    return int(np.count_nonzero(own[:, 1:] & own[:, :-1])
               + np.count_nonzero(own[1:, :] & own[:-1, :])
               + np.count_nonzero(own[1:, 1:] & own[:-1, :-1])
               + np.count_nonzero(own[1:, :-1] & own[:-1, 1:]))


@dataclass
class SideTerms:
    """Heuristic components for one player."""
    runs: int = 0
    open_runs: int = 0
    threats: int = 0
    playable_threats: int = 0
    threat_value: int = 0
    fork: bool = False
    center: int = 0
    connectivity: int = 0

    def total(self) -> int:
        return (self.runs + self.threat_value + (FORK_WEIGHT if self.fork else 0)
                + self.center + self.connectivity)


@dataclass
class EvaluationResult:
    """Score of a position from one player's point of view, with its breakdown."""
    score: int
    player: Player
    phase: GamePhase
    winner: Optional[Player] = None
    own_threats: int = 0
    opponent_threats: int = 0
    own_open_runs: int = 0
    opponent_open_runs: int = 0
    own_fork: bool = False
    opponent_fork: bool = False
    center: int = 0
    connectivity: int = 0

    @property
    def is_terminal(self) -> bool:
        return self.winner is not None or abs(self.score) >= WIN_SCORE


class PositionEvaluator:
    """
    Weighted static evaluation.

    Personality (attack or defense bias) does not belong here: the evaluator always
    scores both sides identically and returns own minus opponent.
    """

    def __init__(self, win_condition: int, analyzer: Optional[ThreatAnalyzer] = None):
        self.analyzer = analyzer or ThreatAnalyzer(win_condition)
        self.win_condition = self.analyzer.win_condition
        self.detector: WinDetector = self.analyzer.detector

    def phase_of(self, board: Board) -> GamePhase:
        return classify_phase(board.stone_count(), board.rows * board.cols)

    def side_terms(self, board: Board, player: Player, phase: GamePhase) -> SideTerms:
        """Compute the heuristic components for one player."""
        k = self.win_condition
        terms = SideTerms()

        for run in self.analyzer.find_runs(board, player, min_length=2):
            missing = k - run.length
            if missing <= 0:
                continue
            if run.is_open:
                terms.open_runs += 1
                terms.runs += OPEN_RUN_WEIGHTS.get(missing, FAR_RUN_WEIGHT)
            elif run.is_closed:
                terms.runs += CLOSED_RUN_WEIGHTS.get(missing, 0)

        for row, col in self.analyzer.completion_cells(board, player):
            terms.threats += 1
            if board.is_playable(row, col):
                terms.playable_threats += 1
                terms.threat_value += THREAT_WEIGHT
            else:
                # Gravity cell above the landing row; the gap must fill first
                gap = board.drop_row(col) - row
                terms.threat_value += max(MIN_THREAT_WEIGHT, THREAT_WEIGHT - HEIGHT_PENALTY * gap)

        terms.fork = phase != GamePhase.OPENING and terms.playable_threats >= 2

        weights = center_weights(board.rows, board.cols, board.gravity)
        center = int(weights[board.grid == player.value].sum()) * CENTER_WEIGHT
        terms.center = center * 2 if phase == GamePhase.OPENING else center

        terms.connectivity = adjacent_pairs(board.grid, player.value) * CONNECTIVITY_WEIGHT
        return terms

    def heuristic(self, board: Board, player: Player, phase: Optional[GamePhase] = None) -> int:
        """Clamped own-minus-opponent heuristic, without terminal detection."""
        phase = phase or self.phase_of(board)
        own = self.side_terms(board, player, phase).total()
        opp = self.side_terms(board, player.other(), phase).total()
        return max(-HEURISTIC_CAP, min(HEURISTIC_CAP, own - opp))

    def evaluate(self, board: Board, for_player: Player, winner: Optional[Player] = None,
                 check_terminal: bool = True) -> EvaluationResult:
        """
        Evaluate a position for `for_player`.

        Args:
            board: Position to evaluate
            for_player: Point of view of the score
            winner: Known winner, if the caller already has it
            check_terminal: Scan the board for a completed run when no winner is given

        Returns:
            EvaluationResult with +/-WIN_SCORE for decided games, 0 for full boards,
            otherwise the heuristic clamped to +/-HEURISTIC_CAP
        """
        for_player = Player.from_value(for_player)
        phase = self.phase_of(board)

        if winner is None and check_terminal:
            winner = self.detector.find_winner(board)
        if winner is not None:
            score = WIN_SCORE if winner == for_player else -WIN_SCORE
            return EvaluationResult(score, for_player, GamePhase.ENDGAME, winner)
        if board.is_full():
            return EvaluationResult(0, for_player, GamePhase.ENDGAME)

        own = self.side_terms(board, for_player, phase)
        opp = self.side_terms(board, for_player.other(), phase)
        score = max(-HEURISTIC_CAP, min(HEURISTIC_CAP, own.total() - opp.total()))

        debug.trace(f"Evaluation for {for_player.name}: {score} "
                    f"(own={own.total()}, opp={opp.total()}, phase={phase.name})", "eval")

        return EvaluationResult(
            score=score,
            player=for_player,
            phase=phase,
            own_threats=own.threats,
            opponent_threats=opp.threats,
            own_open_runs=own.open_runs,
            opponent_open_runs=opp.open_runs,
            own_fork=own.fork,
            opponent_fork=opp.fork,
            center=own.center - opp.center,
            connectivity=own.connectivity - opp.connectivity,
        )

