"""
engine.py - Move selection pipeline

The DecisionEngine runs an ordered list of stages on a private clone of the board:

1. WinStage: take an immediate win
2. BlockStage: occupy the opponent's immediate winning cell
3. SafetyFilter: drop moves that hand the opponent an immediate win
4. ForkBlockStage: occupy a safe cell where the opponent would create a fork
5. StrategicStage: pick among the remaining moves according to the difficulty tier

The first stage that returns a cell decides the move. The live board is
fingerprinted before and after, and any difference is an assertion failure.
"""

import time
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

import numpy as np

from connectn.debug import debug
from connectn.errors import NoLegalMoves
from connectn.game.board import Board, Cell
from connectn.game.move import Move
from connectn.ai.difficulty import DifficultyProfile, DifficultyTier, Strategy, TierLike, resolve_profile
from connectn.ai.evaluation import PositionEvaluator, center_weights, classify_phase
from connectn.ai.minimax import AlphaBetaSearch
from connectn.ai.simulation import PlayoutEvaluator
from connectn.ai.threats import ThreatAnalyzer, near_mask
from connectn.utils import Player, GamePhase

# Free-placement strategic moves stay within this distance of a stone
CANDIDATE_RADIUS = 2


@dataclass
class DecisionContext:
    """Mutable state passed through the stages."""
    board: Board
    player: Player
    profile: DifficultyProfile
    rng: np.random.Generator
    analyzer: ThreatAnalyzer
    evaluator: PositionEvaluator
    legal: List[Cell]
    candidates: List[Cell]
    deadline: Optional[float] = None
    forced_loss: bool = False
    double_threat: bool = False
    strategy: Optional[Strategy] = None
    score: Optional[float] = None
    depth: int = 0
    nodes: int = 0
    moves_to_terminal: Optional[int] = None

    @property
    def opponent(self) -> Player:
        return self.player.other()


@dataclass
class Decision:
    """A chosen move and how it was reached."""
    move: Move
    cell: Cell
    player: Player
    stage: str
    strategy: Optional[Strategy] = None
    legal: List[Cell] = field(default_factory=list)
    safe: List[Cell] = field(default_factory=list)
    forced_loss: bool = False
    double_threat: bool = False
    score: Optional[float] = None
    depth: int = 0
    nodes: int = 0
    elapsed: float = 0.0
    phase: Optional[GamePhase] = None


class WinStage:
    name = "win"

    def run(self, ctx: DecisionContext) -> Optional[Cell]:
        cells = ctx.analyzer.winning_cells(ctx.board, ctx.player)
        return cells[0] if cells else None


class BlockStage:
    """
    Occupy the opponent's winning cell.

    With two or more opponent winning cells the position is lost against correct
    play; the engine still blocks the cell with the highest threat level for the
    mover (lowest cell on ties) rather than giving up.
    """
    name = "block"

    def run(self, ctx: DecisionContext) -> Optional[Cell]:
        cells = ctx.analyzer.blocking_cells(ctx.board, ctx.player)
        if not cells:
            return None
        if len(cells) == 1:
            return cells[0]

        ctx.double_threat = True
        levels = [ctx.analyzer.threat_level(ctx.board, r, c, ctx.player) for r, c in cells]
        choice = cells[int(np.argmax(levels))]
        debug.info(f"{ctx.opponent.name} has {len(cells)} winning cells {cells}; "
                   f"blocking {choice} in a lost position", "engine")
        return choice


class SafetyFilter:
    """Remove candidates after which the opponent wins immediately."""
    name = "safety"

    def is_safe(self, ctx: DecisionContext, cell: Cell) -> bool:
        board = ctx.board
        row, col = cell
        board.set(row, col, ctx.player.value)
        try:
            return not ctx.analyzer.winning_cells(board, ctx.opponent)
        finally:
            board.set(row, col, Player.EMPTY.value)

    def run(self, ctx: DecisionContext) -> Optional[Cell]:
        # Without gravity a stone can only take cells away from the opponent, and the
        # block stage has already found that there are none to take
        if not ctx.board.gravity:
            return None

        safe = [cell for cell in ctx.candidates if self.is_safe(ctx, cell)]
        if safe:
            ctx.candidates = safe
        else:
            ctx.forced_loss = True
            debug.info(f"Every move for {ctx.player.name} allows an immediate reply win", "engine")
        return None


class ForkBlockStage:
    """
    Occupy a cell where the opponent would otherwise create a fork.

    Only safe candidates are considered; the first fork cell in board order wins.
    """
    name = "fork"

    def run(self, ctx: DecisionContext) -> Optional[Cell]:
        cells = ctx.analyzer.forking_cells(ctx.board, ctx.opponent)
        for cell in cells:
            if cell in ctx.candidates:
                debug.debug(f"Blocking {ctx.opponent.name} fork at {cell} (of {cells})", "engine")
                return cell
        return None


class StrategicStage:
    """Choose among safe candidates with the tier's strategy."""
    name = "strategic"

    def narrow(self, ctx: DecisionContext) -> List[Cell]:
        board = ctx.board
        if board.stone_count() == 0:
            # Gravity boards open in the bottom cell of the center column
            center = (board.rows - 1 if board.gravity else board.rows // 2, board.cols // 2)
            if center in ctx.candidates:
                return [center]
            return ctx.candidates
        if board.gravity:
            return ctx.candidates
        nearby = near_mask(board.grid, CANDIDATE_RADIUS)
        narrowed = [cell for cell in ctx.candidates if nearby[cell]]
        return narrowed or ctx.candidates

    def run(self, ctx: DecisionContext) -> Optional[Cell]:
        candidates = self.narrow(ctx)
        strategy, depth = ctx.profile.pick(ctx.rng, ctx.board.stone_count())
        ctx.strategy = strategy
        ctx.depth = depth

        if len(candidates) == 1:
            return candidates[0]

        if strategy == Strategy.RANDOM:
            return candidates[int(ctx.rng.integers(len(candidates)))]
        if strategy == Strategy.WEIGHTED:
            return self.weighted(ctx, candidates)
        if strategy == Strategy.MINIMAX:
            return self.minimax(ctx, candidates, depth)
        if strategy == Strategy.SIMULATION:
            return self.simulation(ctx, candidates)
        raise ValueError(f"Unhandled strategy: {strategy}")

    def cell_scores(self, ctx: DecisionContext, candidates: Sequence[Cell]) -> np.ndarray:
        """Offensive, defensive and center sub-scores mixed by the tier's weights."""
        board = ctx.board
        profile = ctx.profile
        centers = center_weights(board.rows, board.cols, board.gravity)
        scores = []
        for row, col in candidates:
            offensive = ctx.analyzer.cell_potential(board, row, col, ctx.player)
            defensive = ctx.analyzer.cell_potential(board, row, col, ctx.opponent)
            scores.append(profile.offensive_weight * offensive
                          + profile.defensive_weight * defensive
                          + profile.center_weight * float(centers[row, col]))
        return np.array(scores, dtype=np.float64)

    def weighted(self, ctx: DecisionContext, candidates: List[Cell]) -> Cell:
        scores = self.cell_scores(ctx, candidates)
        ctx.score = float(scores.max())
        if ctx.profile.randomness <= 0:
            return candidates[int(np.argmax(scores))]

        # Softmax with a temperature proportional to the spread of scores
        spread = max(float(np.ptp(scores)), 1.0)
        logits = (scores - scores.max()) / (ctx.profile.randomness * spread)
        weights = np.exp(logits)
        probabilities = weights / weights.sum()
        return candidates[int(ctx.rng.choice(len(candidates), p=probabilities))]

    def minimax(self, ctx: DecisionContext, candidates: List[Cell], depth: int) -> Cell:
        profile = ctx.profile
        time_limit = profile.time_limit
        if ctx.deadline is not None:
            time_limit = max(0.0, ctx.deadline - time.perf_counter())
        search = AlphaBetaSearch(ctx.evaluator, max_depth=depth, time_limit=time_limit,
                                 node_budget=profile.node_budget, max_branching=profile.max_branching)
        result = search.search(ctx.board, ctx.player, candidates)
        ctx.score = result.score
        ctx.depth = result.depth
        ctx.nodes = result.nodes
        ctx.moves_to_terminal = result.moves_to_terminal
        return result.cell

    def simulation(self, ctx: DecisionContext, candidates: List[Cell]) -> Cell:
        profile = ctx.profile
        if len(candidates) > profile.max_branching:
            candidates = ctx.analyzer.rank_cells(ctx.board, ctx.player, candidates, profile.max_branching)
        time_limit = profile.time_limit
        if ctx.deadline is not None:
            time_limit = max(0.0, ctx.deadline - time.perf_counter())
        evaluator = PlayoutEvaluator(ctx.analyzer.win_condition, profile.simulations,
                                     profile.min_simulations, time_limit,
                                     profile.max_playout_moves)
        result = evaluator.evaluate(ctx.board, ctx.player, candidates, ctx.rng)
        ctx.score = result.score
        ctx.nodes = result.simulations
        return result.cell


class DecisionEngine:
    """
    Staged move selection for one win length.

    The engine works on a Board and the player to move; it never sees or mutates
    the owning game state.
    """

    def __init__(self, win_condition: int, stages: Optional[list] = None):
        self.analyzer = ThreatAnalyzer(win_condition)
        self.evaluator = PositionEvaluator(win_condition, self.analyzer)
        self.win_condition = self.analyzer.win_condition
        self.stages = stages if stages is not None else [
            WinStage(), BlockStage(), SafetyFilter(), ForkBlockStage(), StrategicStage()
        ]

    def decide(self, board: Board, player, tier: TierLike = DifficultyTier.MEDIUM,
               seed: Optional[int] = None, rng: Optional[np.random.Generator] = None) -> Decision:
        """
        Choose a move for `player` on `board`.

        Args:
            board: Live board (read only)
            player: Player to move
            tier: Difficulty tier, tier name or profile
            seed: Seed for the random generator, for reproducible play
            rng: Ready-made generator (overrides seed)

        Returns:
            Decision with the move and the stage that produced it

        Raises:
            NoLegalMoves: if the board has no legal move
        """
        player = Player.from_value(player)
        profile = resolve_profile(tier)
        legal = board.legal_cells()
        if not legal:
            raise NoLegalMoves(f"No legal moves for {player.name}")

        start = time.perf_counter()
        fingerprint = board.fingerprint()
        work = board.clone()
        ctx = DecisionContext(
            board=work,
            player=player,
            profile=profile,
            rng=rng if rng is not None else np.random.default_rng(seed),
            analyzer=self.analyzer,
            evaluator=self.evaluator,
            legal=legal,
            candidates=list(legal),
            deadline=start + profile.time_limit if profile.time_limit is not None else None,
        )

        cell = None
        stage_name = None
        for stage in self.stages:
            cell = stage.run(ctx)
            if cell is not None:
                stage_name = stage.name
                break
        if cell is None:
            cell = ctx.candidates[0]
            stage_name = "fallback"

        assert work.fingerprint() == fingerprint, "decision stages left the working board modified"
        assert board.fingerprint() == fingerprint, "live board changed during decision"

        elapsed = time.perf_counter() - start
        debug.debug(f"{player.name} ({profile.name}) plays {cell} via {stage_name}"
                    f"{' [' + ctx.strategy.value + ']' if ctx.strategy else ''} in {elapsed:.3f}s",
                    "engine")

        return Decision(
            move=Move.at(cell[0], cell[1]),
            cell=cell,
            player=player,
            stage=stage_name,
            strategy=ctx.strategy,
            legal=legal,
            safe=list(ctx.candidates),
            forced_loss=ctx.forced_loss,
            double_threat=ctx.double_threat,
            score=ctx.score,
            depth=ctx.depth,
            nodes=ctx.nodes,
            elapsed=elapsed,
            phase=classify_phase(board.stone_count(), board.rows * board.cols, ctx.moves_to_terminal),
        )

    def choose_move(self, board: Board, player, tier: TierLike = DifficultyTier.MEDIUM,
                    seed: Optional[int] = None) -> Move:
        """Choose a move for `player`; see decide()."""
        return self.decide(board, player, tier, seed).move
