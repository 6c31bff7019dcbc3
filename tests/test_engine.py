import numpy as np
import pytest

from connectn.ai.difficulty import (DifficultyTier, DifficultyProfile, Strategy, TIER_PROFILES,
                                    resolve_profile)
from connectn.ai.engine import DecisionEngine, DecisionContext, SafetyFilter
from connectn.ai.evaluation import PositionEvaluator
from connectn.ai.minimax import AlphaBetaSearch
from connectn.ai.simulation import PlayoutEvaluator
from connectn.errors import ConfigError, NoLegalMoves
from connectn.game.board import Board
from connectn.game.rules import new_variant_game
from connectn.utils import Player, GamePhase, WIN_SCORE

FAST_SEARCH = DifficultyProfile(name="fast", strategy=Strategy.MINIMAX, depth=2, time_limit=1.0)


def _gravity(make_grid, *lines):
    return Board.from_rows(make_grid(list(lines)), gravity=True)


@pytest.mark.parametrize("tier", list(DifficultyTier))
def test_every_tier_takes_an_immediate_win(make_grid, tier):
    board = _gravity(make_grid, "....O..", "XXX.OO.")

    decision = DecisionEngine(4).decide(board, Player.ONE, tier, seed=0)

    assert decision.cell == (5, 3)
    assert decision.stage == "win"


@pytest.mark.parametrize("tier", list(DifficultyTier))
def test_every_tier_blocks_a_single_threat(make_grid, tier):
    board = _gravity(make_grid, "......X", "OOO...X")

    decision = DecisionEngine(4).decide(board, Player.ONE, tier, seed=0)

    assert decision.cell == (5, 3)
    assert decision.stage == "block"


@pytest.mark.parametrize("tier", list(DifficultyTier))
def test_every_tier_blocks_a_fork_in_the_making(make_grid, tier):
    # O on (5, 3) would make .OOO. with both ends playable
    board = _gravity(make_grid, "X.....X", "O.....O", "X.O.O.X")

    decision = DecisionEngine(4).decide(board, Player.ONE, tier, seed=0)

    assert decision.cell == (5, 3)
    assert decision.stage == "fork"


def test_unblockable_double_threat_still_blocks(make_grid):
    board = _gravity(make_grid, ".....X.", ".OOO.XX")

    decision = DecisionEngine(4).decide(board, Player.ONE, DifficultyTier.BEGINNER, seed=0)

    assert decision.stage == "block"
    assert decision.double_threat
    assert decision.cell == (5, 0)


def test_safety_filter_avoids_setting_up_the_opponent(make_grid):
    board = _gravity(make_grid, "OOO....", "XOX.X..")
    engine = DecisionEngine(4)

    for seed in range(10):
        decision = engine.decide(board, Player.ONE, DifficultyTier.BEGINNER, seed=seed)
        assert decision.stage == "strategic"
        assert decision.cell != (5, 3)
        assert (5, 3) not in decision.safe


def test_safety_filter_flags_forced_loss(make_grid):
    board = _gravity(make_grid, "OOO....", "XOX.X..")
    engine = DecisionEngine(4)
    ctx = DecisionContext(
        board=board.clone(),
        player=Player.ONE,
        profile=resolve_profile(DifficultyTier.BEGINNER),
        rng=np.random.default_rng(0),
        analyzer=engine.analyzer,
        evaluator=engine.evaluator,
        legal=board.legal_cells(),
        candidates=[(5, 3)],
    )

    assert SafetyFilter().run(ctx) is None
    assert ctx.forced_loss
    assert ctx.candidates == [(5, 3)]


@pytest.mark.parametrize("board, win_condition, center", [
    (Board(15, 15), 5, (7, 7)),
    (Board(6, 7, gravity=True), 4, (5, 3)),
])
def test_empty_board_opens_in_the_center(board, win_condition, center):
    engine = DecisionEngine(win_condition)

    for tier in (DifficultyTier.BEGINNER, DifficultyTier.BALANCED, DifficultyTier.MEDIUM,
                 DifficultyTier.MONTE_CARLO):
        for seed in range(5):
            assert engine.decide(board, Player.ONE, tier, seed=seed).cell == center


def test_gomoku_moves_stay_near_the_stones():
    board = Board(15, 15)
    board.set(7, 7, Player.ONE)
    engine = DecisionEngine(5)

    for seed in range(5):
        row, col = engine.decide(board, Player.TWO, DifficultyTier.BEGINNER, seed=seed).cell
        assert max(abs(row - 7), abs(col - 7)) <= 2


def test_weighted_tier_without_randomness_prefers_the_center():
    profile = TIER_PROFILES[DifficultyTier.BALANCED].with_overrides(randomness=0.0)

    decision = DecisionEngine(4).decide(Board(6, 7, gravity=True), Player.ONE, profile)

    assert decision.cell == (5, 3)
    assert decision.strategy == Strategy.WEIGHTED


def test_seeded_decisions_are_reproducible(make_grid):
    board = _gravity(make_grid, "..XO...")
    engine = DecisionEngine(4)

    first = engine.decide(board, Player.ONE, DifficultyTier.AGGRESSIVE, seed=42)
    second = engine.decide(board, Player.ONE, DifficultyTier.AGGRESSIVE, seed=42)

    assert first.cell == second.cell


def test_decision_leaves_the_live_board_untouched(make_grid):
    board = _gravity(make_grid, "..XO...", ".OXXO..")
    before = board.fingerprint()

    decision = DecisionEngine(4).decide(board, Player.TWO, FAST_SEARCH)

    assert board.fingerprint() == before
    assert decision.cell in board.legal_cells()
    assert decision.nodes > 0


def test_no_legal_moves_raises():
    board = Board.from_rows([[1, 2, 1], [1, 2, 2], [2, 1, 1]])

    with pytest.raises(NoLegalMoves):
        DecisionEngine(3).decide(board, Player.ONE, DifficultyTier.BEGINNER)


def test_search_finds_the_forking_move(make_grid):
    board = _gravity(make_grid, "......O", ".XX...O")
    before = board.fingerprint()

    result = AlphaBetaSearch(PositionEvaluator(4), max_depth=3).search(board, Player.ONE)

    assert result.cell == (5, 3)
    assert result.score >= WIN_SCORE
    assert result.moves_to_terminal == 3
    assert board.fingerprint() == before


def test_proven_win_puts_the_decision_in_the_endgame(make_grid):
    board = _gravity(make_grid, "......O", ".XX...O")
    profile = DifficultyProfile(name="deep", strategy=Strategy.MINIMAX, depth=3)

    decision = DecisionEngine(4).decide(board, Player.ONE, profile)

    assert decision.cell == (5, 3)
    assert decision.phase == GamePhase.ENDGAME

    quick = DecisionEngine(4).decide(board, Player.ONE, DifficultyTier.BEGINNER, seed=0)
    assert quick.phase == GamePhase.OPENING


def test_search_orders_columns_center_out():
    search = AlphaBetaSearch(PositionEvaluator(4))

    order = search.order_moves(Board(6, 7, gravity=True), Player.ONE)

    assert [col for _, col in order] == [3, 2, 4, 1, 5, 0, 6]


def test_search_respects_the_node_budget(make_grid):
    board = _gravity(make_grid, "..XO...")

    result = AlphaBetaSearch(PositionEvaluator(4), max_depth=8, node_budget=200).search(board, Player.ONE)

    assert result.timed_out
    assert result.depth >= 1
    assert result.cell in board.legal_cells()


def test_search_stops_at_the_deadline():
    board = Board(6, 7, gravity=True)
    before = board.fingerprint()

    result = AlphaBetaSearch(PositionEvaluator(4), max_depth=12, time_limit=1e-9).search(board, Player.ONE)

    assert result.timed_out
    assert 1 <= result.depth < 12
    assert result.cell in board.legal_cells()
    assert board.fingerprint() == before


@pytest.mark.parametrize("variant, opening", [
    ("connect4", [(3,), (3,), (4,)]),
    ("gomoku", [(7, 7), (7, 8), (8, 8)]),
])
def test_apply_and_undo_restore_the_position(variant, opening):
    game = new_variant_game(variant)
    for coords in opening:
        game.play(*coords)
    before = (game.snapshot(), game.current_player, game.move_count)

    for move in game.legal_moves()[:12]:
        game.apply_move(move)
        assert game.undo_move()
        assert (game.snapshot(), game.current_player, game.move_count) == before

    fingerprint = game.board.fingerprint()
    AlphaBetaSearch(PositionEvaluator(game.win_condition), max_depth=2).search(game.board, game.current_player)
    assert game.board.fingerprint() == fingerprint


def test_playouts_prefer_the_winning_cell(make_grid):
    board = _gravity(make_grid, "XXX....")
    evaluator = PlayoutEvaluator(4, simulations=20)

    result = evaluator.evaluate(board, Player.ONE, [(5, 6), (5, 3)], np.random.default_rng(1))

    assert result.cell == (5, 3)
    assert result.score == 1.0
    assert result.simulations == 40


def test_every_candidate_gets_the_same_number_of_playouts():
    candidates = [(5, 0), (5, 3), (5, 6)]
    evaluator = PlayoutEvaluator(4, simulations=5)

    result = evaluator.evaluate(Board(6, 7, gravity=True), Player.ONE, candidates, np.random.default_rng(0))

    assert result.simulations == 15
    assert [result.stats[cell].visits for cell in candidates] == [5, 5, 5]


def test_playouts_stop_after_the_minimum_once_time_runs_out():
    candidates = [(5, 0), (5, 3), (5, 6)]
    evaluator = PlayoutEvaluator(4, simulations=50, min_simulations=2, time_limit=1e-9)

    result = evaluator.evaluate(Board(6, 7, gravity=True), Player.ONE, candidates, np.random.default_rng(0))

    assert result.simulations == 6
    assert all(result.stats[cell].visits == 2 for cell in candidates)


def test_monte_carlo_tier_on_gomoku_simulates_the_strongest_cells():
    board = Board(15, 15)
    board.set(7, 7, Player.ONE)
    board.set(8, 8, Player.TWO)
    profile = TIER_PROFILES[DifficultyTier.MONTE_CARLO].with_overrides(
        simulations=3, min_simulations=3, time_limit=None, max_playout_moves=20)

    decision = DecisionEngine(5).decide(board, Player.ONE, profile, seed=0)

    row, col = decision.cell
    assert decision.stage == "strategic"
    assert decision.strategy == Strategy.SIMULATION
    assert decision.nodes == 3 * profile.max_branching
    assert min(max(abs(row - 7), abs(col - 7)), max(abs(row - 8), abs(col - 8))) <= 2


def test_strategy_mix_draws_from_its_branches():
    profile = TIER_PROFILES[DifficultyTier.EASY]
    rng = np.random.default_rng(7)

    draws = {profile.pick(rng, 0) for _ in range(200)}

    assert draws <= {(Strategy.RANDOM, 0), (Strategy.MINIMAX, 2), (Strategy.MINIMAX, 4)}
    assert (Strategy.RANDOM, 0) in draws


def test_hard_tier_deepens_with_the_game():
    profile = TIER_PROFILES[DifficultyTier.HARD]

    assert profile.depth_for(10) == 4
    assert profile.depth_for(25) == 8
    assert profile.depth_for(40) == 10


def test_tier_names():
    assert DifficultyTier.from_name("Monte-Carlo") == DifficultyTier.MONTE_CARLO
    assert resolve_profile("aggressive").offensive_weight == 2.0
    with pytest.raises(ConfigError):
        DifficultyTier.from_name("grandmaster")
