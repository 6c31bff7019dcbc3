"""
cli.py - Command-line interface for the connection-game core

This module provides a CLI for playing against the engine, analyzing board
positions, benchmarking the core and pitting difficulty tiers against each other.
"""

import argparse
import sys
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from connectn.debug import debug
from connectn.errors import GameError, ConfigError
from connectn.ai.difficulty import DifficultyTier
from connectn.game.move import Move
from connectn.game.rules import GameState, new_variant_game
from connectn.utils import Player, GameResult, get_variant, VARIANTS

MatrixRecord = Tuple[int, int, int]  # wins, draws, losses for the row tier


def parse_position(text: str, rows: int, cols: int) -> List[List[int]]:
    """
    Parse a comma-separated, row-major position string.

    Raises:
        ConfigError: wrong number of cells or non-integer values
    """
    try:
        values = [int(v) for v in text.replace(" ", "").split(",") if v != ""]
    except ValueError as e:
        raise ConfigError(f"Position must be comma-separated integers: {e}") from e
    if len(values) != rows * cols:
        raise ConfigError(f"Position string must have {rows * cols} values, got {len(values)}")
    return [values[r * cols:(r + 1) * cols] for r in range(rows)]


def parse_tiers(text: str) -> List[DifficultyTier]:
    return [DifficultyTier.from_name(name) for name in text.split(",") if name.strip()]


def play_match(variant: str, tier_one: DifficultyTier, tier_two: DifficultyTier,
               seed: Optional[int] = None) -> GameResult:
    """
    Play one engine-vs-engine game.

    Args:
        variant: Variant preset name
        tier_one: Tier playing Player.ONE (moves first)
        tier_two: Tier playing Player.TWO
        seed: Seed for reproducible games

    Returns:
        The final GameResult
    """
    game = new_variant_game(variant)
    rng = np.random.default_rng(seed)
    tiers = {Player.ONE: tier_one, Player.TWO: tier_two}
    while not game.is_game_over():
        tier = tiers[game.current_player]
        move = game.choose_move(tier, seed=int(rng.integers(2 ** 31)))
        game.apply_move(move)
    return game.result


def run_matrix(variant: str, tiers: Sequence[DifficultyTier], games: int,
               seed: Optional[int] = None) -> Dict[Tuple[DifficultyTier, DifficultyTier], MatrixRecord]:
    """
    Pit every pair of distinct tiers against each other.

    The first player alternates between games so neither tier keeps the
    first-move advantage.

    Returns:
        Mapping (row tier, column tier) -> (wins, draws, losses) for the row tier
    """
    rng = np.random.default_rng(seed)
    results = {}
    for a in tiers:
        for b in tiers:
            if a == b:
                continue
            wins = draws = losses = 0
            for i in range(games):
                a_player = Player.ONE if i % 2 == 0 else Player.TWO
                one, two = (a, b) if a_player == Player.ONE else (b, a)
                result = play_match(variant, one, two, seed=int(rng.integers(2 ** 31)))
                if result.winner is None:
                    draws += 1
                elif result.winner == a_player:
                    wins += 1
                else:
                    losses += 1
            debug.info(f"{a.value} vs {b.value}: {wins}W {draws}D {losses}L", "cli")
            results[(a, b)] = (wins, draws, losses)
    return results


def format_matrix(tiers: Sequence[DifficultyTier],
                  results: Dict[Tuple[DifficultyTier, DifficultyTier], MatrixRecord]) -> str:
    width = max(11, max(len(t.value) for t in tiers) + 1)
    lines = [" " * width + "".join(t.value.rjust(width) for t in tiers)]
    for a in tiers:
        cells = []
        for b in tiers:
            if a == b:
                cells.append("-".rjust(width))
            else:
                wins, draws, losses = results[(a, b)]
                cells.append(f"{wins}/{draws}/{losses}".rjust(width))
        lines.append(a.value.ljust(width) + "".join(cells))
    lines.append("(wins/draws/losses of the row tier)")
    return "\n".join(lines)


class SimpleCLI:
    """Simple command-line interface for connection games."""

    def __init__(self):
        """Initialize the CLI."""
        self.game: Optional[GameState] = None
        self.args = None

    def build_parser(self) -> argparse.ArgumentParser:
        parser = argparse.ArgumentParser(description='Connection game CLI')
        parser.add_argument('--debug_level',
                            choices=['none', 'error', 'warning', 'info', 'debug', 'trace'],
                            default='warning',
                            help='Set debug level: none (silent) ... trace (most verbose)')
        parser.add_argument('--debug_components', type=str, default='',
                            help='Comma-separated components to log (e.g. engine,search); all if empty')
        parser.add_argument('--log_file', type=str, default=None, help='Also write log messages to this file')

        # Main commands
        subparsers = parser.add_subparsers(dest='command', help='Command to run')

        def add_common(sub):
            sub.add_argument('--variant', choices=sorted(VARIANTS), default='connect4',
                             help='Game variant')
            sub.add_argument('--seed', type=int, default=None, help='Random seed')

        # Play command
        play_parser = subparsers.add_parser('play', help='Play a game against the engine')
        add_common(play_parser)
        play_parser.add_argument('--tier', default='medium',
                                 help="Engine tier, or 'none' for two human players")
        play_parser.add_argument('--second', action='store_true', help='Let the engine move first')

        # Analyze command
        analyze_parser = subparsers.add_parser('analyze', help='Analyze a board position')
        add_common(analyze_parser)
        analyze_parser.add_argument('--position', type=str, required=True,
                                    help='Comma-separated row-major cell values (0/1/2)')
        analyze_parser.add_argument('--tier', default='hard', help='Tier used for the suggested move')

        # Benchmark command
        benchmark_parser = subparsers.add_parser('benchmark', help='Benchmark performance')
        add_common(benchmark_parser)
        benchmark_parser.add_argument('--iterations', type=int, default=1000,
                                      help='Number of iterations for benchmarking')
        benchmark_parser.add_argument('--tier', default='medium', help='Tier used for decision timing')

        # Matrix command
        matrix_parser = subparsers.add_parser('matrix', help='Pit difficulty tiers against each other')
        add_common(matrix_parser)
        matrix_parser.add_argument('--tiers', type=str, default='beginner,balanced,medium',
                                   help='Comma-separated tier names')
        matrix_parser.add_argument('--games', type=int, default=4, help='Games per pairing')

        return parser

    def parse_args(self, argv: Optional[Sequence[str]] = None) -> None:
        """Parse command-line arguments."""
        self.args = self.build_parser().parse_args(argv)
        debug.set_from_string(self.args.debug_level)
        components = [c.strip() for c in self.args.debug_components.split(",") if c.strip()]
        try:
            debug.configure(components=components, log_file=self.args.log_file)
        except ValueError as e:
            self.build_parser().error(str(e))

    def run(self, argv: Optional[Sequence[str]] = None) -> int:
        """Run the CLI based on the parsed arguments."""
        if argv is not None or not self.args:
            self.parse_args(argv)

        handlers = {
            'play': self.play_game,
            'analyze': self.analyze_position,
            'benchmark': self.benchmark,
            'matrix': self.tier_matrix,
        }
        handler = handlers.get(self.args.command)
        if handler is None:
            print("Please specify a command. Use --help for options.")
            return 1

        try:
            handler()
        except GameError as e:
            debug.error(f"{e.kind.name}: {e}", "cli")
            print(f"Error: {e}")
            return 1
        return 0

    # ------------------------------------------------------------------
    # play
    # ------------------------------------------------------------------

    def play_game(self) -> None:
        """Play a game interactively."""
        variant = self.args.variant
        self.game = new_variant_game(variant)
        engine_tier = None if self.args.tier == 'none' else DifficultyTier.from_name(self.args.tier)
        engine_player = Player.ONE if self.args.second else Player.TWO
        rng = np.random.default_rng(self.args.seed)

        print(f"Starting a new {variant} game!")
        if self.game.gravity:
            print(f"Enter a column number (0-{self.game.cols - 1}) to make a move.")
        else:
            print(f"Enter 'row col' (0-{self.game.rows - 1}) to make a move.")
        print("Other commands: 'q' to quit, 'u' to undo, 'r' to restart.")
        print(self.game.render())

        while not self.game.is_game_over():
            if engine_tier is not None and self.game.current_player == engine_player:
                print("Engine is thinking...")
                decision = self.game.decide(engine_tier, seed=int(rng.integers(2 ** 31)))
                print(f"Engine plays {decision.move} ({decision.stage})")
                self.game.apply_move(decision.move)
                print(self.game.render())
                continue

            command = self.get_human_move()
            if command is None:
                continue
            if command == 'q':
                print("Quitting game.")
                return
            if command == 'u':
                # Undo back to the human's previous turn
                undone = self.game.undo_move()
                if undone and engine_tier is not None and self.game.current_player == engine_player:
                    self.game.undo_move()
                print("Move undone." if undone else "No moves to undo.")
                print(self.game.render())
                continue
            if command == 'r':
                self.game.reset()
                print("Game restarted.")
                print(self.game.render())
                continue

            try:
                self.game.apply_move(command)
            except GameError as e:
                print(f"Invalid move: {e}")
                continue
            print(self.game.render())

        print("Game over!")
        if self.game.winner is None:
            print("It's a draw!")
        elif engine_tier is not None and self.game.winner == engine_player:
            print("Engine wins! Better luck next time.")
        else:
            print(f"{self.game.winner.name} wins! Congratulations!")

    def get_human_move(self):
        """
        Get a move from human input.

        Returns:
            A Move, a one-letter command ('q', 'u', 'r'), or None for invalid input
        """
        prompt = "Your move (column" if self.game.gravity else "Your move (row col"
        user_input = input(f"{prompt}, q/u/r): ").strip().lower()
        if user_input in ('q', 'u', 'r'):
            return user_input
        return self.parse_move(user_input)

    def parse_move(self, text: str) -> Optional[Move]:
        parts = text.replace(",", " ").split()
        try:
            numbers = [int(p) for p in parts]
        except ValueError:
            print("Invalid input. Please enter numbers or a command.")
            return None
        if self.game.gravity and len(numbers) == 1:
            return Move.drop(numbers[0])
        if not self.game.gravity and len(numbers) == 2:
            return Move.at(numbers[0], numbers[1])
        print("Invalid input. Please enter a column." if self.game.gravity
              else "Invalid input. Please enter a row and a column.")
        return None

    # ------------------------------------------------------------------
    # analyze
    # ------------------------------------------------------------------

    def analyze_position(self) -> None:
        """Print threats, evaluation and a suggested move for a position."""
        variant = get_variant(self.args.variant)
        rows_data = parse_position(self.args.position, variant['rows'], variant['cols'])
        self.game = GameState.from_rows(rows_data, variant['win_condition'], variant['gravity'])
        game = self.game

        print("Loaded position:")
        print(game.render())
        if not game.is_reachable():
            print("Warning: this position cannot arise from legal play")
        if game.is_game_over():
            return

        analysis = game.analyze_position()
        player = analysis.current_player
        print(f"\nPhase: {analysis.phase.name}, pieces: {analysis.total_pieces}")
        print(f"Evaluation for {player.name}: {analysis.evaluation}")
        print(f"Threat cells: {player.name}={analysis.current_player_threats}, "
              f"{player.other().name}={analysis.opponent_threats}")
        print(f"Connectivity: {analysis.connectivity}")

        print(f"Winning moves: {[str(m) for m in game.winning_moves()]}")
        print(f"Blocking moves: {[str(m) for m in game.blocking_moves()]}")
        print(f"Threatening moves: {[str(m) for m in game.threatening_moves()]}")
        for record in analysis.own_threat_records + analysis.opponent_threat_records:
            axis = record.axis.name if record.axis else "-"
            print(f"  {record.owner.name:<4} {record.kind.name:<14} at {record.position} axis={axis}")

        tier = DifficultyTier.from_name(self.args.tier)
        decision = game.decide(tier, seed=self.args.seed)
        print(f"\nSuggested move ({tier.value}): {decision.move} via {decision.stage}"
              f"{' (forced loss)' if decision.forced_loss else ''}")
        print(f"Phase after search: {decision.phase.name}")

    # ------------------------------------------------------------------
    # benchmark
    # ------------------------------------------------------------------

    def _random_game(self, rng: np.random.Generator, max_moves: int) -> GameState:
        game = new_variant_game(self.args.variant)
        for _ in range(max_moves):
            moves = game.legal_moves()
            if not moves:
                break
            game.apply_move(moves[int(rng.integers(len(moves)))])
            if game.is_game_over():
                # Keep the position playable for the timings that follow
                game.undo_move()
                break
        return game

    def benchmark(self) -> None:
        """Benchmark the performance of the core."""
        iterations = max(1, self.args.iterations)
        debug.clear_timings()
        rng = np.random.default_rng(self.args.seed)
        print(f"Running benchmark with {iterations} iterations...")

        # Benchmark move application with random games
        debug.start_timer("moves")
        moves_made = 0
        game = new_variant_game(self.args.variant)
        for _ in range(iterations):
            if game.is_game_over():
                game.reset()
            moves = game.legal_moves()
            game.apply_move(moves[int(rng.integers(len(moves)))])
            moves_made += 1
        moves_time = debug.end_timer("moves")
        print(f"Making {moves_made} moves: {moves_time:.6f} seconds total, "
              f"{moves_time / moves_made * 1000:.6f} ms per move")

        # Benchmark win checking
        game = self._random_game(rng, 12)
        stones = [(r, c) for r, c in np.argwhere(game.board.grid != Player.EMPTY.value)]
        debug.start_timer("win_check")
        for i in range(iterations):
            row, col = stones[i % len(stones)]
            game.detector.check_win(game.board, int(row), int(col))
        win_check_time = debug.end_timer("win_check")
        print(f"Performing {iterations} win checks: {win_check_time:.6f} seconds total, "
              f"{win_check_time / iterations * 1000:.6f} ms per check")

        # Benchmark evaluation
        evaluations = max(1, iterations // 10)
        debug.start_timer("evaluation")
        for _ in range(evaluations):
            game.evaluate_position()
        evaluation_time = debug.end_timer("evaluation")
        print(f"Performing {evaluations} evaluations: {evaluation_time:.6f} seconds total, "
              f"{evaluation_time / evaluations * 1000:.6f} ms per evaluation")

        # Benchmark decisions
        tier = DifficultyTier.from_name(self.args.tier)
        for i in range(max(1, iterations // 100)):
            with debug.timer("decision", "cli"):
                game.decide(tier, seed=i)
        decisions, decision_time, mean = debug.timing_summary()["decision"]
        print(f"Making {decisions} {tier.value} decisions: {decision_time:.6f} seconds total, "
              f"{mean * 1000:.3f} ms per decision")

    # ------------------------------------------------------------------
    # matrix
    # ------------------------------------------------------------------

    def tier_matrix(self) -> None:
        tiers = parse_tiers(self.args.tiers)
        if len(tiers) < 2:
            raise ConfigError("The matrix needs at least two tiers")
        print(f"Playing {self.args.games} {self.args.variant} games per pairing...")
        results = run_matrix(self.args.variant, tiers, self.args.games, self.args.seed)
        print(format_matrix(tiers, results))


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point for the CLI."""
    cli = SimpleCLI()
    return cli.run(argv)


if __name__ == "__main__":
    sys.exit(main())
