"""
rules.py - Game state management for connection games

This module provides:
1. GameState, the single mutable owner of a Board: move application, undo,
   resets and "loser starts" series rotation
2. Non-mutating advisory queries (winning, blocking and threatening moves, threat
   levels, evaluation, position analysis)
3. AI move selection through the decision engine
4. Factory functions for boards, games and the preset variants
"""

from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from connectn.debug import debug
from connectn.errors import (ConfigError, OutOfBounds, PositionOccupied, GameAlreadyOver,
                             ColumnFull, InvalidMove)
from connectn.game.board import Board, Cell
from connectn.game.move import Move, MoveRecord, MoveOutcome, moves_from_cells
from connectn.game.win import WinDetector
from connectn.ai.difficulty import DifficultyTier, TierLike
from connectn.ai.engine import DecisionEngine, Decision
from connectn.ai.evaluation import EvaluationResult, adjacent_pairs, classify_phase
from connectn.ai.threats import ThreatRecord
from connectn.utils import Player, GameResult, GamePhase, get_variant


@dataclass
class PositionAnalysis:
    """Summary of a position from the point of view of the player to move."""
    current_player: Player
    current_player_threats: int
    opponent_threats: int
    total_pieces: int
    connectivity: int
    phase: GamePhase
    evaluation: int
    own_threat_records: List[ThreatRecord] = field(default_factory=list)
    opponent_threat_records: List[ThreatRecord] = field(default_factory=list)


class GameState:
    """
    A connection game in progress.

    The state owns its Board exclusively; it changes only through apply_move,
    undo_move and the reset methods. Advisory and AI queries work on snapshots or
    clones and never change the board, the player to move or the history.
    """

    def __init__(self, rows: int, cols: int, win_condition: int, gravity: bool = False,
                 starting_player: Player = Player.ONE):
        """
        Initialize a new game.

        Args:
            rows: Board rows
            cols: Board columns
            win_condition: Stones in a row needed to win (2..max(rows, cols))
            gravity: True for drop-in-column play
            starting_player: Player who moves first

        Raises:
            ConfigError: invalid dimensions or win length
        """
        if not 2 <= int(win_condition) <= max(int(rows), int(cols)):
            raise ConfigError(f"Win condition {win_condition} must be between 2 and "
                              f"{max(int(rows), int(cols))} for a {rows}x{cols} board")

        debug.debug(f"Initializing {rows}x{cols} game, k={win_condition}, gravity={gravity}", "game")
        self.board = Board(rows, cols, gravity)
        self.win_condition = int(win_condition)
        self.starting_player = Player.from_value(starting_player)
        self.current_player = self.starting_player
        self.winner: Optional[Player] = None
        self.winning_line: Tuple[Cell, ...] = ()
        self._draw = False
        self._history: List[MoveRecord] = []

        self.detector = WinDetector(self.win_condition)
        self.engine = DecisionEngine(self.win_condition)
        self.analyzer = self.engine.analyzer
        self.evaluator = self.engine.evaluator

    @classmethod
    def from_rows(cls, rows_data: Sequence[Sequence[int]], win_condition: int, gravity: bool = False,
                  starting_player: Player = Player.ONE,
                  current_player: Optional[Player] = None) -> 'GameState':
        """
        Load a position from nested row lists (row 0 is the top row).

        The player to move is inferred from the stone counts unless given. The
        loaded game has no move history, so undo_move returns False until new moves
        are applied.

        Raises:
            ConfigError: malformed grid, floating stones, or impossible stone counts
        """
        board = Board.from_rows(rows_data, gravity)
        game = cls(board.rows, board.cols, win_condition, gravity, starting_player)
        game.board = board

        starter = game.starting_player
        starter_count = int((board.grid == starter.value).sum())
        other_count = int((board.grid == starter.other().value).sum())
        if current_player is None:
            if starter_count == other_count:
                current_player = starter
            elif starter_count == other_count + 1:
                current_player = starter.other()
            else:
                raise ConfigError(f"Stone counts {starter_count}/{other_count} cannot arise when "
                                  f"{starter.name} moves first")
        game.current_player = Player.from_value(current_player)

        game.winner = game.detector.find_winner(board)
        game._draw = game.winner is None and board.is_full()
        return game

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def rows(self) -> int:
        return self.board.rows

    @property
    def cols(self) -> int:
        return self.board.cols

    @property
    def gravity(self) -> bool:
        return self.board.gravity

    @property
    def move_count(self) -> int:
        return self.board.stone_count()

    @property
    def move_history(self) -> Tuple[MoveRecord, ...]:
        return tuple(self._history)

    @property
    def last_move(self) -> Optional[MoveRecord]:
        return self._history[-1] if self._history else None

    @property
    def result(self) -> GameResult:
        if self.winner is not None:
            return GameResult.win_for(self.winner)
        if self._draw:
            return GameResult.DRAW
        return GameResult.IN_PROGRESS

    def is_game_over(self) -> bool:
        return self.winner is not None or self._draw

    def is_draw(self) -> bool:
        return self._draw

    def snapshot(self) -> List[int]:
        """Row-major cell values (0 empty, 1 and 2 for the players)."""
        return self.board.to_flat()

    def legal_moves(self) -> List[Move]:
        if self.is_game_over():
            return []
        return moves_from_cells(self.board.legal_cells())

    def game_phase(self) -> GamePhase:
        return classify_phase(self.move_count, self.rows * self.cols)

    def render(self) -> str:
        """
        Render the game as a string.

        Returns:
            The board followed by a status line
        """
        if self.winner is not None:
            status = f"Winner: {self.winner.name} ({self.winner})"
        elif self._draw:
            status = "Draw"
        else:
            status = f"To move: {self.current_player.name} ({self.current_player})"
        return f"{self.board.render()}\n{status}"

    def __str__(self) -> str:
        return self.render()

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def _resolve_cell(self, move: Move) -> Cell:
        board = self.board
        col, row = move.col, move.row

        if not 0 <= col < board.cols:
            raise OutOfBounds(f"Column {col} is outside 0..{board.cols - 1}", row, col)

        if board.gravity:
            landing = board.drop_row(col)
            if landing is None:
                raise ColumnFull(f"Column {col} is full", row, col)
            if row is not None and row != landing:
                if not board.in_bounds(row, col):
                    raise OutOfBounds(f"Row {row} is outside 0..{board.rows - 1}", row, col)
                if not board.is_empty(row, col):
                    raise PositionOccupied(f"Position ({row}, {col}) is occupied", row, col)
                raise InvalidMove(f"A stone dropped in column {col} lands on row {landing}, not {row}",
                                  row, col)
            return landing, col

        if row is None:
            raise InvalidMove("Free-placement moves need both a row and a column", None, col)
        if not board.in_bounds(row, col):
            raise OutOfBounds(f"Position ({row}, {col}) is outside the {board.rows}x{board.cols} board",
                              row, col)
        if not board.is_empty(row, col):
            raise PositionOccupied(f"Position ({row}, {col}) is occupied", row, col)
        return row, col

    def apply_move(self, move: Move) -> MoveOutcome:
        """
        Place the current player's stone.

        Args:
            move: Move.drop(col) for gravity games, Move.at(row, col) otherwise

        Returns:
            MoveOutcome with the landing cell and any win or draw

        Raises:
            GameAlreadyOver, OutOfBounds, ColumnFull, PositionOccupied, InvalidMove
        """
        if not isinstance(move, Move):
            raise InvalidMove(f"Expected a Move, got {move!r}")
        if self.is_game_over():
            raise GameAlreadyOver("The game is already over", move.row, move.col)

        row, col = self._resolve_cell(move)
        player = self.current_player
        self.board.set(row, col, player.value)

        record = MoveRecord(row, col, player)
        self._history.append(record)
        debug.debug(f"{player.name} plays ({row}, {col})", "game")

        winner = self.detector.check_win(self.board, row, col)
        if winner is not None:
            self.winner = winner
            self.winning_line = tuple(self.detector.winning_line(self.board, row, col))
            debug.info(f"Game over: {winner.name} wins", "game")
            return MoveOutcome(record, winner=winner, winning_line=self.winning_line)

        if self.board.is_full():
            self._draw = True
            debug.info("Game over: Draw", "game")
            return MoveOutcome(record, is_draw=True)

        self.current_player = player.other()
        return MoveOutcome(record)

    def play(self, *coords: int) -> MoveOutcome:
        """Shorthand: play(col) for gravity games, play(row, col) for free placement."""
        if len(coords) == 1:
            return self.apply_move(Move.drop(coords[0]))
        if len(coords) == 2:
            return self.apply_move(Move.at(coords[0], coords[1]))
        raise InvalidMove(f"play() takes a column or a row and column, got {coords!r}")

    def undo_move(self) -> bool:
        """
        Undo the last move.

        Returns:
            True if a move was undone, False if there is no history
        """
        if not self._history:
            debug.debug("No moves to undo", "game")
            return False

        record = self._history.pop()
        self.board.set(record.row, record.col, Player.EMPTY.value)
        self.current_player = record.player
        self.winner = None
        self.winning_line = ()
        self._draw = False
        debug.debug(f"Undid {record.player.name} at ({record.row}, {record.col})", "game")
        return True

    def reset(self) -> None:
        """Reset to an empty board with the starting player to move."""
        debug.debug("Resetting game", "game")
        self.board = Board(self.board.rows, self.board.cols, self.board.gravity)
        self.current_player = self.starting_player
        self.winner = None
        self.winning_line = ()
        self._draw = False
        self._history = []

    def reset_with_starting_player(self, player: Player) -> None:
        self.starting_player = Player.from_value(player)
        self.reset()

    def start_new_series(self, loser_starts: bool = True) -> Player:
        """
        Start the next game of a series.

        Args:
            loser_starts: Let the loser of a decided game move first; otherwise (and
                after draws or unfinished games) player ONE starts

        Returns:
            The player who starts the new game
        """
        if loser_starts and self.winner is not None:
            self.reset_with_starting_player(self.winner.other())
        else:
            self.reset_with_starting_player(Player.ONE)
        return self.starting_player

    # ------------------------------------------------------------------
    # Position validation
    # ------------------------------------------------------------------

    def is_reachable(self) -> bool:
        """
        Check that the position can arise from alternating legal moves.

        Gravity positions are peeled: a top stone of the player who moved last is
        removed and the previous position checked, until the board is empty.
        """
        starter = self.starting_player
        if self.board.gravity:
            return self._peel(self.board.clone(), starter, set())
        starter_count = int((self.board.grid == starter.value).sum())
        other_count = int((self.board.grid == starter.other().value).sum())
        return starter_count - other_count in (0, 1)

    def _peel(self, board: Board, starter: Player, seen: set) -> bool:
        starter_count = int((board.grid == starter.value).sum())
        other_count = int((board.grid == starter.other().value).sum())
        if starter_count == 0 and other_count == 0:
            return True
        if starter_count - other_count not in (0, 1):
            return False

        key = board.fingerprint()
        if key in seen:
            return False
        seen.add(key)

        last_player = starter if starter_count > other_count else starter.other()
        for col in range(board.cols):
            height = board.column_height(col)
            if height == 0:
                continue
            row = board.rows - height
            if board.get(row, col) != last_player.value:
                continue
            board.set(row, col, Player.EMPTY.value)
            try:
                if self._peel(board, starter, seen):
                    return True
            finally:
                board.set(row, col, last_player.value)
        return False

    # ------------------------------------------------------------------
    # Advisory queries
    # ------------------------------------------------------------------

    def _player(self, player) -> Player:
        return self.current_player if player is None else Player.from_value(player)

    def winning_moves(self, player: Optional[Player] = None) -> List[Move]:
        """Moves that win immediately for `player` (default: the player to move)."""
        if self.is_game_over():
            return []
        return moves_from_cells(self.analyzer.winning_cells(self.board, self._player(player)))

    def blocking_moves(self, player: Optional[Player] = None) -> List[Move]:
        """Moves `player` must make to stop an immediate opponent win."""
        if self.is_game_over():
            return []
        return moves_from_cells(self.analyzer.blocking_cells(self.board, self._player(player)))

    def threatening_moves(self, player: Optional[Player] = None) -> List[Move]:
        """Moves that win or create a new completion cell for `player`."""
        if self.is_game_over():
            return []
        return moves_from_cells(self.analyzer.threatening_cells(self.board, self._player(player)))

    def threat_level(self, row: int, col: int, player: Optional[Player] = None) -> int:
        """Threat level (0-5) of `player` playing (row, col); 0 for illegal cells."""
        if self.is_game_over():
            return 0
        return self.analyzer.threat_level(self.board, row, col, self._player(player))

    def threats(self, player: Optional[Player] = None) -> List[ThreatRecord]:
        return self.analyzer.find_threats(self.board, self._player(player))

    def evaluation(self, player: Optional[Player] = None) -> EvaluationResult:
        return self.evaluator.evaluate(self.board, self._player(player), winner=self.winner,
                                       check_terminal=False)

    def evaluate_position(self, player: Optional[Player] = None) -> int:
        """Evaluation score for `player`; positive favours them."""
        return self.evaluation(player).score

    def analyze_position(self) -> PositionAnalysis:
        player = self.current_player
        opponent = player.other()
        own = self.threats(player)
        theirs = self.threats(opponent)
        return PositionAnalysis(
            current_player=player,
            current_player_threats=len(self.analyzer.completion_cells(self.board, player)),
            opponent_threats=len(self.analyzer.completion_cells(self.board, opponent)),
            total_pieces=self.move_count,
            connectivity=adjacent_pairs(self.board.grid, player.value),
            phase=self.game_phase(),
            evaluation=self.evaluate_position(player),
            own_threat_records=own,
            opponent_threat_records=theirs,
        )

    # ------------------------------------------------------------------
    # AI
    # ------------------------------------------------------------------

    def decide(self, tier: TierLike = DifficultyTier.MEDIUM, seed: Optional[int] = None) -> Decision:
        """
        Let the decision engine pick a move for the player to move.

        Raises:
            GameAlreadyOver: the game has ended
            NoLegalMoves: the board is full
        """
        if self.is_game_over():
            raise GameAlreadyOver("The game is already over")
        return self.engine.decide(self.board, self.current_player, tier, seed)

    def choose_move(self, tier: TierLike = DifficultyTier.MEDIUM, seed: Optional[int] = None) -> Move:
        return self.decide(tier, seed).move


def new_board(rows: int, cols: int, gravity: bool = False) -> Board:
    return Board(rows, cols, gravity)


def new_game(rows: int, cols: int, win_condition: int, gravity_enabled: bool = False) -> GameState:
    """
    Create a new game.

    Args:
        rows: Board rows
        cols: Board columns
        win_condition: Stones in a row needed to win
        gravity_enabled: True for drop-in-column play

    Returns:
        A fresh GameState with player ONE to move
    """
    return GameState(rows, cols, win_condition, gravity_enabled)


def new_variant_game(name: str, starting_player: Player = Player.ONE) -> GameState:
    """Create a game from a preset ('connect4' or 'gomoku')."""
    variant = get_variant(name)
    return GameState(variant['rows'], variant['cols'], variant['win_condition'],
                     variant['gravity'], starting_player)
