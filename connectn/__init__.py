"""
connectn - Rules core and AI for two-player connection games

This package provides a shared board, win detection, threat analysis, position
evaluation and a staged decision engine for gravity Connect Four (6x7, four in a
row) and free-placement Gomoku (15x15, five in a row), plus a gymnasium
environment and a command-line interface.
"""

# Version number
__version__ = '0.1.0'

from connectn.errors import GameError, ConfigError, MoveError, NoLegalMoves
from connectn.utils import Player, GameResult, GamePhase
from connectn.game.rules import GameState, new_board, new_game, new_variant_game
from connectn.ai.difficulty import DifficultyTier

__all__ = ['GameState', 'new_board', 'new_game', 'new_variant_game', 'DifficultyTier',
           'Player', 'GameResult', 'GamePhase', 'GameError', 'ConfigError', 'MoveError',
           'NoLegalMoves']
