"""
connectn.game - Core game mechanics for connection games

This package contains the board representation, move records, win detection
and game state management. Import GameState from connectn.game.rules and the
gymnasium environment from connectn.game.env; both depend on the AI package,
which in turn builds on the board modules exported here.
"""

from connectn.game.board import Board
from connectn.game.move import Move, MoveRecord, MoveOutcome
from connectn.game.win import WinDetector

__all__ = ['Board', 'Move', 'MoveRecord', 'MoveOutcome', 'WinDetector']
