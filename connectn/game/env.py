"""
env.py - Gymnasium environment for connection games

The agent plays one side of a GameState. In gravity games an action is a column;
in free-placement games it is a flat row-major cell index. An optional engine
opponent answers every agent move at a configurable difficulty tier.
"""

from typing import Dict, Tuple, Optional, Any, Union

import numpy as np
import gymnasium as gym
from gymnasium import spaces

from connectn.debug import debug
from connectn.errors import MoveError
from connectn.ai.difficulty import TierLike
from connectn.game.move import Move
from connectn.game.rules import GameState
from connectn.utils import Player, get_variant


class ConnectionGameEnv(gym.Env):
    """
    Connection game environment following the Gymnasium interface.

    Rewards are given from the agent's point of view.
    """

    metadata = {'render_modes': ['ascii', 'human'], 'render_fps': 4}

    def __init__(self, rows: int = 6, cols: int = 7, win_condition: int = 4, gravity: bool = True,
                 opponent_tier: Optional[TierLike] = None, agent_player: Player = Player.ONE,
                 render_mode: Optional[str] = None):
        """
        Initialize the environment.

        Args:
            rows, cols, win_condition, gravity: Board geometry and rules
            opponent_tier: Engine tier answering agent moves (None: the agent plays both sides)
            agent_player: Side the agent plays when an opponent is configured
            render_mode: 'ascii', 'human' or None
        """
        debug.debug("Initializing ConnectionGameEnv", "env")

        self.game = GameState(rows, cols, win_condition, gravity)
        self.opponent_tier = opponent_tier
        self.agent_player = Player.from_value(agent_player)
        self.render_mode = render_mode

        # Define action and observation spaces
        self.action_space = spaces.Discrete(cols if gravity else rows * cols)
        self.observation_space = spaces.Box(low=0, high=2, shape=(rows, cols), dtype=np.int8)

        # Track reward settings
        self.reward_win = 1.0
        self.reward_lose = -1.0
        self.reward_draw = 0.1
        self.reward_invalid_move = -0.5
        self.reward_step = -0.01  # Small negative reward to encourage faster wins

    @classmethod
    def from_variant(cls, name: str, **kwargs) -> 'ConnectionGameEnv':
        variant = get_variant(name)
        return cls(variant['rows'], variant['cols'], variant['win_condition'], variant['gravity'], **kwargs)

    def _action_to_move(self, action: int) -> Move:
        action = int(action)
        if self.game.gravity:
            return Move.drop(action)
        return Move.at(action // self.game.cols, action % self.game.cols)

    def _move_to_action(self, row: int, col: int) -> int:
        return col if self.game.gravity else row * self.game.cols + col

    def action_mask(self) -> np.ndarray:
        """Boolean mask over the action space, True for legal actions."""
        mask = np.zeros(self.action_space.n, dtype=bool)
        if not self.game.is_game_over():
            for row, col in self.game.board.legal_cells():
                mask[self._move_to_action(row, col)] = True
        return mask

    def _opponent_seed(self) -> int:
        return int(self.np_random.integers(2 ** 31))

    def _opponent_move(self):
        decision = self.game.decide(self.opponent_tier, seed=self._opponent_seed())
        debug.debug(f"Opponent plays {decision.cell} via {decision.stage}", "env")
        return self.game.apply_move(decision.move)

    def reset(self, seed: Optional[int] = None, options: Optional[Dict] = None) -> Tuple[np.ndarray, Dict]:
        """
        Reset the environment to initial state.

        Returns:
            Initial observation and info dictionary
        """
        debug.debug("Resetting environment", "env")
        super().reset(seed=seed)
        self.game.reset()

        # The engine opens when the agent plays second
        if self.opponent_tier is not None and self.game.current_player != self.agent_player:
            self._opponent_move()

        if self.render_mode == "human":
            self.render()

        return self._get_observation(), self._get_info()

    def _terminal_reward(self, mover: Player) -> float:
        if self.game.winner is None:
            return self.reward_draw
        perspective = self.agent_player if self.opponent_tier is not None else mover
        return self.reward_win if self.game.winner == perspective else self.reward_lose

    def step(self, action: int) -> Tuple[np.ndarray, float, bool, bool, Dict]:
        """
        Take a step in the environment by making a move.

        Returns:
            Tuple of (observation, reward, terminated, truncated, info)
        """
        debug.debug(f"Environment step with action {action}", "env")

        mover = self.game.current_player
        try:
            outcome = self.game.apply_move(self._action_to_move(action))
        except MoveError as e:
            debug.warning(f"Invalid action {action}: {e}", "env")
            info = self._get_info()
            info['invalid_move'] = True
            info['error'] = e.kind.name
            return self._get_observation(), self.reward_invalid_move, False, True, info

        if not outcome.game_over and self.opponent_tier is not None:
            outcome = self._opponent_move()

        terminated = outcome.game_over
        reward = self._terminal_reward(mover) if terminated else self.reward_step
        if terminated:
            debug.info(f"Game over: {self.game.result.name}", "env")

        if self.render_mode == "human":
            self.render()

        return self._get_observation(), reward, terminated, False, self._get_info()

    def render(self) -> Optional[Union[str, np.ndarray]]:
        if self.render_mode is None:
            return None
        if self.render_mode == "ascii":
            return self.game.render()
        if self.render_mode == "human":
            print(self.game.render())
        return None

    def _get_observation(self) -> np.ndarray:
        return self.game.board.grid.copy()

    def _get_info(self) -> Dict[str, Any]:
        legal = self.action_mask()
        last = self.game.last_move
        return {
            'valid_actions': np.flatnonzero(legal).tolist(),
            'num_valid_actions': int(legal.sum()),
            'current_player': self.game.current_player.value,
            'game_result': self.game.result.name,
            'moves_made': self.game.move_count,
            'winning_line': list(self.game.winning_line),
            'last_move': (last.row, last.col) if last else None,
        }

    def close(self):
        """Clean up resources."""
        pass
