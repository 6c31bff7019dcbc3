"""
difficulty.py - Difficulty tiers and their strategy parameters

Each tier maps to a DifficultyProfile describing how the strategic stage of the
decision engine picks among safe moves: uniformly at random, by weighted random
choice over offensive/defensive/center sub-scores, by alpha-beta search, or by
random playouts. Lower tiers mix strategies probabilistically; HARD adapts its
search depth to the game phase.
"""

import sys
from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional, Tuple, Union

import numpy as np

from connectn.errors import ConfigError


class Strategy(Enum):
    RANDOM = "random"
    WEIGHTED = "weighted"
    MINIMAX = "minimax"
    SIMULATION = "simulation"


class DifficultyTier(Enum):
    BEGINNER = "beginner"
    EASY = "easy"
    MEDIUM = "medium"
    BALANCED = "balanced"
    AGGRESSIVE = "aggressive"
    DEFENSIVE = "defensive"
    HARD = "hard"
    EXPERT = "expert"
    MONTE_CARLO = "monte_carlo"

    @classmethod
    def from_name(cls, name: str) -> 'DifficultyTier':
        """Resolve a tier from its command-line name (case and dashes ignored)."""
        key = name.strip().lower().replace("-", "_")
        for tier in cls:
            if tier.value == key:
                return tier
        raise ConfigError(f"Unknown tier '{name}'. Choose from: {', '.join(t.value for t in cls)}")


@dataclass(frozen=True)
class StrategyChoice:
    """One branch of a probabilistic strategy mix."""
    strategy: Strategy
    probability: float
    depth: int = 0


@dataclass(frozen=True)
class DifficultyProfile:
    """
    Parameters of one difficulty tier.

    `phase_depths` is a table of (max stones on board, depth) rows checked in order;
    when empty the fixed `depth` is used. `mix` overrides `strategy` with a random
    draw per decision. `simulations` and `min_simulations` count playouts per
    candidate; `max_branching` caps the cells searched or simulated in free-placement
    games.
    """
    name: str
    strategy: Strategy
    depth: int = 0
    phase_depths: Tuple[Tuple[int, int], ...] = ()
    time_limit: Optional[float] = None
    node_budget: Optional[int] = None
    simulations: int = 0
    min_simulations: int = 0
    max_playout_moves: Optional[int] = None
    offensive_weight: float = 1.0
    defensive_weight: float = 1.0
    center_weight: float = 1.0
    randomness: float = 0.0
    mix: Tuple[StrategyChoice, ...] = ()
    max_branching: int = 12

    def depth_for(self, move_count: int) -> int:
        """Search depth for a position with `move_count` stones."""
        for limit, depth in self.phase_depths:
            if move_count <= limit:
                return depth
        return self.depth

    def pick(self, rng: np.random.Generator, move_count: int) -> Tuple[Strategy, int]:
        """
        Draw the strategy for one decision.

        Returns:
            (strategy, depth) where depth is only meaningful for MINIMAX
        """
        if not self.mix:
            return self.strategy, self.depth_for(move_count)

        roll = rng.random()
        cumulative = 0.0
        for choice in self.mix:
            cumulative += choice.probability
            if roll < cumulative:
                return choice.strategy, choice.depth
        last = self.mix[-1]
        return last.strategy, last.depth

    def with_overrides(self, **changes) -> 'DifficultyProfile':
        return replace(self, **changes)


TIER_PROFILES = {
    DifficultyTier.BEGINNER: DifficultyProfile(
        name="beginner",
        strategy=Strategy.RANDOM,
    ),
    DifficultyTier.EASY: DifficultyProfile(
        name="easy",
        strategy=Strategy.MINIMAX,
        depth=2,
        time_limit=1.0,
        mix=(
            StrategyChoice(Strategy.RANDOM, 0.5),
            StrategyChoice(Strategy.MINIMAX, 0.3, depth=2),
            StrategyChoice(Strategy.MINIMAX, 0.2, depth=4),
        ),
    ),
    DifficultyTier.MEDIUM: DifficultyProfile(
        name="medium",
        strategy=Strategy.MINIMAX,
        depth=2,
        time_limit=1.0,
        mix=(
            StrategyChoice(Strategy.RANDOM, 0.2),
            StrategyChoice(Strategy.MINIMAX, 0.6, depth=2),
            StrategyChoice(Strategy.MINIMAX, 0.2, depth=4),
        ),
    ),
    DifficultyTier.BALANCED: DifficultyProfile(
        name="balanced",
        strategy=Strategy.WEIGHTED,
        offensive_weight=1.0,
        defensive_weight=1.0,
        center_weight=1.5,
        randomness=0.3,
    ),
    DifficultyTier.AGGRESSIVE: DifficultyProfile(
        name="aggressive",
        strategy=Strategy.WEIGHTED,
        offensive_weight=2.0,
        defensive_weight=1.0,
        center_weight=1.5,
        randomness=0.3,
    ),
    DifficultyTier.DEFENSIVE: DifficultyProfile(
        name="defensive",
        strategy=Strategy.WEIGHTED,
        offensive_weight=1.0,
        defensive_weight=2.0,
        center_weight=1.5,
        randomness=0.3,
    ),
    DifficultyTier.HARD: DifficultyProfile(
        name="hard",
        strategy=Strategy.MINIMAX,
        depth=10,
        phase_depths=((20, 4), (30, 8), (sys.maxsize, 10)),
        time_limit=2.0,
        node_budget=200_000,
    ),
    DifficultyTier.EXPERT: DifficultyProfile(
        name="expert",
        strategy=Strategy.MINIMAX,
        depth=12,
        time_limit=4.0,
        node_budget=500_000,
        max_branching=16,
    ),
    DifficultyTier.MONTE_CARLO: DifficultyProfile(
        name="monte_carlo",
        strategy=Strategy.SIMULATION,
        simulations=100,
        min_simulations=10,
        max_playout_moves=60,
        time_limit=2.0,
    ),
}

TierLike = Union[DifficultyTier, DifficultyProfile, str]


def resolve_profile(tier: TierLike) -> DifficultyProfile:
    """Accept a tier, a tier name or a ready-made profile."""
    if isinstance(tier, DifficultyProfile):
        return tier
    if isinstance(tier, str):
        tier = DifficultyTier.from_name(tier)
    if not isinstance(tier, DifficultyTier):
        raise ConfigError(f"Not a difficulty tier: {tier!r}")
    return TIER_PROFILES[tier]
