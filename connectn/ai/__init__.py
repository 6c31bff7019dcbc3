"""
connectn.ai - Threat analysis, evaluation and move selection

The decision engine lives in connectn.ai.engine and is not imported here, so that
the game package can load the analysis modules without pulling in the engine.
"""

from connectn.ai.threats import ThreatAnalyzer, ThreatKind, ThreatRecord
from connectn.ai.evaluation import PositionEvaluator, EvaluationResult, classify_phase
from connectn.ai.difficulty import DifficultyTier, DifficultyProfile, Strategy, TIER_PROFILES

__all__ = ['ThreatAnalyzer', 'ThreatKind', 'ThreatRecord', 'PositionEvaluator',
           'EvaluationResult', 'classify_phase', 'DifficultyTier', 'DifficultyProfile',
           'Strategy', 'TIER_PROFILES']
