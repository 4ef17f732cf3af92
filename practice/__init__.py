"""
Practice module - Sessions, recommendations and readiness.

Components:
    - session_generator: Mixed weak/review practice sessions
    - recommender: Ranked "what next" list and reinforcement picks
    - readiness: Category scores, role readiness and gaps
"""

from .session_generator import SessionGenerator, PracticeSession, PracticeItem, PracticePriority
from .recommender import Recommender, Recommendation, ReinforcementTarget, ALL_CAUGHT_UP
from .readiness import ReadinessEvaluator, ReadinessResult, GapResult, CategoryScore, LearningStats, Difficulty

__all__ = [
    "SessionGenerator",
    "PracticeSession",
    "PracticeItem",
    "PracticePriority",
    "Recommender",
    "Recommendation",
    "ReinforcementTarget",
    "ALL_CAUGHT_UP",
    "ReadinessEvaluator",
    "ReadinessResult",
    "GapResult",
    "CategoryScore",
    "LearningStats",
    "Difficulty",
]
