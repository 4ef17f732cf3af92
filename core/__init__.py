"""
Core module - Concept graph, mastery records and review scheduling.

Components:
    - models: Concept and MasteryRecord types
    - skill_graph: Concept prerequisite DAG and registry loading
    - mastery: Exposure -> mastery update
    - scheduler: Spaced repetition review dates
"""

from .models import Concept, MasteryRecord, MasteryStatus, CategoryMap
from .skill_graph import SkillGraph, SkillGraphError, load_registry
from .mastery import apply_exposure, calculate_mastery
from .scheduler import REVIEW_INTERVALS, LEGACY_REVIEW_INTERVALS, next_review_date, is_due

__all__ = [
    "Concept",
    "MasteryRecord",
    "MasteryStatus",
    "CategoryMap",
    "SkillGraph",
    "SkillGraphError",
    "load_registry",
    "apply_exposure",
    "calculate_mastery",
    "REVIEW_INTERVALS",
    "LEGACY_REVIEW_INTERVALS",
    "next_review_date",
    "is_due",
]
