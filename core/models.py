"""
Models - Typed records shared by every component.

Types:
    - Concept: immutable registry entry, validated once at ingestion (pydantic)
    - MasteryRecord: one learner x concept progress row (dataclass)
    - MasteryStatus: derived status of a record
"""

from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# Mastery at or above this value counts as mastered
MASTERED_THRESHOLD = 80

# Mastery below this value counts as weak
WEAK_THRESHOLD = 50

# Ordered category name -> concept ids, used only for aggregation
CategoryMap = Dict[str, List[str]]


class MasteryStatus(str, Enum):
    """Status derived from a record's exposures and mastery."""
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    MASTERED = "mastered"


# ==================== Concept ====================

class Concept(BaseModel):
    """
    A single learnable concept from the registry.

    Registry files use camelCase keys (``estimatedHours``); attributes are
    snake_case. When ``reinforces`` is omitted the concept reinforces its
    prerequisites.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    id: str = Field(min_length=1)
    title: str
    phase: str
    prerequisites: Tuple[str, ...] = ()
    reinforces: Optional[Tuple[str, ...]] = None
    skills: Tuple[str, ...] = ()
    estimated_hours: float = Field(default=0.0, ge=0, alias="estimatedHours")

    @field_validator("prerequisites", "skills")
    @classmethod
    def _dedupe(cls, values: Tuple[str, ...]) -> Tuple[str, ...]:
        # Keep declaration order, drop repeats
        return tuple(dict.fromkeys(values))

    @model_validator(mode="after")
    def _no_self_reference(self) -> "Concept":
        if self.id in self.prerequisites:
            raise ValueError(f"concept '{self.id}' lists itself as a prerequisite")
        return self


# ==================== Mastery Record ====================

@dataclass
class MasteryRecord:
    """Progress of one learner on one concept."""
    learner_id: str
    concept_id: str
    exposures: int = 0
    successes: int = 0
    failures: int = 0
    mastery: int = 0  # [0, 100]
    last_practiced_at: Optional[datetime] = None
    next_review_at: Optional[datetime] = None

    @property
    def status(self) -> MasteryStatus:
        if self.exposures == 0:
            return MasteryStatus.NOT_STARTED
        if self.mastery >= MASTERED_THRESHOLD:
            return MasteryStatus.MASTERED
        return MasteryStatus.IN_PROGRESS

    @property
    def success_rate(self) -> float:
        """Fraction of exposures that succeeded (0 before any exposure)."""
        if self.exposures == 0:
            return 0.0
        return self.successes / self.exposures

    @property
    def is_weak(self) -> bool:
        return self.mastery < WEAK_THRESHOLD

    def copy(self, **changes) -> "MasteryRecord":
        return replace(self, **changes)

    # ==================== Serialization ====================

    def to_dict(self) -> dict:
        """Serialize to the persisted row shape."""
        return {
            "learnerId": self.learner_id,
            "conceptId": self.concept_id,
            "exposures": self.exposures,
            "successes": self.successes,
            "failures": self.failures,
            "mastery": self.mastery,
            "status": self.status.value,
            "lastPracticedAt": _isoformat(self.last_practiced_at),
            "nextReviewAt": _isoformat(self.next_review_at),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "MasteryRecord":
        """
        Deserialize a persisted row and check its invariants.

        Raises:
            ValueError: if counters or mastery are out of range.
        """
        record = cls(
            learner_id=data["learnerId"],
            concept_id=data["conceptId"],
            exposures=int(data.get("exposures", 0)),
            successes=int(data.get("successes", 0)),
            failures=int(data.get("failures", 0)),
            mastery=int(data.get("mastery", 0)),
            last_practiced_at=_parse_datetime(data.get("lastPracticedAt")),
            next_review_at=_parse_datetime(data.get("nextReviewAt")),
        )
        record.validate()
        return record

    def validate(self):
        if min(self.exposures, self.successes, self.failures) < 0:
            raise ValueError(f"negative counters on {self.concept_id}")
        if self.successes + self.failures != self.exposures:
            raise ValueError(
                f"{self.concept_id}: successes ({self.successes}) + failures "
                f"({self.failures}) != exposures ({self.exposures})"
            )
        if not 0 <= self.mastery <= 100:
            raise ValueError(f"{self.concept_id}: mastery {self.mastery} outside [0, 100]")


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _parse_datetime(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    return datetime.fromisoformat(value)
