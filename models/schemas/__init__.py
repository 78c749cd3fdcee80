"""API request/response models (models.schemas.api) and shared enums."""

from models.schemas.enums import (
    ConflictResolution,
    ExerciseSource,
    PlanLevel,
    PlanMode,
    RescheduleScope,
)

__all__ = [
    "ConflictResolution",
    "ExerciseSource",
    "PlanLevel",
    "PlanMode",
    "RescheduleScope",
]
