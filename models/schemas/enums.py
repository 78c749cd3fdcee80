"""Enums for collection fields."""

from enum import Enum


class PlanLevel(str, Enum):
    """Workout plan difficulty level."""
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class PlanMode(str, Enum):
    """Ongoing plans run indefinitely once started; dated plans have a start and end date."""
    ONGOING = "ongoing"
    DATED = "dated"


class RescheduleScope(str, Enum):
    """Whether a reschedule edits one occurrence or the recurring template."""
    THIS_WEEK = "this-week"
    WHOLE_PLAN = "whole-plan"


class ExerciseSource(str, Enum):
    """Where a calendar exercise comes from."""
    MANUAL = "manual"
    SCHEDULED = "scheduled"
    TEMPLATE = "template"


class ConflictResolution(str, Enum):
    """How to resolve overlapping plans."""
    REPLACE = "replace"
    KEEP_EXISTING = "keep_existing"
