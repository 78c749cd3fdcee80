"""Collection schemas organized by collection type."""

from schemas.exercise import Exercise
from schemas.scheduled_exercise import (
    CalendarEntry,
    CalendarView,
    PersistedInstance,
    ProjectedOccurrence,
    ScheduledExercise,
    ScheduledExerciseCreate,
)
from schemas.workout_plan import (
    DayTemplate,
    ExerciseTemplate,
    GenerationPolicy,
    WorkoutPlan,
    WorkoutPlanCreate,
    WorkoutPlanUpdate,
)

__all__ = [
    "Exercise",
    "CalendarEntry",
    "CalendarView",
    "PersistedInstance",
    "ProjectedOccurrence",
    "ScheduledExercise",
    "ScheduledExerciseCreate",
    "DayTemplate",
    "ExerciseTemplate",
    "GenerationPolicy",
    "WorkoutPlan",
    "WorkoutPlanCreate",
    "WorkoutPlanUpdate",
]
