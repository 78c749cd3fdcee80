"""Scheduled exercise collection schema and calendar entry variants."""

import datetime as dt
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, Field

from models.schemas.enums import ExerciseSource


class ScheduledExercise(BaseModel):
    """Scheduled exercise collection model."""
    id: Optional[str] = Field(None, description="Instance identifier")
    user_id: str = Field(..., description="Owner identifier")
    exercise_id: str = Field(..., description="Catalog exercise identifier")
    category_id: Optional[str] = Field(None, description="Catalog category identifier")
    workout_plan_id: Optional[str] = Field(None, description="Originating plan; None for manual exercises")
    date: dt.date = Field(..., description="Calendar date, no time component")
    sets: int = Field(3, ge=0)
    reps: int = Field(10, ge=0)
    weight: float = Field(0, ge=0)
    notes: str = Field("", max_length=500)
    order_index: int = Field(0, ge=0)
    completed: bool = False
    completed_at: Optional[dt.datetime] = None
    is_hidden: bool = Field(False, description="Suppresses the plan template of this exercise on this date")
    is_temporary_change: bool = Field(False, description="This-week override of the plan template")
    modified_by_user: bool = False
    generated_at: Optional[dt.datetime] = None
    generation_batch_id: Optional[str] = None
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None

    @property
    def source(self) -> ExerciseSource:
        if self.workout_plan_id:
            return ExerciseSource.SCHEDULED
        return ExerciseSource.MANUAL


class ScheduledExerciseCreate(BaseModel):
    """Payload for adding an exercise to the calendar by hand."""
    exercise_id: str = Field(..., description="Catalog exercise identifier")
    category_id: Optional[str] = Field(None, description="Defaults to the catalog category")
    workout_plan_id: Optional[str] = Field(None, description="Link to a plan; omit for a manual exercise")
    date: dt.date = Field(..., description="Calendar date")
    sets: int = Field(3, ge=0)
    reps: int = Field(10, ge=0)
    weight: float = Field(0, ge=0)
    notes: str = Field("", max_length=500)
    order_index: int = Field(0, ge=0)


class PersistedInstance(BaseModel):
    """A calendar entry backed by a stored scheduled exercise."""
    kind: Literal["persisted"] = "persisted"
    exercise: ScheduledExercise

    @property
    def date(self) -> dt.date:
        return self.exercise.date

    @property
    def order_index(self) -> int:
        return self.exercise.order_index

    @property
    def exercise_id(self) -> str:
        return self.exercise.exercise_id


class ProjectedOccurrence(BaseModel):
    """A not-yet-materialized template occurrence, computed from the active plan."""
    kind: Literal["projected"] = "projected"
    id: str = Field(..., description="Deterministic occurrence key")
    workout_plan_id: str
    date: dt.date
    day_of_week: int = Field(..., ge=0, le=6)
    exercise_id: str
    sets: int
    reps: int
    weight: float
    duration_minutes: Optional[int] = None
    notes: str = ""
    order_index: int = 0

    @property
    def source(self) -> ExerciseSource:
        return ExerciseSource.TEMPLATE


CalendarEntry = Annotated[Union[PersistedInstance, ProjectedOccurrence], Field(discriminator="kind")]


class CalendarView(BaseModel):
    """Calendar entries for a date range."""
    start_date: dt.date
    end_date: dt.date
    active_plan_id: Optional[str] = None
    entries: List[CalendarEntry] = Field(default_factory=list)
