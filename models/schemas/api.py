"""Request and response models for the HTTP API."""

import datetime as dt
from typing import List, Optional

from pydantic import BaseModel, Field, model_validator

from models.schemas.enums import ConflictResolution, RescheduleScope
from schemas.scheduled_exercise import ScheduledExercise
from schemas.workout_plan import WorkoutPlan
from services.generation import GenerationResult


class CheckConflictsRequest(BaseModel):
    """Request model for checking plan date conflicts."""
    plan_id: Optional[str] = Field(None, description="Candidate plan; excluded from the results")
    start_date: Optional[dt.date] = Field(None, description="Defaults to the candidate plan's start")
    end_date: Optional[dt.date] = Field(None, description="Defaults to the candidate plan's end")
    include_inactive: bool = Field(False, description="Also report inactive dated plans")

    @model_validator(mode="after")
    def check_candidate(self):
        if self.plan_id is None and self.start_date is None:
            raise ValueError("Either plan_id or start_date is required")
        return self


class ResolveConflictsRequest(BaseModel):
    """Request model for resolving plan conflicts."""
    plan_id: str = Field(..., description="Plan being activated")
    conflict_plan_ids: List[str] = Field(default_factory=list, description="Plans reported as conflicting")
    resolution: ConflictResolution = Field(..., description="replace or keep_existing")


class GenerateExercisesRequest(BaseModel):
    """Request model for generating scheduled exercises from a plan."""
    workout_plan_id: Optional[str] = Field(None, description="Defaults to the active plan")
    start_date: Optional[dt.date] = Field(None, description="Defaults to today")
    end_date: Optional[dt.date] = Field(None, description="Defaults to start_date + advance_days")
    replace_existing: bool = Field(False, description="Replace the plan's exercises in the range")


class EnsureGenerationRequest(BaseModel):
    """Request model for filling a plan's calendar forward."""
    workout_plan_id: Optional[str] = Field(None, description="Defaults to the active plan")
    min_days_in_advance: int = Field(7, ge=1, le=90, description="Days ahead that must be generated")


class WorkoutPlanUpdateResponse(BaseModel):
    plan: WorkoutPlan
    generation: Optional[GenerationResult] = None


class RescheduleRequest(BaseModel):
    """Request model for moving a calendar exercise within its week."""
    exercise_id: str = Field(..., description="Stored exercise id or template occurrence id")
    new_date: dt.date = Field(..., description="Target date in the same Sunday-Saturday week")
    scope: RescheduleScope = Field(RescheduleScope.THIS_WEEK, description="this-week or whole-plan")


class ConvertTemplateRequest(BaseModel):
    """Request model for materializing a template occurrence."""
    template_id: str = Field(..., description="Template occurrence id")
    new_date: Optional[dt.date] = Field(None, description="Defaults to the occurrence date")
    scope: RescheduleScope = Field(RescheduleScope.THIS_WEEK, description="this-week or whole-plan")


class CompletionRequest(BaseModel):
    completed: bool = Field(..., description="New completion state")


class BatchStatusRequest(BaseModel):
    """Request model for updating completion of several exercises."""
    exercise_ids: List[str] = Field(..., min_length=1, description="Stored exercise ids")
    completed: bool = Field(..., description="New completion state")


class BatchStatusResponse(BaseModel):
    success: bool = True
    updated: int = 0


class ClearDateResponse(BaseModel):
    success: bool = True
    deleted: int = 0


class ScheduledExerciseList(BaseModel):
    date: dt.date
    exercises: List[ScheduledExercise] = Field(default_factory=list)
