"""Workout plan collection schema."""

from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from config.generation_config import GENERATION_DEFAULTS, GENERATION_LIMITS
from models.schemas.enums import PlanLevel, PlanMode

DAYS_PER_WEEK = 7


class ExerciseTemplate(BaseModel):
    """One exercise prescribed on a day of the weekly template."""
    exercise_id: str = Field(..., description="Catalog exercise identifier")
    sets: int = Field(..., ge=1, le=20, description="Target sets")
    reps: int = Field(..., ge=1, le=100, description="Target repetitions")
    weight: float = Field(0, ge=0, description="Target weight")
    duration_minutes: Optional[int] = Field(None, ge=1, description="Optional target duration")
    notes: str = Field("", max_length=500, description="Free-form notes")
    order_index: int = Field(0, ge=0, description="Position within the day")


class DayTemplate(BaseModel):
    """A day-of-week slot; no exercise templates means a rest day."""
    day_of_week: int = Field(..., ge=0, le=6, description="0 = Sunday ... 6 = Saturday")
    name: Optional[str] = Field(None, max_length=50, description="e.g. Push Day, Rest")
    exercise_templates: List[ExerciseTemplate] = Field(default_factory=list)

    @property
    def is_rest_day(self) -> bool:
        return not self.exercise_templates


class GenerationPolicy(BaseModel):
    """Controls how far ahead and in what batches a plan materializes."""
    advance_days: int = Field(
        GENERATION_DEFAULTS["advance_days"],
        ge=GENERATION_LIMITS["advance_days"]["min"],
        le=GENERATION_LIMITS["advance_days"]["max"],
        description="How many days in advance to generate exercises",
    )
    batch_size: int = Field(
        GENERATION_DEFAULTS["batch_size"],
        ge=GENERATION_LIMITS["batch_size"]["min"],
        le=GENERATION_LIMITS["batch_size"]["max"],
        description="Days processed per generation batch",
    )
    last_generation_time: Optional[datetime] = Field(None, description="When exercises were last generated")
    furthest_generated_date: Optional[date] = Field(None, description="Furthest date generated so far")
    preserve_user_modifications: bool = Field(
        GENERATION_DEFAULTS["preserve_user_modifications"],
        description="Never delete completed or user-modified instances when replacing",
    )
    auto_generation_enabled: bool = Field(
        GENERATION_DEFAULTS["auto_generation_enabled"],
        description="Whether the cron generation run includes this plan",
    )


def normalize_weekly_template(days: List[DayTemplate]) -> List[DayTemplate]:
    """Return exactly seven slots ordered Sunday..Saturday, filling gaps with rest days."""
    by_day = {}
    for day in days:
        if day.day_of_week in by_day:
            raise ValueError(f"Weekly template lists day {day.day_of_week} more than once")
        by_day[day.day_of_week] = day
    return [by_day.get(dow, DayTemplate(day_of_week=dow)) for dow in range(DAYS_PER_WEEK)]


class WorkoutPlanBase(BaseModel):
    """Fields shared by stored plans and create payloads."""
    name: str = Field(..., min_length=1, max_length=100, description="Plan name")
    description: Optional[str] = Field(None, max_length=500, description="Plan description")
    level: PlanLevel = Field(..., description="beginner, intermediate or advanced")
    mode: PlanMode = Field(..., description="ongoing or dated")
    start_date: Optional[date] = Field(None, description="Required for dated plans")
    end_date: Optional[date] = Field(None, description="Required for dated plans")
    duration_weeks: Optional[int] = Field(None, ge=1, le=52, description="Optional duration in weeks")
    weekly_template: List[DayTemplate] = Field(default_factory=list, description="Seven day-of-week slots")
    generation_policy: GenerationPolicy = Field(default_factory=GenerationPolicy)

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Plan name must not be blank")
        return value

    @field_validator("weekly_template")
    @classmethod
    def fill_weekly_template(cls, value: List[DayTemplate]) -> List[DayTemplate]:
        return normalize_weekly_template(value)

    @model_validator(mode="after")
    def check_dates(self):
        if self.mode == PlanMode.DATED:
            if self.start_date is None or self.end_date is None:
                raise ValueError("Start date and end date are required for dated workout plans")
        if self.start_date and self.end_date and self.end_date <= self.start_date:
            raise ValueError("End date must be after start date")
        return self


class WorkoutPlanCreate(WorkoutPlanBase):
    """Payload for creating a plan."""
    is_active: bool = Field(False, description="Activate right after creation")


class WorkoutPlanUpdate(BaseModel):
    """Partial update; only provided fields change."""
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    level: Optional[PlanLevel] = None
    mode: Optional[PlanMode] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    duration_weeks: Optional[int] = Field(None, ge=1, le=52)
    weekly_template: Optional[List[DayTemplate]] = None
    generation_policy: Optional[GenerationPolicy] = None

    @field_validator("weekly_template")
    @classmethod
    def fill_weekly_template(cls, value: Optional[List[DayTemplate]]) -> Optional[List[DayTemplate]]:
        if value is None:
            return None
        return normalize_weekly_template(value)


class WorkoutPlan(WorkoutPlanBase):
    """Workout plan collection model."""
    id: Optional[str] = Field(None, description="Plan identifier")
    user_id: str = Field(..., description="Owner identifier")
    is_active: bool = Field(False, description="Only one plan per user may be active")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def day_slot(self, day_of_week: int) -> DayTemplate:
        """Slot for a day of week (0 = Sunday)."""
        for slot in self.weekly_template:
            if slot.day_of_week == day_of_week:
                return slot
        return DayTemplate(day_of_week=day_of_week)
