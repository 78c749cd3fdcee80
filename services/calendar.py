"""Calendar reads and per-exercise edits."""

from datetime import date, datetime
from typing import List, Optional

from schemas.scheduled_exercise import (
    CalendarView,
    PersistedInstance,
    ScheduledExercise,
    ScheduledExerciseCreate,
)
from schemas.workout_plan import WorkoutPlan
from services.exercise_catalog import ExerciseCatalog
from services.plan_store import WorkoutPlanStore
from services.scheduled_exercise_store import ScheduledExerciseStore
from utils.errors import NotFoundError, ValidationError
from utils.logger import setup_logger
from utils.templates import project_occurrences

logger = setup_logger(__name__)

MAX_CALENDAR_DAYS = 366


class CalendarService:
    """Calendar view plus add, complete and delete for scheduled exercises."""

    def __init__(
        self,
        exercise_store: ScheduledExerciseStore,
        plan_store: WorkoutPlanStore,
        catalog: ExerciseCatalog,
    ):
        self.exercise_store = exercise_store
        self.plan_store = plan_store
        self.catalog = catalog

    async def get_calendar(
        self,
        user_id: str,
        start_date: date,
        end_date: date,
        active_plan: Optional[WorkoutPlan] = None,
    ) -> CalendarView:
        """Stored exercises in the range plus the not-yet-materialized occurrences of `active_plan`."""
        if start_date > end_date:
            raise ValidationError(
                "Start date must not be after end date",
                details={"start_date": start_date.isoformat(), "end_date": end_date.isoformat()},
            )
        if (end_date - start_date).days >= MAX_CALENDAR_DAYS:
            raise ValidationError(
                f"Calendar range may span at most {MAX_CALENDAR_DAYS} days",
                details={"start_date": start_date.isoformat(), "end_date": end_date.isoformat()},
            )

        stored = await self.exercise_store.find_in_range(user_id, start_date, end_date, include_hidden=True)
        entries = [PersistedInstance(exercise=e) for e in stored if not e.is_hidden]
        if active_plan is not None:
            entries.extend(project_occurrences(active_plan, start_date, end_date, stored))
        entries.sort(key=lambda entry: (entry.date, entry.order_index, entry.kind))

        return CalendarView(
            start_date=start_date,
            end_date=end_date,
            active_plan_id=active_plan.id if active_plan else None,
            entries=entries,
        )

    async def get_exercises_for_date(self, user_id: str, day: date) -> List[ScheduledExercise]:
        return await self.exercise_store.find_in_range(user_id, day, day)

    async def add_exercise(self, user_id: str, payload: ScheduledExerciseCreate) -> ScheduledExercise:
        """Add an exercise by hand; linking it to a plan keeps it through regeneration."""
        exercise = await self.catalog.find_by_id(payload.exercise_id)
        if exercise is None:
            raise NotFoundError("Exercise not found", details={"exercise_id": payload.exercise_id})
        if payload.workout_plan_id and await self.plan_store.get(payload.workout_plan_id, user_id) is None:
            raise NotFoundError("Workout plan not found", details={"workout_plan_id": payload.workout_plan_id})

        now = datetime.utcnow()
        instance = ScheduledExercise(
            user_id=user_id,
            category_id=payload.category_id or exercise.category_id,
            modified_by_user=payload.workout_plan_id is not None,
            created_at=now,
            updated_at=now,
            **payload.model_dump(exclude={"category_id"}),
        )
        stored = await self.exercise_store.insert(instance)
        logger.info(f"Added exercise {payload.exercise_id} on {payload.date} for user {user_id}")
        return stored

    async def set_completion(self, user_id: str, exercise_id: str, completed: bool) -> ScheduledExercise:
        updated = await self.exercise_store.update(exercise_id, user_id, {
            "completed": completed,
            "completed_at": datetime.utcnow() if completed else None,
        })
        if updated is None:
            raise NotFoundError("Scheduled exercise not found", details={"exercise_id": exercise_id})
        return updated

    async def set_completion_batch(self, user_id: str, exercise_ids: List[str], completed: bool) -> int:
        if not exercise_ids:
            raise ValidationError("No exercises given")
        return await self.exercise_store.set_completion(user_id, exercise_ids, completed)

    async def delete_exercise(self, user_id: str, exercise_id: str) -> None:
        if not await self.exercise_store.delete(exercise_id, user_id):
            raise NotFoundError("Scheduled exercise not found", details={"exercise_id": exercise_id})
        logger.info(f"Deleted scheduled exercise {exercise_id} for user {user_id}")

    async def clear_date(self, user_id: str, day: date, workout_plan_id: Optional[str] = None) -> int:
        """Delete the user's exercises on a date, optionally only those of one plan."""
        deleted = await self.exercise_store.delete_for_date(user_id, day, workout_plan_id)
        logger.info(f"Cleared {deleted} exercises on {day} for user {user_id}")
        return deleted
