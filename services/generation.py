"""Materializes workout plan templates into dated scheduled exercises."""

import datetime as dt
import uuid
from datetime import date, datetime, timedelta
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from schemas.scheduled_exercise import ScheduledExercise
from schemas.workout_plan import WorkoutPlan
from services.exercise_catalog import CategoryLookup, ExerciseCatalog
from services.plan_store import WorkoutPlanStore
from services.scheduled_exercise_store import ScheduledExerciseStore
from utils.dates import iter_batches, iter_dates, today_utc
from utils.errors import PersistenceError, ValidationError, WorkoutPlannerError
from utils.logger import setup_logger
from utils.templates import (
    desired_templates,
    diff_day,
    instance_from_template,
    plan_window,
    uncovered_templates,
)

logger = setup_logger(__name__)


class SkippedEntry(BaseModel):
    """A template occurrence (or a whole batch) that could not be materialized."""
    date: Optional[dt.date] = Field(None, description="Date of the skipped occurrence or first day of the batch")
    end_date: Optional[dt.date] = Field(None, description="Last day of a skipped batch")
    exercise_id: Optional[str] = Field(None, description="Template exercise, when a single entry was skipped")
    reason: str = Field(..., description="Why it was skipped")


class GenerationResult(BaseModel):
    """Outcome of one generation run."""
    success: bool = True
    count: int = Field(0, description="Instances created")
    retained: int = Field(0, description="Existing instances kept because they already match")
    removed: int = Field(0, description="Stale instances deleted when replacing")
    skipped: List[SkippedEntry] = Field(default_factory=list)
    message: str = ""
    batch_id: Optional[str] = None
    workout_plan_id: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None


class GenerationStatus(BaseModel):
    """Whether a plan has been generated far enough ahead."""
    needs_generation: bool
    latest_generated_date: Optional[date] = None
    next_target_date: date
    days_to_generate: int


class PlanGenerationReport(BaseModel):
    workout_plan_id: str
    user_id: str
    result: GenerationResult


class BulkGenerationResult(BaseModel):
    """Outcome of generating for every active plan."""
    success: bool = True
    plans_processed: int = 0
    exercises_generated: int = 0
    results: List[PlanGenerationReport] = Field(default_factory=list)


class ExerciseGenerator:
    """Generation Engine: weekly template + date range -> ScheduledExercise instances."""

    def __init__(
        self,
        plan_store: WorkoutPlanStore,
        exercise_store: ScheduledExerciseStore,
        catalog: ExerciseCatalog,
    ):
        self.plan_store = plan_store
        self.exercise_store = exercise_store
        self.catalog = catalog

    async def generate(
        self,
        plan: WorkoutPlan,
        start_date: date,
        end_date: date,
        replace_existing: bool = False,
    ) -> GenerationResult:
        """Materialize `plan` for every date in [start_date, end_date].

        With `replace_existing` each day ends up holding exactly the plan's
        template for that weekday (user-modified and completed instances are
        kept when the plan's policy says so). Without it, only template
        entries with no instance on their day are added.

        Per-entry and per-batch failures are collected in `skipped`; only
        invalid input raises.
        """
        if start_date > end_date:
            raise ValidationError(
                "Start date must not be after end date",
                details={"start_date": start_date.isoformat(), "end_date": end_date.isoformat()},
            )
        if not plan.weekly_template:
            raise ValidationError("Workout plan has no weekly template", details={"workout_plan_id": plan.id})
        if plan.id is None:
            raise ValidationError("Workout plan must be saved before generating exercises")

        result = GenerationResult(
            batch_id=uuid.uuid4().hex,
            workout_plan_id=plan.id,
            start_date=start_date,
            end_date=end_date,
        )

        window_start, window_end = plan_window(plan)
        first = max(start_date, window_start) if window_start else start_date
        last = min(end_date, window_end) if window_end else end_date
        if first > last:
            result.message = "Date range is outside the workout plan's schedule"
            logger.info(f"Plan {plan.id}: nothing to generate between {start_date} and {end_date}")
            return result

        policy = plan.generation_policy
        categories = CategoryLookup(self.catalog)
        for batch_start, batch_end in iter_batches(first, last, policy.batch_size):
            try:
                await self._generate_batch(plan, batch_start, batch_end, replace_existing, categories, result)
            except PersistenceError as e:
                logger.error(f"Plan {plan.id}: generation batch {batch_start}..{batch_end} failed: {e}")
                result.skipped.append(SkippedEntry(date=batch_start, end_date=batch_end, reason=e.message))

        await self._record_progress(plan, last, result)

        result.message = f"Successfully generated {result.count} exercises"
        if result.skipped:
            result.message += f" ({len(result.skipped)} skipped)"
        logger.info(
            f"Plan {plan.id}: generated {result.count}, retained {result.retained}, "
            f"removed {result.removed}, skipped {len(result.skipped)} for {first}..{last}"
        )
        return result

    async def _generate_batch(
        self,
        plan: WorkoutPlan,
        start: date,
        end: date,
        replace_existing: bool,
        categories: CategoryLookup,
        result: GenerationResult,
    ) -> None:
        existing = await self.exercise_store.find_in_range(
            plan.user_id, start, end, workout_plan_id=plan.id, include_hidden=True
        )
        by_date: Dict[date, List[ScheduledExercise]] = {}
        for instance in existing:
            by_date.setdefault(instance.date, []).append(instance)

        preserve = plan.generation_policy.preserve_user_modifications
        now = datetime.utcnow()
        stale: List[ScheduledExercise] = []
        pending: List[ScheduledExercise] = []

        for day in iter_dates(start, end):
            day_instances = by_date.get(day, [])
            hidden = [e.exercise_id for e in day_instances if e.is_hidden]
            live = [e for e in day_instances if not e.is_hidden]
            desired = desired_templates(plan, day, hidden)

            if replace_existing:
                day_stale, missing, retained = diff_day(desired, live, preserve)
                stale.extend(day_stale)
                result.retained += retained
            else:
                missing = uncovered_templates(desired, live)

            for template in missing:
                found, category_id = await categories.resolve(template.exercise_id)
                if not found:
                    logger.warning(f"Exercise {template.exercise_id} not found; skipping {day}")
                    result.skipped.append(SkippedEntry(
                        date=day,
                        exercise_id=template.exercise_id,
                        reason="Exercise no longer exists",
                    ))
                    continue
                pending.append(instance_from_template(plan, template, day, category_id, result.batch_id, now))

        # Deletes finish before inserts so a day never shows old and new sets together.
        if stale:
            result.removed += await self.exercise_store.delete_many([e.id for e in stale])
        if pending:
            stored, failures = await self.exercise_store.insert_many(pending)
            result.count += len(stored)
            for position, reason in failures:
                failed = pending[position]
                result.skipped.append(SkippedEntry(date=failed.date, exercise_id=failed.exercise_id, reason=reason))

    async def _record_progress(self, plan: WorkoutPlan, last: date, result: GenerationResult) -> None:
        policy = plan.generation_policy
        furthest = policy.furthest_generated_date
        updated = policy.model_copy(update={
            "last_generation_time": datetime.utcnow(),
            "furthest_generated_date": max(furthest, last) if furthest else last,
        })
        try:
            await self.plan_store.update_generation_policy(plan.id, updated)
        except PersistenceError as e:
            logger.error(f"Plan {plan.id}: could not record generation progress: {e}")
            result.skipped.append(SkippedEntry(reason=f"Generation progress not recorded: {e.message}"))
            return
        plan.generation_policy = updated

    def generation_status(
        self,
        plan: WorkoutPlan,
        min_days_in_advance: int = 7,
        today: Optional[date] = None,
    ) -> GenerationStatus:
        today = today or today_utc()
        target = today + timedelta(days=min_days_in_advance)
        latest = plan.generation_policy.furthest_generated_date

        needs_generation = latest is None or latest < target
        start = latest + timedelta(days=1) if latest else today
        days = (target - start).days + 1 if needs_generation else 0
        return GenerationStatus(
            needs_generation=needs_generation,
            latest_generated_date=latest,
            next_target_date=target,
            days_to_generate=max(days, 0),
        )

    async def ensure_generated(
        self,
        plan: WorkoutPlan,
        min_days_in_advance: int = 7,
        today: Optional[date] = None,
    ) -> GenerationResult:
        """Fill forward so the plan is materialized through today + min_days_in_advance."""
        today = today or today_utc()
        status = self.generation_status(plan, min_days_in_advance, today)
        if not status.needs_generation:
            return GenerationResult(
                workout_plan_id=plan.id,
                message="Exercises already generated beyond target date",
            )

        start = today
        if status.latest_generated_date:
            start = max(today, status.latest_generated_date + timedelta(days=1))
        return await self.generate(plan, start, status.next_target_date, replace_existing=False)

    async def generate_for_active_plans(self, today: Optional[date] = None) -> BulkGenerationResult:
        """Fill forward every active plan with auto-generation enabled."""
        today = today or today_utc()
        plans = [p for p in await self.plan_store.list_active() if p.generation_policy.auto_generation_enabled]
        summary = BulkGenerationResult(plans_processed=len(plans))

        for plan in plans:
            try:
                result = await self.ensure_generated(plan, plan.generation_policy.advance_days, today)
            except WorkoutPlannerError as e:
                logger.error(f"Error generating exercises for plan {plan.id}: {e}", exc_info=True)
                result = GenerationResult(success=False, workout_plan_id=plan.id, message=e.message)
            summary.exercises_generated += result.count
            summary.results.append(PlanGenerationReport(
                workout_plan_id=plan.id,
                user_id=plan.user_id,
                result=result,
            ))

        logger.info(
            f"Generated {summary.exercises_generated} exercises across {summary.plans_processed} active plans"
        )
        return summary
