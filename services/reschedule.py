"""Drag-and-drop rescheduling of calendar exercises within one week."""

from datetime import date, datetime, timedelta
from typing import Awaitable, Callable, Dict, List, Optional, Tuple, Union

from models.schemas.enums import RescheduleScope
from schemas.scheduled_exercise import PersistedInstance, ProjectedOccurrence, ScheduledExercise
from schemas.workout_plan import ExerciseTemplate, WorkoutPlan
from services.exercise_catalog import ExerciseCatalog
from services.plan_store import WorkoutPlanStore
from services.scheduled_exercise_store import ScheduledExerciseStore
from utils.dates import day_of_week, is_same_week, start_of_week
from utils.errors import NotFoundError, PersistenceError, ValidationError, WeekRestrictionError
from utils.locks import user_plan_lock
from utils.logger import setup_logger
from utils.templates import (
    OccurrenceKey,
    find_template_index,
    in_window,
    instance_from_template,
    locate_template,
    move_template,
    parse_occurrence_id,
    plan_window,
    project_occurrences,
)

logger = setup_logger(__name__)

UndoStep = Callable[[], Awaitable[object]]


class UndoLog:
    """Compensating writes for a multi-step change, replayed newest first."""

    def __init__(self, description: str):
        self.description = description
        self._steps: List[Tuple[str, UndoStep]] = []

    def record(self, label: str, step: UndoStep) -> None:
        self._steps.append((label, step))

    async def rollback(self) -> None:
        while self._steps:
            label, step = self._steps.pop()
            try:
                await step()
            except PersistenceError as e:
                # Keep undoing the remaining steps; the caller re-raises the original failure.
                logger.error(f"Rollback step '{label}' of {self.description} failed: {e}", exc_info=True)


class RescheduleCoordinator:
    """Moves persisted instances and projected occurrences between dates.

    Moves never leave the source date's Sunday-Saturday week. Scope decides
    whether the plan's weekly template follows the move.
    """

    def __init__(
        self,
        plan_store: WorkoutPlanStore,
        exercise_store: ScheduledExerciseStore,
        catalog: ExerciseCatalog,
    ):
        self.plan_store = plan_store
        self.exercise_store = exercise_store
        self.catalog = catalog

    async def resolve(self, user_id: str, exercise_id: str) -> Union[PersistedInstance, ProjectedOccurrence]:
        """Look up a calendar entry by stored id or projected-occurrence id."""
        key = parse_occurrence_id(exercise_id)
        if key is not None:
            occurrence, _, _ = await self._resolve_projected(user_id, key)
            return occurrence
        return PersistedInstance(exercise=await self._get_instance(user_id, exercise_id))

    async def reschedule(
        self,
        user_id: str,
        exercise_id: str,
        new_date: date,
        scope: RescheduleScope = RescheduleScope.THIS_WEEK,
    ) -> ScheduledExercise:
        """Move a calendar exercise to `new_date` and return the stored result."""
        if scope == RescheduleScope.WHOLE_PLAN:
            async with user_plan_lock(user_id):
                return await self._reschedule(user_id, exercise_id, new_date, scope)
        return await self._reschedule(user_id, exercise_id, new_date, scope)

    async def convert_template_to_scheduled(
        self,
        user_id: str,
        occurrence_id: str,
        new_date: Optional[date] = None,
        scope: RescheduleScope = RescheduleScope.THIS_WEEK,
    ) -> ScheduledExercise:
        """Materialize a projected occurrence, optionally moving it in the same step."""
        key = parse_occurrence_id(occurrence_id)
        if key is None:
            raise ValidationError(
                "Only template occurrences can be converted to scheduled exercises",
                details={"exercise_id": occurrence_id},
            )
        return await self.reschedule(user_id, occurrence_id, new_date or key.date, scope)

    async def _reschedule(
        self,
        user_id: str,
        exercise_id: str,
        new_date: date,
        scope: RescheduleScope,
    ) -> ScheduledExercise:
        key = parse_occurrence_id(exercise_id)
        if key is not None:
            occurrence, plan, template = await self._resolve_projected(user_id, key)
            self._check_same_week(occurrence.date, new_date, exercise_id)
            if scope == RescheduleScope.WHOLE_PLAN and occurrence.date != new_date:
                return await self._move_projected_template(user_id, plan, template, occurrence.date, new_date)
            return await self._materialize(user_id, plan, template, occurrence.date, new_date)

        instance = await self._get_instance(user_id, exercise_id)
        self._check_same_week(instance.date, new_date, exercise_id)
        if instance.date == new_date:
            return instance
        if instance.workout_plan_id is None:
            return await self._move_instance(user_id, instance, new_date, {})
        if scope == RescheduleScope.THIS_WEEK:
            return await self._move_for_this_week(user_id, instance, new_date)
        return await self._move_plan_instance(user_id, instance, new_date)

    @staticmethod
    def _check_same_week(old_date: date, new_date: date, exercise_id: str) -> None:
        if not is_same_week(old_date, new_date):
            raise WeekRestrictionError(
                "Exercises can only be rescheduled within the same week (Sunday to Saturday)",
                details={
                    "exercise_id": exercise_id,
                    "date": old_date.isoformat(),
                    "new_date": new_date.isoformat(),
                },
            )

    @staticmethod
    def _check_plan_window(plan: WorkoutPlan, new_date: date, exercise_id: str) -> None:
        start, end = plan_window(plan)
        if not in_window(new_date, (start, end)):
            raise ValidationError(
                "New date is outside the workout plan's schedule",
                details={
                    "exercise_id": exercise_id,
                    "new_date": new_date.isoformat(),
                    "start_date": start.isoformat() if start else None,
                    "end_date": end.isoformat() if end else None,
                },
            )

    @staticmethod
    def _hidden_marker(instance: ScheduledExercise) -> ScheduledExercise:
        return instance.model_copy(update={
            "id": None,
            "is_hidden": True,
            "is_temporary_change": True,
            "modified_by_user": True,
            "completed": False,
            "completed_at": None,
        })

    async def _get_instance(self, user_id: str, exercise_id: str) -> ScheduledExercise:
        instance = await self.exercise_store.get(exercise_id, user_id)
        if instance is None or instance.is_hidden:
            raise NotFoundError("Scheduled exercise not found", details={"exercise_id": exercise_id})
        return instance

    async def _get_plan(self, user_id: str, plan_id: str) -> WorkoutPlan:
        plan = await self.plan_store.get(plan_id, user_id)
        if plan is None:
            raise NotFoundError("Workout plan not found", details={"workout_plan_id": plan_id})
        return plan

    async def _resolve_projected(
        self, user_id: str, key: OccurrenceKey
    ) -> Tuple[ProjectedOccurrence, WorkoutPlan, ExerciseTemplate]:
        plan = await self._get_plan(user_id, key.plan_id)
        existing = await self.exercise_store.find_in_range(
            user_id, key.date, key.date, workout_plan_id=plan.id, include_hidden=True
        )
        occurrence = next(
            (
                o for o in project_occurrences(plan, key.date, key.date, existing)
                if o.exercise_id == key.exercise_id and o.order_index == key.order_index
            ),
            None,
        )
        if occurrence is None:
            raise NotFoundError(
                "Template occurrence not found or already scheduled",
                details={"exercise_id": key.exercise_id, "date": key.date.isoformat()},
            )
        slot = plan.day_slot(occurrence.day_of_week)
        index = find_template_index(slot, key.exercise_id, order_index=key.order_index)
        return occurrence, plan, slot.exercise_templates[index]

    async def _category_for(self, exercise_id: str) -> Optional[str]:
        exercise = await self.catalog.find_by_id(exercise_id)
        if exercise is None:
            raise NotFoundError("Exercise not found", details={"exercise_id": exercise_id})
        return exercise.category_id

    async def _move_instance(
        self,
        user_id: str,
        instance: ScheduledExercise,
        new_date: date,
        flags: Dict[str, bool],
    ) -> ScheduledExercise:
        updated = await self.exercise_store.update(instance.id, user_id, {"date": new_date, **flags})
        if updated is None:
            raise NotFoundError("Scheduled exercise not found", details={"exercise_id": instance.id})
        logger.info(f"Moved exercise {instance.id} from {instance.date} to {new_date}")
        return updated

    async def _move_for_this_week(
        self,
        user_id: str,
        instance: ScheduledExercise,
        new_date: date,
    ) -> ScheduledExercise:
        """Move one plan instance; a hidden marker keeps the template from refilling its template day."""
        flags = {"is_temporary_change": True, "modified_by_user": True}
        plan = await self.plan_store.get(instance.workout_plan_id, user_id)
        if plan is None:
            return await self._move_instance(user_id, instance, new_date, flags)

        first, last = sorted((instance.date, new_date))
        nearby = await self.exercise_store.find_in_range(
            user_id, first, last, workout_plan_id=plan.id, include_hidden=True
        )
        markers = [e for e in nearby if e.is_hidden and e.exercise_id == instance.exercise_id]
        on_template_day = (
            in_window(instance.date, plan_window(plan))
            and find_template_index(plan.day_slot(day_of_week(instance.date)), instance.exercise_id) is not None
        )
        needs_marker = on_template_day and not any(m.date == instance.date for m in markers)
        # Moving back onto a hidden date brings the exercise back there.
        returning = [m for m in markers if m.date == new_date]

        undo = UndoLog(f"this-week move of exercise {instance.id}")
        try:
            if needs_marker:
                marker = await self.exercise_store.insert(self._hidden_marker(instance))
                undo.record("delete hidden marker", lambda: self.exercise_store.delete(marker.id, user_id))
            for old_marker in returning:
                await self.exercise_store.delete(old_marker.id, user_id)
                undo.record("restore hidden marker", lambda m=old_marker: self.exercise_store.insert(m))
            updated = await self._move_instance(user_id, instance, new_date, flags)
        except (PersistenceError, NotFoundError):
            await undo.rollback()
            raise
        return updated

    async def _materialize(
        self,
        user_id: str,
        plan: WorkoutPlan,
        template: ExerciseTemplate,
        original_date: date,
        new_date: date,
    ) -> ScheduledExercise:
        """Store one occurrence at `new_date`; a hidden marker keeps it from reappearing at the original date."""
        category_id = await self._category_for(template.exercise_id)
        now = datetime.utcnow()
        moved = new_date != original_date
        instance = instance_from_template(plan, template, new_date, category_id, now=now).model_copy(
            update={"is_temporary_change": moved, "modified_by_user": moved}
        )

        undo = UndoLog(f"materializing {template.exercise_id} for plan {plan.id}")
        try:
            stored = await self.exercise_store.insert(instance)
            undo.record("delete materialized instance", lambda: self.exercise_store.delete(stored.id, user_id))
            if moved:
                marker = instance_from_template(plan, template, original_date, category_id, now=now).model_copy(
                    update={"is_hidden": True, "is_temporary_change": True, "modified_by_user": True}
                )
                await self.exercise_store.insert(marker)
        except PersistenceError:
            await undo.rollback()
            raise

        logger.info(f"Materialized {template.exercise_id} of plan {plan.id} from {original_date} to {new_date}")
        return stored

    async def _later_shifts(
        self,
        user_id: str,
        plan: WorkoutPlan,
        exercise_id: str,
        old_date: date,
        new_date: date,
        exclude_id: Optional[str] = None,
    ) -> Dict[str, Tuple[date, date]]:
        """Later untouched instances on the old weekday: id -> (current date, shifted date)."""
        delta = new_date - old_date
        old_weekday = day_of_week(old_date)
        window = plan_window(plan)
        later = await self.exercise_store.find_in_range(
            user_id, old_date + timedelta(days=1), workout_plan_id=plan.id, completed=False
        )
        shifts = {}
        for instance in later:
            if instance.id == exclude_id or instance.exercise_id != exercise_id:
                continue
            if instance.modified_by_user or instance.is_temporary_change:
                continue
            if day_of_week(instance.date) != old_weekday:
                continue
            target = instance.date + delta
            if in_window(target, window):
                shifts[instance.id] = (instance.date, target)
        return shifts

    async def _apply_template_move(
        self,
        user_id: str,
        plan: WorkoutPlan,
        index: int,
        old_date: date,
        new_date: date,
        exercise_id: str,
        undo: UndoLog,
        exclude_id: Optional[str] = None,
    ) -> ExerciseTemplate:
        """Move the template slot and shift later instances; undo steps go to `undo`."""
        new_week, moved = move_template(plan.weekly_template, day_of_week(old_date), day_of_week(new_date), index)
        shifts = await self._later_shifts(user_id, plan, exercise_id, old_date, new_date, exclude_id)

        updated = await self.plan_store.update(plan.id, user_id, {"weekly_template": new_week})
        if updated is None:
            raise NotFoundError("Workout plan not found", details={"workout_plan_id": plan.id})
        previous_week = plan.weekly_template
        undo.record(
            "restore weekly template",
            lambda: self.plan_store.update(plan.id, user_id, {"weekly_template": previous_week}),
        )

        if shifts:
            await self.exercise_store.update_dates(user_id, {i: new for i, (_, new) in shifts.items()})
            originals = {i: old for i, (old, _) in shifts.items()}
            undo.record("restore shifted dates", lambda: self.exercise_store.update_dates(user_id, originals))
            logger.info(f"Shifted {len(shifts)} later {exercise_id} exercises of plan {plan.id}")
        return moved

    async def _move_plan_instance(
        self,
        user_id: str,
        instance: ScheduledExercise,
        new_date: date,
    ) -> ScheduledExercise:
        """Whole-plan move of a stored plan instance: template slot, later instances, then the instance."""
        plan = await self.plan_store.get(instance.workout_plan_id, user_id)
        if plan is None:
            raise NotFoundError(
                "The workout plan for this exercise no longer exists",
                details={"exercise_id": instance.id, "workout_plan_id": instance.workout_plan_id},
            )
        located = locate_template(
            plan,
            instance.exercise_id,
            instance.date,
            instance.sets,
            instance.reps,
            instance.weight,
            instance.order_index,
        )
        if located is None:
            raise NotFoundError(
                "Exercise template not found in source day",
                details={"exercise_id": instance.exercise_id, "day_of_week": day_of_week(instance.date)},
            )
        self._check_plan_window(plan, new_date, instance.id)

        # A this-week move may have taken the instance off its template day.
        source_day, index = located
        source_date = start_of_week(instance.date) + timedelta(days=source_day)
        markers = []
        if source_date != instance.date:
            at_source = await self.exercise_store.find_in_range(
                user_id, source_date, source_date, workout_plan_id=plan.id, include_hidden=True
            )
            markers = [e for e in at_source if e.is_hidden and e.exercise_id == instance.exercise_id]

        undo = UndoLog(f"whole-plan move of exercise {instance.id}")
        try:
            fields = {"date": new_date, "is_temporary_change": False}
            if source_day != day_of_week(new_date):
                moved = await self._apply_template_move(
                    user_id, plan, index, source_date, new_date, instance.exercise_id, undo, exclude_id=instance.id
                )
                fields["order_index"] = moved.order_index
            for marker in markers:
                await self.exercise_store.delete(marker.id, user_id)
                undo.record("restore hidden marker", lambda m=marker: self.exercise_store.insert(m))
            updated = await self.exercise_store.update(instance.id, user_id, fields)
            if updated is None:
                raise NotFoundError("Scheduled exercise not found", details={"exercise_id": instance.id})
        except (PersistenceError, NotFoundError):
            await undo.rollback()
            raise

        logger.info(f"Moved {instance.exercise_id} of plan {plan.id} from {instance.date} to {new_date} for the whole plan")
        return updated

    async def _move_projected_template(
        self,
        user_id: str,
        plan: WorkoutPlan,
        template: ExerciseTemplate,
        original_date: date,
        new_date: date,
    ) -> ScheduledExercise:
        """Whole-plan move of a projected occurrence as one transition: no instance is left at the original date."""
        self._check_plan_window(plan, new_date, template.exercise_id)
        category_id = await self._category_for(template.exercise_id)
        slot = plan.day_slot(day_of_week(original_date))
        index = find_template_index(slot, template.exercise_id, order_index=template.order_index)

        undo = UndoLog(f"whole-plan move of template {template.exercise_id} in plan {plan.id}")
        try:
            moved = await self._apply_template_move(
                user_id, plan, index, original_date, new_date, template.exercise_id, undo
            )
            stored = await self.exercise_store.insert(instance_from_template(plan, moved, new_date, category_id))
        except (PersistenceError, NotFoundError):
            await undo.rollback()
            raise

        logger.info(f"Moved template {template.exercise_id} of plan {plan.id} from {original_date} to {new_date}")
        return stored
