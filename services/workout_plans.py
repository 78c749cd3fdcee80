"""Workout plan lifecycle: CRUD, activation and generation entry points."""

from datetime import date, timedelta
from typing import List, Optional, Tuple

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from config.settings import settings
from models.schemas.enums import PlanLevel, PlanMode
from schemas.workout_plan import WorkoutPlan, WorkoutPlanCreate, WorkoutPlanUpdate
from services.conflicts import ConflictDetector, PlanConflict, schedule_range
from services.generation import ExerciseGenerator, GenerationResult, GenerationStatus
from services.plan_store import WorkoutPlanStore
from utils.dates import today_utc
from utils.errors import ConflictError, NotFoundError, ValidationError
from utils.locks import user_plan_lock
from utils.logger import setup_logger

logger = setup_logger(__name__)

COPY_SUFFIX = " (Copy)"
NAME_MAX_LENGTH = 100


class ActivationResult(BaseModel):
    """Activated plan plus the near-term generation that followed."""
    plan: WorkoutPlan
    conflicts: List[PlanConflict] = Field(default_factory=list, description="Overlaps that were overridden")
    generation: Optional[GenerationResult] = None


def _validation_error(e: PydanticValidationError) -> ValidationError:
    errors = e.errors(include_url=False, include_context=False)
    return ValidationError(
        errors[0]["msg"] if errors else "Invalid workout plan",
        details={"errors": [{"loc": list(err["loc"]), "msg": err["msg"]} for err in errors]},
    )


class WorkoutPlanService:
    """Plan operations used by the API; plan-mutating calls hold the user's plan lock."""

    def __init__(
        self,
        plan_store: WorkoutPlanStore,
        detector: ConflictDetector,
        generator: ExerciseGenerator,
    ):
        self.plan_store = plan_store
        self.detector = detector
        self.generator = generator

    async def list_plans(
        self,
        user_id: str,
        mode: Optional[PlanMode] = None,
        level: Optional[PlanLevel] = None,
    ) -> List[WorkoutPlan]:
        return await self.plan_store.list_for_user(user_id, mode, level)

    async def get_plan(self, user_id: str, plan_id: str) -> WorkoutPlan:
        plan = await self.plan_store.get(plan_id, user_id)
        if plan is None:
            raise NotFoundError("Workout plan not found", details={"workout_plan_id": plan_id})
        return plan

    async def get_active_plan(self, user_id: str) -> Optional[WorkoutPlan]:
        return await self.plan_store.get_active(user_id)

    async def create_plan(
        self,
        user_id: str,
        payload: WorkoutPlanCreate,
        force: bool = False,
        today: Optional[date] = None,
    ) -> WorkoutPlan:
        """Store a new plan; with `is_active` it becomes the user's only active plan."""
        plan = WorkoutPlan(user_id=user_id, is_active=False, **payload.model_dump(exclude={"is_active"}))
        if not payload.is_active:
            created = await self.plan_store.create(plan)
            logger.info(f"Created workout plan {created.id} for user {user_id}")
            return created

        async with user_plan_lock(user_id):
            today = today or today_utc()
            start, end = schedule_range(plan, today)
            report = await self.detector.check_conflicts(user_id, None, start, end, today=today)
            if report.has_conflicts and not force:
                raise self._conflict_error(report.conflicts)
            created = await self.plan_store.create(plan)
            activated = await self._activate(user_id, created.id, today)
        logger.info(f"Created and activated workout plan {created.id} for user {user_id}")
        return activated.plan

    async def update_plan(
        self,
        user_id: str,
        plan_id: str,
        update: WorkoutPlanUpdate,
        regenerate: bool = False,
        today: Optional[date] = None,
    ) -> Tuple[WorkoutPlan, Optional[GenerationResult]]:
        """Apply a partial update and re-check the whole plan.

        With `regenerate` an active plan's upcoming `advance_days` are
        replaced so the calendar follows the edited template.
        """
        async with user_plan_lock(user_id):
            existing = await self.get_plan(user_id, plan_id)
            changes = update.model_dump(exclude_unset=True)
            try:
                merged = WorkoutPlan.model_validate({**existing.model_dump(), **changes})
            except PydanticValidationError as e:
                raise _validation_error(e) from e

            fields = {name: getattr(merged, name) for name in changes}
            updated = await self.plan_store.update(plan_id, user_id, fields)
            if updated is None:
                raise NotFoundError("Workout plan not found", details={"workout_plan_id": plan_id})

            generation = None
            if regenerate and updated.is_active:
                today = today or today_utc()
                end = today + timedelta(days=updated.generation_policy.advance_days)
                generation = await self.generator.generate(updated, today, end, replace_existing=True)
        logger.info(f"Updated workout plan {plan_id} ({', '.join(changes) or 'no fields'})")
        return updated, generation

    async def delete_plan(self, user_id: str, plan_id: str) -> None:
        """Delete a plan. Its scheduled exercises stay on the calendar."""
        async with user_plan_lock(user_id):
            if not await self.plan_store.delete(plan_id, user_id):
                raise NotFoundError("Workout plan not found", details={"workout_plan_id": plan_id})
        logger.info(f"Deleted workout plan {plan_id} for user {user_id}")

    async def duplicate_plan(self, user_id: str, plan_id: str) -> WorkoutPlan:
        """Inactive copy named "<name> (Copy)" with a fresh generation policy."""
        source = await self.get_plan(user_id, plan_id)
        name = source.name[:NAME_MAX_LENGTH - len(COPY_SUFFIX)] + COPY_SUFFIX
        policy = source.generation_policy.model_copy(
            update={"last_generation_time": None, "furthest_generated_date": None}
        )
        copy = source.model_copy(update={
            "id": None,
            "name": name,
            "is_active": False,
            "generation_policy": policy,
        })
        return await self.plan_store.create(copy)

    async def activate_plan(
        self,
        user_id: str,
        plan_id: str,
        force: bool = False,
        today: Optional[date] = None,
    ) -> ActivationResult:
        """Make `plan_id` the user's only active plan and generate its first days.

        Overlapping active plans raise ConflictError unless `force` is set,
        in which case they are deactivated.
        """
        today = today or today_utc()
        async with user_plan_lock(user_id):
            await self.get_plan(user_id, plan_id)
            report = await self.detector.check_conflicts(user_id, plan_id, today=today)
            if report.has_conflicts and not force:
                raise self._conflict_error(report.conflicts)
            result = await self._activate(user_id, plan_id, today)
        result.conflicts = report.conflicts
        return result

    async def deactivate_plan(self, user_id: str, plan_id: str) -> WorkoutPlan:
        async with user_plan_lock(user_id):
            await self.get_plan(user_id, plan_id)
            await self.plan_store.set_active(user_id, [plan_id], False)
            plan = await self.get_plan(user_id, plan_id)
        logger.info(f"Deactivated workout plan {plan_id} for user {user_id}")
        return plan

    async def generate_exercises(
        self,
        user_id: str,
        plan_id: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        replace_existing: bool = False,
        today: Optional[date] = None,
    ) -> GenerationResult:
        """Generate for a plan, defaulting to the active plan and its advance window."""
        async with user_plan_lock(user_id):
            plan = await self._plan_or_active(user_id, plan_id)
            start_date = start_date or today or today_utc()
            end_date = end_date or start_date + timedelta(days=plan.generation_policy.advance_days)
            return await self.generator.generate(plan, start_date, end_date, replace_existing)

    async def ensure_exercises_generated(
        self,
        user_id: str,
        plan_id: Optional[str] = None,
        min_days_in_advance: int = 7,
        today: Optional[date] = None,
    ) -> GenerationResult:
        async with user_plan_lock(user_id):
            plan = await self._plan_or_active(user_id, plan_id)
            return await self.generator.ensure_generated(plan, min_days_in_advance, today)

    async def generation_status(
        self,
        user_id: str,
        plan_id: str,
        min_days_in_advance: int = 7,
        today: Optional[date] = None,
    ) -> GenerationStatus:
        plan = await self.get_plan(user_id, plan_id)
        return self.generator.generation_status(plan, min_days_in_advance, today)

    async def _plan_or_active(self, user_id: str, plan_id: Optional[str]) -> WorkoutPlan:
        if plan_id:
            return await self.get_plan(user_id, plan_id)
        plan = await self.plan_store.get_active(user_id)
        if plan is None:
            raise NotFoundError("No active workout plan found", details={"user_id": user_id})
        return plan

    async def _activate(self, user_id: str, plan_id: str, today: date) -> ActivationResult:
        # Caller holds the user's plan lock.
        plan = await self.plan_store.switch_active(user_id, plan_id)
        if plan is None:
            raise NotFoundError("Workout plan not found", details={"workout_plan_id": plan_id})
        logger.info(f"Activated workout plan {plan_id} for user {user_id}")

        try:
            generation = await self.generator.ensure_generated(plan, settings.activation_window_days, today)
        except ValidationError as e:
            logger.warning(f"Plan {plan_id} activated without generating exercises: {e}")
            generation = GenerationResult(success=False, workout_plan_id=plan_id, message=e.message)
        return ActivationResult(plan=plan, generation=generation)

    @staticmethod
    def _conflict_error(conflicts: List[PlanConflict]) -> ConflictError:
        names = ", ".join(c.plan_name for c in conflicts)
        return ConflictError(
            f"Workout plan overlaps with active plans: {names}",
            details={"conflicts": [c.model_dump(mode="json") for c in conflicts]},
        )
