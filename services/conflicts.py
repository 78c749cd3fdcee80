"""Date-range conflict detection between workout plans."""

from datetime import date
from typing import List, Optional, Sequence, Tuple

from pydantic import BaseModel, Field

from models.schemas.enums import ConflictResolution, PlanMode
from schemas.workout_plan import WorkoutPlan
from services.plan_store import WorkoutPlanStore
from utils.dates import overlap_range, today_utc
from utils.errors import NotFoundError, ValidationError
from utils.logger import setup_logger

logger = setup_logger(__name__)


class PlanConflict(BaseModel):
    """An existing plan whose schedule overlaps the candidate range."""
    plan_id: str = Field(..., description="Conflicting plan identifier")
    plan_name: str = Field(..., description="Conflicting plan name")
    mode: PlanMode
    is_active: bool
    overlap_start: date = Field(..., description="First overlapping date")
    overlap_end: Optional[date] = Field(None, description="Last overlapping date; None when open-ended")


class ConflictReport(BaseModel):
    has_conflicts: bool = False
    conflicts: List[PlanConflict] = Field(default_factory=list)


class ConflictResolutionResult(BaseModel):
    success: bool = True
    resolution: ConflictResolution
    deactivated_plan_ids: List[str] = Field(default_factory=list)
    message: str = ""


def schedule_range(plan: WorkoutPlan, today: date) -> Tuple[date, Optional[date]]:
    """The dates a plan occupies for conflict purposes.

    Dated plans cover [start_date, end_date]. Ongoing plans run open-ended
    from their start date, their creation date, or today.
    """
    if plan.mode == PlanMode.DATED:
        return plan.start_date, plan.end_date
    if plan.start_date is not None:
        return plan.start_date, None
    if plan.created_at is not None:
        return plan.created_at.date(), None
    return today, None


def find_conflicts(
    plans: Sequence[WorkoutPlan],
    start: date,
    end: Optional[date],
    exclude_plan_id: Optional[str] = None,
    include_inactive: bool = False,
    today: Optional[date] = None,
) -> List[PlanConflict]:
    """Plans among `plans` overlapping [start, end]; end=None is open-ended.

    Active plans always count. Inactive dated plans count only when
    `include_inactive` is set; inactive ongoing plans never run, so they
    never conflict.
    """
    today = today or today_utc()
    conflicts = []
    for plan in plans:
        if plan.id == exclude_plan_id:
            continue
        if not plan.is_active and not (include_inactive and plan.mode == PlanMode.DATED):
            continue
        plan_start, plan_end = schedule_range(plan, today)
        overlap = overlap_range(start, end, plan_start, plan_end)
        if overlap is None:
            continue
        conflicts.append(PlanConflict(
            plan_id=plan.id,
            plan_name=plan.name,
            mode=plan.mode,
            is_active=plan.is_active,
            overlap_start=overlap[0],
            overlap_end=overlap[1],
        ))
    return conflicts


class ConflictDetector:
    """Reports overlapping plans for a candidate plan or date range."""

    def __init__(self, plan_store: WorkoutPlanStore):
        self.plan_store = plan_store

    async def check_conflicts(
        self,
        user_id: str,
        candidate_plan_id: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        include_inactive: bool = False,
        today: Optional[date] = None,
    ) -> ConflictReport:
        """Find the user's plans that overlap the candidate's dates.

        Missing dates come from the candidate plan. Reporting only: nothing
        is activated or deactivated here.
        """
        today = today or today_utc()
        if start_date is None or (end_date is None and candidate_plan_id is not None):
            if candidate_plan_id is None:
                raise ValidationError("Either a candidate plan or a start date is required")
            candidate = await self.plan_store.get(candidate_plan_id, user_id)
            if candidate is None:
                raise NotFoundError("Workout plan not found", details={"workout_plan_id": candidate_plan_id})
            plan_start, plan_end = schedule_range(candidate, today)
            start_date = start_date or plan_start
            if end_date is None:
                end_date = plan_end

        if end_date is not None and start_date > end_date:
            raise ValidationError(
                "Start date must not be after end date",
                details={"start_date": start_date.isoformat(), "end_date": end_date.isoformat()},
            )

        plans = await self.plan_store.list_for_user(user_id)
        conflicts = find_conflicts(
            plans,
            start_date,
            end_date,
            exclude_plan_id=candidate_plan_id,
            include_inactive=include_inactive,
            today=today,
        )
        if conflicts:
            logger.info(f"User {user_id}: {len(conflicts)} plan conflicts for {start_date}..{end_date or 'open'}")
        return ConflictReport(has_conflicts=bool(conflicts), conflicts=conflicts)

    async def resolve_conflicts(
        self,
        user_id: str,
        plan_id: str,
        conflict_plan_ids: List[str],
        resolution: ConflictResolution,
    ) -> ConflictResolutionResult:
        """Deactivate either the conflicting plans (replace) or the candidate (keep_existing)."""
        candidate = await self.plan_store.get(plan_id, user_id)
        if candidate is None:
            raise NotFoundError("Workout plan not found", details={"workout_plan_id": plan_id})

        if resolution == ConflictResolution.REPLACE:
            targets = [p for p in conflict_plan_ids if p != plan_id]
            message = "Conflicting plans deactivated"
        else:
            targets = [plan_id]
            message = "Kept existing plans; new plan deactivated"

        await self.plan_store.set_active(user_id, targets, False)
        logger.info(f"User {user_id}: resolved conflicts for plan {plan_id} with {resolution.value}")
        return ConflictResolutionResult(
            resolution=resolution,
            deactivated_plan_ids=targets,
            message=message,
        )
