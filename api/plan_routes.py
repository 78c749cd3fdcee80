"""Workout plan routes: CRUD, activation, conflicts and generation."""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from api.dependencies import (
    get_conflict_detector,
    get_generator,
    get_plan_service,
    verify_cron_secret,
)
from api.errors import to_http_exception
from models.schemas.api import (
    CheckConflictsRequest,
    EnsureGenerationRequest,
    GenerateExercisesRequest,
    ResolveConflictsRequest,
    WorkoutPlanUpdateResponse,
)
from models.schemas.enums import PlanLevel, PlanMode
from schemas.workout_plan import WorkoutPlan, WorkoutPlanCreate, WorkoutPlanUpdate
from services.conflicts import ConflictDetector, ConflictReport, ConflictResolutionResult
from services.generation import BulkGenerationResult, ExerciseGenerator, GenerationResult, GenerationStatus
from services.workout_plans import ActivationResult, WorkoutPlanService
from utils.errors import WorkoutPlannerError
from utils.logger import setup_logger

logger = setup_logger(__name__)

router = APIRouter(prefix="/api/v1/workout-plans", tags=["workout-plans"])


@router.get("", response_model=List[WorkoutPlan])
async def list_workout_plans(
    user_id: str = Query(..., description="User identifier"),
    mode: Optional[PlanMode] = Query(None, description="Filter by plan mode"),
    level: Optional[PlanLevel] = Query(None, description="Filter by plan level"),
    service: WorkoutPlanService = Depends(get_plan_service),
):
    """List a user's plans, active plan first."""
    try:
        return await service.list_plans(user_id, mode, level)
    except WorkoutPlannerError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.error(f"Error listing workout plans: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error listing workout plans: {str(e)}")


@router.post("", response_model=WorkoutPlan, status_code=201)
async def create_workout_plan(
    payload: WorkoutPlanCreate,
    user_id: str = Query(..., description="User identifier"),
    force: bool = Query(False, description="Activate even if other active plans overlap"),
    service: WorkoutPlanService = Depends(get_plan_service),
):
    """Create a plan; `is_active` makes it the user's active plan."""
    try:
        return await service.create_plan(user_id, payload, force=force)
    except WorkoutPlannerError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.error(f"Error creating workout plan: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error creating workout plan: {str(e)}")


@router.get("/active", response_model=WorkoutPlan)
async def get_active_workout_plan(
    user_id: str = Query(..., description="User identifier"),
    service: WorkoutPlanService = Depends(get_plan_service),
):
    try:
        plan = await service.get_active_plan(user_id)
        if plan is None:
            raise HTTPException(
                status_code=404,
                detail=f"No active workout plan found for user_id '{user_id}'"
            )
        return plan
    except HTTPException:
        raise
    except WorkoutPlannerError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.error(f"Error fetching active workout plan: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error fetching active workout plan: {str(e)}")


@router.post("/check-conflicts", response_model=ConflictReport)
async def check_conflicts(
    request: CheckConflictsRequest,
    user_id: str = Query(..., description="User identifier"),
    detector: ConflictDetector = Depends(get_conflict_detector),
):
    """Report plans whose dates overlap the candidate plan or range."""
    try:
        return await detector.check_conflicts(
            user_id,
            request.plan_id,
            request.start_date,
            request.end_date,
            include_inactive=request.include_inactive,
        )
    except WorkoutPlannerError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.error(f"Error checking plan conflicts: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error checking plan conflicts: {str(e)}")


@router.post("/resolve-conflicts", response_model=ConflictResolutionResult)
async def resolve_conflicts(
    request: ResolveConflictsRequest,
    user_id: str = Query(..., description="User identifier"),
    detector: ConflictDetector = Depends(get_conflict_detector),
):
    try:
        return await detector.resolve_conflicts(
            user_id, request.plan_id, request.conflict_plan_ids, request.resolution
        )
    except WorkoutPlannerError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.error(f"Error resolving plan conflicts: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error resolving plan conflicts: {str(e)}")


@router.post("/generate-exercises", response_model=GenerationResult)
async def generate_exercises(
    request: GenerateExercisesRequest,
    user_id: str = Query(..., description="User identifier"),
    service: WorkoutPlanService = Depends(get_plan_service),
):
    """Generate scheduled exercises for a plan (default: the active plan)."""
    try:
        return await service.generate_exercises(
            user_id,
            request.workout_plan_id,
            request.start_date,
            request.end_date,
            replace_existing=request.replace_existing,
        )
    except WorkoutPlannerError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.error(f"Error generating exercises: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error generating exercises: {str(e)}")


@router.post("/ensure-exercises-generated", response_model=GenerationResult)
async def ensure_exercises_generated(
    request: EnsureGenerationRequest,
    user_id: str = Query(..., description="User identifier"),
    service: WorkoutPlanService = Depends(get_plan_service),
):
    try:
        return await service.ensure_exercises_generated(
            user_id, request.workout_plan_id, request.min_days_in_advance
        )
    except WorkoutPlannerError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.error(f"Error ensuring exercises are generated: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error ensuring exercises are generated: {str(e)}")


@router.post(
    "/generate-for-active-plans",
    response_model=BulkGenerationResult,
    dependencies=[Depends(verify_cron_secret)],
)
async def generate_for_active_plans(generator: ExerciseGenerator = Depends(get_generator)):
    """Cron entry point: fill forward every active plan."""
    try:
        return await generator.generate_for_active_plans()
    except WorkoutPlannerError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.error(f"Error generating exercises for active plans: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error generating exercises for active plans: {str(e)}")


@router.get("/{plan_id}", response_model=WorkoutPlan)
async def get_workout_plan(
    plan_id: str,
    user_id: str = Query(..., description="User identifier"),
    service: WorkoutPlanService = Depends(get_plan_service),
):
    try:
        return await service.get_plan(user_id, plan_id)
    except WorkoutPlannerError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.error(f"Error fetching workout plan: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error fetching workout plan: {str(e)}")


@router.put("/{plan_id}", response_model=WorkoutPlanUpdateResponse)
async def update_workout_plan(
    plan_id: str,
    update: WorkoutPlanUpdate,
    user_id: str = Query(..., description="User identifier"),
    regenerate: bool = Query(False, description="Replace the active plan's upcoming exercises"),
    service: WorkoutPlanService = Depends(get_plan_service),
):
    try:
        plan, generation = await service.update_plan(user_id, plan_id, update, regenerate=regenerate)
        return WorkoutPlanUpdateResponse(plan=plan, generation=generation)
    except WorkoutPlannerError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.error(f"Error updating workout plan: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error updating workout plan: {str(e)}")


@router.delete("/{plan_id}")
async def delete_workout_plan(
    plan_id: str,
    user_id: str = Query(..., description="User identifier"),
    service: WorkoutPlanService = Depends(get_plan_service),
):
    """Delete a plan; its scheduled exercises stay on the calendar."""
    try:
        await service.delete_plan(user_id, plan_id)
        return {"success": True, "message": "Workout plan deleted"}
    except WorkoutPlannerError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.error(f"Error deleting workout plan: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error deleting workout plan: {str(e)}")


@router.post("/{plan_id}/activate", response_model=ActivationResult)
async def activate_workout_plan(
    plan_id: str,
    user_id: str = Query(..., description="User identifier"),
    force: bool = Query(False, description="Deactivate overlapping plans instead of failing"),
    service: WorkoutPlanService = Depends(get_plan_service),
):
    try:
        return await service.activate_plan(user_id, plan_id, force=force)
    except WorkoutPlannerError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.error(f"Error activating workout plan: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error activating workout plan: {str(e)}")


@router.post("/{plan_id}/deactivate", response_model=WorkoutPlan)
async def deactivate_workout_plan(
    plan_id: str,
    user_id: str = Query(..., description="User identifier"),
    service: WorkoutPlanService = Depends(get_plan_service),
):
    try:
        return await service.deactivate_plan(user_id, plan_id)
    except WorkoutPlannerError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.error(f"Error deactivating workout plan: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error deactivating workout plan: {str(e)}")


@router.post("/{plan_id}/duplicate", response_model=WorkoutPlan, status_code=201)
async def duplicate_workout_plan(
    plan_id: str,
    user_id: str = Query(..., description="User identifier"),
    service: WorkoutPlanService = Depends(get_plan_service),
):
    try:
        return await service.duplicate_plan(user_id, plan_id)
    except WorkoutPlannerError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.error(f"Error duplicating workout plan: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error duplicating workout plan: {str(e)}")


@router.get("/{plan_id}/generation-status", response_model=GenerationStatus)
async def get_generation_status(
    plan_id: str,
    user_id: str = Query(..., description="User identifier"),
    min_days_in_advance: int = Query(7, ge=1, le=90, description="Days ahead that must be generated"),
    service: WorkoutPlanService = Depends(get_plan_service),
):
    try:
        return await service.generation_status(user_id, plan_id, min_days_in_advance)
    except WorkoutPlannerError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.error(f"Error fetching generation status: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error fetching generation status: {str(e)}")
