"""Scheduled exercise routes: calendar view, completion and rescheduling."""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from api.dependencies import get_calendar_service, get_plan_store, get_reschedule_coordinator
from api.errors import to_http_exception
from models.schemas.api import (
    BatchStatusRequest,
    BatchStatusResponse,
    ClearDateResponse,
    CompletionRequest,
    ConvertTemplateRequest,
    RescheduleRequest,
    ScheduledExerciseList,
)
from schemas.scheduled_exercise import CalendarView, ScheduledExercise, ScheduledExerciseCreate
from services.calendar import CalendarService
from services.plan_store import WorkoutPlanStore
from services.reschedule import RescheduleCoordinator
from utils.errors import WorkoutPlannerError
from utils.logger import setup_logger

logger = setup_logger(__name__)

router = APIRouter(prefix="/api/v1/scheduled-exercises", tags=["scheduled-exercises"])


@router.get("", response_model=CalendarView)
async def get_calendar(
    user_id: str = Query(..., description="User identifier"),
    start_date: date = Query(..., description="First date of the range"),
    end_date: date = Query(..., description="Last date of the range"),
    calendar: CalendarService = Depends(get_calendar_service),
    plan_store: WorkoutPlanStore = Depends(get_plan_store),
):
    """
    Calendar entries for a date range.
    Stored exercises plus template occurrences of the active plan that have not been scheduled yet.
    """
    try:
        active_plan = await plan_store.get_active(user_id)
        return await calendar.get_calendar(user_id, start_date, end_date, active_plan)
    except WorkoutPlannerError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.error(f"Error fetching calendar: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error fetching calendar: {str(e)}")


@router.post("", response_model=ScheduledExercise, status_code=201)
async def add_scheduled_exercise(
    payload: ScheduledExerciseCreate,
    user_id: str = Query(..., description="User identifier"),
    calendar: CalendarService = Depends(get_calendar_service),
):
    try:
        return await calendar.add_exercise(user_id, payload)
    except WorkoutPlannerError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.error(f"Error adding scheduled exercise: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error adding scheduled exercise: {str(e)}")


@router.get("/date/{day}", response_model=ScheduledExerciseList)
async def get_exercises_for_date(
    day: date,
    user_id: str = Query(..., description="User identifier"),
    calendar: CalendarService = Depends(get_calendar_service),
):
    try:
        exercises = await calendar.get_exercises_for_date(user_id, day)
        return ScheduledExerciseList(date=day, exercises=exercises)
    except WorkoutPlannerError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.error(f"Error fetching exercises for {day}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error fetching exercises for date: {str(e)}")


@router.delete("/date/{day}", response_model=ClearDateResponse)
async def clear_date(
    day: date,
    user_id: str = Query(..., description="User identifier"),
    workout_plan_id: Optional[str] = Query(None, description="Only clear this plan's exercises"),
    calendar: CalendarService = Depends(get_calendar_service),
):
    try:
        deleted = await calendar.clear_date(user_id, day, workout_plan_id)
        return ClearDateResponse(deleted=deleted)
    except WorkoutPlannerError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.error(f"Error clearing exercises for {day}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error clearing exercises for date: {str(e)}")


@router.post("/reschedule", response_model=ScheduledExercise)
async def reschedule_exercise(
    request: RescheduleRequest,
    user_id: str = Query(..., description="User identifier"),
    coordinator: RescheduleCoordinator = Depends(get_reschedule_coordinator),
):
    """
    Move an exercise to another day of the same week.
    With scope whole-plan the plan's weekly template moves too.
    """
    try:
        return await coordinator.reschedule(user_id, request.exercise_id, request.new_date, request.scope)
    except WorkoutPlannerError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.error(f"Error rescheduling exercise: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error rescheduling exercise: {str(e)}")


@router.post("/convert-template", response_model=ScheduledExercise)
async def convert_template(
    request: ConvertTemplateRequest,
    user_id: str = Query(..., description="User identifier"),
    coordinator: RescheduleCoordinator = Depends(get_reschedule_coordinator),
):
    try:
        return await coordinator.convert_template_to_scheduled(
            user_id, request.template_id, request.new_date, request.scope
        )
    except WorkoutPlannerError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.error(f"Error converting template occurrence: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error converting template occurrence: {str(e)}")


@router.patch("/batch-status", response_model=BatchStatusResponse)
async def update_batch_status(
    request: BatchStatusRequest,
    user_id: str = Query(..., description="User identifier"),
    calendar: CalendarService = Depends(get_calendar_service),
):
    try:
        updated = await calendar.set_completion_batch(user_id, request.exercise_ids, request.completed)
        return BatchStatusResponse(updated=updated)
    except WorkoutPlannerError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.error(f"Error updating completion status: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error updating completion status: {str(e)}")


@router.patch("/{exercise_id}/completion", response_model=ScheduledExercise)
async def update_completion(
    exercise_id: str,
    request: CompletionRequest,
    user_id: str = Query(..., description="User identifier"),
    calendar: CalendarService = Depends(get_calendar_service),
):
    try:
        return await calendar.set_completion(user_id, exercise_id, request.completed)
    except WorkoutPlannerError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.error(f"Error updating completion status: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error updating completion status: {str(e)}")


@router.delete("/{exercise_id}")
async def delete_scheduled_exercise(
    exercise_id: str,
    user_id: str = Query(..., description="User identifier"),
    calendar: CalendarService = Depends(get_calendar_service),
):
    try:
        await calendar.delete_exercise(user_id, exercise_id)
        return {"success": True, "message": "Scheduled exercise deleted"}
    except WorkoutPlannerError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.error(f"Error deleting scheduled exercise: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error deleting scheduled exercise: {str(e)}")
