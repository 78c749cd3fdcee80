"""FastAPI dependency providers for stores and services."""

from fastapi import Depends, Header, HTTPException

from config.settings import settings
from services.calendar import CalendarService
from services.conflicts import ConflictDetector
from services.exercise_catalog import ExerciseCatalog
from services.generation import ExerciseGenerator
from services.plan_store import WorkoutPlanStore
from services.reschedule import RescheduleCoordinator
from services.scheduled_exercise_store import ScheduledExerciseStore
from services.workout_plans import WorkoutPlanService


def get_plan_store() -> WorkoutPlanStore:
    return WorkoutPlanStore()


def get_scheduled_exercise_store() -> ScheduledExerciseStore:
    return ScheduledExerciseStore()


def get_exercise_catalog() -> ExerciseCatalog:
    return ExerciseCatalog()


def get_conflict_detector(plan_store: WorkoutPlanStore = Depends(get_plan_store)) -> ConflictDetector:
    return ConflictDetector(plan_store)


def get_generator(
    plan_store: WorkoutPlanStore = Depends(get_plan_store),
    exercise_store: ScheduledExerciseStore = Depends(get_scheduled_exercise_store),
    catalog: ExerciseCatalog = Depends(get_exercise_catalog),
) -> ExerciseGenerator:
    return ExerciseGenerator(plan_store, exercise_store, catalog)


def get_plan_service(
    plan_store: WorkoutPlanStore = Depends(get_plan_store),
    detector: ConflictDetector = Depends(get_conflict_detector),
    generator: ExerciseGenerator = Depends(get_generator),
) -> WorkoutPlanService:
    return WorkoutPlanService(plan_store, detector, generator)


def get_calendar_service(
    exercise_store: ScheduledExerciseStore = Depends(get_scheduled_exercise_store),
    plan_store: WorkoutPlanStore = Depends(get_plan_store),
    catalog: ExerciseCatalog = Depends(get_exercise_catalog),
) -> CalendarService:
    return CalendarService(exercise_store, plan_store, catalog)


def get_reschedule_coordinator(
    plan_store: WorkoutPlanStore = Depends(get_plan_store),
    exercise_store: ScheduledExerciseStore = Depends(get_scheduled_exercise_store),
    catalog: ExerciseCatalog = Depends(get_exercise_catalog),
) -> RescheduleCoordinator:
    return RescheduleCoordinator(plan_store, exercise_store, catalog)


async def verify_cron_secret(x_cron_secret: str = Header("", alias="X-Cron-Secret")) -> None:
    """Reject cron calls without the shared secret.

    An unset secret only passes in debug mode; deployed instances refuse the call.
    """
    if not settings.cron_secret:
        if not settings.debug:
            raise HTTPException(status_code=503, detail="Cron secret is not configured")
        return
    if x_cron_secret != settings.cron_secret:
        raise HTTPException(status_code=401, detail="Invalid cron secret")
