"""
Pytest configuration and fixtures

Services run against in-memory doubles of the Motor-backed stores, so no
MongoDB or Redis is needed. Each double can be told to fail specific
methods with PersistenceError to exercise partial-success and rollback paths.
"""
import os
import sys
from datetime import date, datetime
from typing import Dict, List, Optional

import pytest
from bson import ObjectId

# Add the project root to the path so we can import services
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from models.schemas.enums import PlanLevel, PlanMode
from schemas.exercise import Exercise
from schemas.scheduled_exercise import ScheduledExercise
from schemas.workout_plan import DayTemplate, ExerciseTemplate, GenerationPolicy, WorkoutPlan
from services.calendar import CalendarService
from services.conflicts import ConflictDetector
from services.generation import ExerciseGenerator
from services.reschedule import RescheduleCoordinator
from services.workout_plans import WorkoutPlanService
from utils.errors import PersistenceError


# ---------------------------------------------------------------------------
# Store doubles
# ---------------------------------------------------------------------------

class FailureInjection:
    """Raise PersistenceError from the named methods (optionally after N successful calls)."""

    def __init__(self):
        self.fail_on: Dict[str, int] = {}
        self.calls: Dict[str, int] = {}

    def fail(self, method: str, after: int = 0) -> None:
        self.fail_on[method] = after

    def _check(self, method: str) -> None:
        self.calls[method] = self.calls.get(method, 0) + 1
        if method in self.fail_on and self.calls[method] > self.fail_on[method]:
            raise PersistenceError(f"Failed to {method}: injected failure", details={"operation": method})


class FakePlanStore(FailureInjection):
    def __init__(self):
        super().__init__()
        self.plans: Dict[str, WorkoutPlan] = {}

    def add(self, plan: WorkoutPlan) -> WorkoutPlan:
        plan = plan.model_copy(update={"id": plan.id or str(ObjectId())})
        self.plans[plan.id] = plan
        return plan

    async def get(self, plan_id: str, user_id: Optional[str] = None) -> Optional[WorkoutPlan]:
        self._check("get")
        plan = self.plans.get(plan_id)
        if plan is None or (user_id is not None and plan.user_id != user_id):
            return None
        return plan.model_copy(deep=True)

    async def list_for_user(self, user_id, mode=None, level=None) -> List[WorkoutPlan]:
        self._check("list_for_user")
        plans = [p for p in self.plans.values() if p.user_id == user_id]
        if mode is not None:
            plans = [p for p in plans if p.mode == mode]
        if level is not None:
            plans = [p for p in plans if p.level == level]
        return [p.model_copy(deep=True) for p in sorted(plans, key=lambda p: not p.is_active)]

    async def get_active(self, user_id: str) -> Optional[WorkoutPlan]:
        self._check("get_active")
        for plan in self.plans.values():
            if plan.user_id == user_id and plan.is_active:
                return plan.model_copy(deep=True)
        return None

    async def list_active(self) -> List[WorkoutPlan]:
        self._check("list_active")
        return [p.model_copy(deep=True) for p in self.plans.values() if p.is_active]

    async def create(self, plan: WorkoutPlan) -> WorkoutPlan:
        self._check("create")
        now = datetime.utcnow()
        return self.add(plan.model_copy(update={"id": None, "created_at": now, "updated_at": now}))

    async def update(self, plan_id: str, user_id: str, fields: dict) -> Optional[WorkoutPlan]:
        self._check("update")
        plan = self.plans.get(plan_id)
        if plan is None or plan.user_id != user_id:
            return None
        data = {**plan.model_dump(), **fields, "updated_at": datetime.utcnow()}
        self.plans[plan_id] = WorkoutPlan.model_validate(data)
        return self.plans[plan_id].model_copy(deep=True)

    async def update_generation_policy(self, plan_id: str, policy: GenerationPolicy) -> None:
        self._check("update_generation_policy")
        if plan_id in self.plans:
            self.plans[plan_id] = self.plans[plan_id].model_copy(update={"generation_policy": policy})

    async def delete(self, plan_id: str, user_id: str) -> bool:
        self._check("delete")
        plan = self.plans.get(plan_id)
        if plan is None or plan.user_id != user_id:
            return False
        del self.plans[plan_id]
        return True

    async def switch_active(self, user_id: str, plan_id: str) -> Optional[WorkoutPlan]:
        self._check("switch_active")
        plan = self.plans.get(plan_id)
        if plan is None or plan.user_id != user_id:
            return None
        for other_id, other in list(self.plans.items()):
            if other.user_id == user_id and other_id != plan_id and other.is_active:
                self.plans[other_id] = other.model_copy(update={"is_active": False})
        self.plans[plan_id] = plan.model_copy(update={"is_active": True})
        return self.plans[plan_id].model_copy(deep=True)

    async def set_active(self, user_id: str, plan_ids: List[str], is_active: bool) -> int:
        self._check("set_active")
        changed = 0
        for plan_id in plan_ids:
            plan = self.plans.get(plan_id)
            if plan is not None and plan.user_id == user_id and plan.is_active != is_active:
                self.plans[plan_id] = plan.model_copy(update={"is_active": is_active})
                changed += 1
        return changed


class FakeScheduledExerciseStore(FailureInjection):
    def __init__(self):
        super().__init__()
        self.items: Dict[str, ScheduledExercise] = {}

    def add(self, exercise: ScheduledExercise) -> ScheduledExercise:
        exercise = exercise.model_copy(update={"id": exercise.id or str(ObjectId())})
        self.items[exercise.id] = exercise
        return exercise

    def on_date(self, day: date, include_hidden: bool = False) -> List[ScheduledExercise]:
        return sorted(
            (e for e in self.items.values() if e.date == day and (include_hidden or not e.is_hidden)),
            key=lambda e: e.order_index,
        )

    def live(self) -> List[ScheduledExercise]:
        return sorted((e for e in self.items.values() if not e.is_hidden), key=lambda e: (e.date, e.order_index))

    async def get(self, exercise_id: str, user_id: Optional[str] = None) -> Optional[ScheduledExercise]:
        self._check("get")
        exercise = self.items.get(exercise_id)
        if exercise is None or (user_id is not None and exercise.user_id != user_id):
            return None
        return exercise

    async def find_in_range(
        self,
        user_id,
        start,
        end=None,
        workout_plan_id=None,
        include_hidden=False,
        completed=None,
    ) -> List[ScheduledExercise]:
        self._check("find_in_range")
        found = []
        for e in self.items.values():
            if e.user_id != user_id or e.date < start or (end is not None and e.date > end):
                continue
            if workout_plan_id is not None and e.workout_plan_id != workout_plan_id:
                continue
            if not include_hidden and e.is_hidden:
                continue
            if completed is not None and e.completed != completed:
                continue
            found.append(e)
        return sorted(found, key=lambda e: (e.date, e.order_index))

    async def insert(self, exercise: ScheduledExercise) -> ScheduledExercise:
        self._check("insert")
        return self.add(exercise.model_copy(update={"id": None}))

    async def insert_many(self, exercises: List[ScheduledExercise]):
        self._check("insert_many")
        return [self.add(e.model_copy(update={"id": None})) for e in exercises], []

    async def update(self, exercise_id: str, user_id: str, fields: dict) -> Optional[ScheduledExercise]:
        self._check("update")
        exercise = self.items.get(exercise_id)
        if exercise is None or exercise.user_id != user_id:
            return None
        self.items[exercise_id] = exercise.model_copy(update={**fields, "updated_at": datetime.utcnow()})
        return self.items[exercise_id]

    async def update_dates(self, user_id: str, changes: Dict[str, date]) -> int:
        self._check("update_dates")
        for exercise_id, new_date in changes.items():
            self.items[exercise_id] = self.items[exercise_id].model_copy(update={"date": new_date})
        return len(changes)

    async def set_completion(self, user_id: str, exercise_ids: List[str], completed: bool) -> int:
        self._check("set_completion")
        changed = 0
        for exercise_id in exercise_ids:
            exercise = self.items.get(exercise_id)
            if exercise is None or exercise.user_id != user_id:
                continue
            self.items[exercise_id] = exercise.model_copy(update={
                "completed": completed,
                "completed_at": datetime.utcnow() if completed else None,
            })
            changed += 1
        return changed

    async def delete(self, exercise_id: str, user_id: str) -> bool:
        self._check("delete")
        exercise = self.items.get(exercise_id)
        if exercise is None or exercise.user_id != user_id:
            return False
        del self.items[exercise_id]
        return True

    async def delete_many(self, exercise_ids: List[str]) -> int:
        self._check("delete_many")
        deleted = 0
        for exercise_id in exercise_ids:
            if self.items.pop(exercise_id, None) is not None:
                deleted += 1
        return deleted

    async def delete_for_date(self, user_id: str, day: date, workout_plan_id: Optional[str] = None) -> int:
        self._check("delete_for_date")
        doomed = [
            e.id for e in self.items.values()
            if e.user_id == user_id and e.date == day
            and (workout_plan_id is None or e.workout_plan_id == workout_plan_id)
        ]
        for exercise_id in doomed:
            del self.items[exercise_id]
        return len(doomed)


class FakeCatalog:
    def __init__(self, exercises: List[Exercise]):
        self.exercises = {e.id: e for e in exercises}

    async def find_by_id(self, exercise_id: str) -> Optional[Exercise]:
        return self.exercises.get(exercise_id)


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------

USER_ID = "user-1"

PUSH_UPS = "push-ups"
PULL_UPS = "pull-ups"
SQUATS = "squats"
PLANK = "plank"


def template(exercise_id: str, sets: int = 3, reps: int = 10, weight: float = 0, order_index: int = 0):
    return ExerciseTemplate(exercise_id=exercise_id, sets=sets, reps=reps, weight=weight, order_index=order_index)


def week(**days) -> List[DayTemplate]:
    """Weekly template from keyword args: week(mon=[...], wed=[...])."""
    index = {"sun": 0, "mon": 1, "tue": 2, "wed": 3, "thu": 4, "fri": 5, "sat": 6}
    return [DayTemplate(day_of_week=index[name], exercise_templates=templates) for name, templates in days.items()]


def make_plan(
    weekly_template=None,
    mode: PlanMode = PlanMode.ONGOING,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    is_active: bool = False,
    name: str = "Push Pull",
    user_id: str = USER_ID,
    **kwargs,
) -> WorkoutPlan:
    if weekly_template is None:
        weekly_template = week(
            mon=[template(PUSH_UPS, sets=3, reps=12)],
            wed=[template(PULL_UPS, sets=3, reps=10)],
        )
    return WorkoutPlan(
        user_id=user_id,
        name=name,
        level=PlanLevel.BEGINNER,
        mode=mode,
        start_date=start_date,
        end_date=end_date,
        is_active=is_active,
        weekly_template=weekly_template,
        **kwargs,
    )


def make_instance(
    exercise_id: str,
    day: date,
    workout_plan_id: Optional[str] = None,
    user_id: str = USER_ID,
    **kwargs,
) -> ScheduledExercise:
    return ScheduledExercise(
        user_id=user_id,
        exercise_id=exercise_id,
        workout_plan_id=workout_plan_id,
        date=day,
        **kwargs,
    )


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def plan_store():
    return FakePlanStore()


@pytest.fixture
def exercise_store():
    return FakeScheduledExerciseStore()


@pytest.fixture
def catalog():
    return FakeCatalog([
        Exercise(id=PUSH_UPS, name="Push-ups", category_id="chest"),
        Exercise(id=PULL_UPS, name="Pull-ups", category_id="back"),
        Exercise(id=SQUATS, name="Squats", category_id="legs"),
        Exercise(id=PLANK, name="Plank", category_id="core"),
    ])


@pytest.fixture
def generator(plan_store, exercise_store, catalog):
    return ExerciseGenerator(plan_store, exercise_store, catalog)


@pytest.fixture
def detector(plan_store):
    return ConflictDetector(plan_store)


@pytest.fixture
def coordinator(plan_store, exercise_store, catalog):
    return RescheduleCoordinator(plan_store, exercise_store, catalog)


@pytest.fixture
def plan_service(plan_store, detector, generator):
    return WorkoutPlanService(plan_store, detector, generator)


@pytest.fixture
def calendar_service(exercise_store, plan_store, catalog):
    return CalendarService(exercise_store, plan_store, catalog)
