"""Weekly-template helpers shared by generation, projection and rescheduling.

Everything here is pure: functions take plans and instances and return new
values without touching the stores.
"""

from collections import Counter
from datetime import date, datetime
from typing import Iterable, List, NamedTuple, Optional, Sequence, Tuple

from models.schemas.enums import PlanMode
from schemas.scheduled_exercise import ProjectedOccurrence, ScheduledExercise
from schemas.workout_plan import DayTemplate, ExerciseTemplate, WorkoutPlan
from utils.dates import day_of_week, iter_dates, parse_date
from utils.errors import NotFoundError, ValidationError


class OccurrenceKey(NamedTuple):
    plan_id: str
    date: date
    exercise_id: str
    order_index: int


def occurrence_id(plan_id: str, day: date, template: ExerciseTemplate) -> str:
    return f"{plan_id}:{day.isoformat()}:{template.exercise_id}:{template.order_index}"


def parse_occurrence_id(value: str) -> Optional[OccurrenceKey]:
    """Decode a projected-occurrence id, or None when `value` is not one."""
    parts = value.split(":")
    if len(parts) < 4:
        return None
    plan_id, day, order_index = parts[0], parts[1], parts[-1]
    exercise_id = ":".join(parts[2:-1])
    if not plan_id or not exercise_id or not order_index.isdigit():
        return None
    try:
        parsed_day = parse_date(day)
    except ValidationError:
        return None
    return OccurrenceKey(plan_id, parsed_day, exercise_id, int(order_index))


def plan_window(plan: WorkoutPlan) -> Tuple[Optional[date], Optional[date]]:
    """Dates a plan may schedule on; None means unbounded on that side."""
    if plan.mode == PlanMode.DATED:
        return plan.start_date, plan.end_date
    return plan.start_date, None


def in_window(day: date, window: Tuple[Optional[date], Optional[date]]) -> bool:
    start, end = window
    if start is not None and day < start:
        return False
    if end is not None and day > end:
        return False
    return True


def ordered(templates: Iterable[ExerciseTemplate]) -> List[ExerciseTemplate]:
    return sorted(templates, key=lambda t: t.order_index)


def matches_template(instance: ScheduledExercise, template: ExerciseTemplate) -> bool:
    """Same exercise with the same prescription."""
    return (
        instance.exercise_id == template.exercise_id
        and instance.sets == template.sets
        and instance.reps == template.reps
        and instance.weight == template.weight
    )


def find_template_index(
    slot: DayTemplate,
    exercise_id: str,
    sets: Optional[int] = None,
    reps: Optional[int] = None,
    weight: Optional[float] = None,
    order_index: Optional[int] = None,
) -> Optional[int]:
    """Locate an exercise template in a day slot.

    Prefers an exact match on the given attributes and falls back to the
    first template for the same exercise.
    """
    fallback = None
    for index, template in enumerate(slot.exercise_templates):
        if template.exercise_id != exercise_id:
            continue
        if fallback is None:
            fallback = index
        if order_index is not None and template.order_index != order_index:
            continue
        if sets is not None and template.sets != sets:
            continue
        if reps is not None and template.reps != reps:
            continue
        if weight is not None and template.weight != weight:
            continue
        return index
    if order_index is not None:
        return None
    return fallback


def locate_template(
    plan: WorkoutPlan,
    exercise_id: str,
    day: date,
    sets: Optional[int] = None,
    reps: Optional[int] = None,
    weight: Optional[float] = None,
    order_index: Optional[int] = None,
) -> Optional[Tuple[int, int]]:
    """Find (day_of_week, index) of the template an instance on `day` came from.

    The slot for `day` is searched first. An instance moved off its template
    day for one week is found in another slot, by order_index before falling
    back to the exercise alone.
    """
    home = day_of_week(day)
    index = find_template_index(plan.day_slot(home), exercise_id, sets, reps, weight)
    if index is not None:
        return home, index

    others = sorted((s for s in plan.weekly_template if s.day_of_week != home), key=lambda s: s.day_of_week)
    if order_index is not None:
        for slot in others:
            index = find_template_index(slot, exercise_id, sets, reps, weight, order_index)
            if index is not None:
                return slot.day_of_week, index
    for slot in others:
        index = find_template_index(slot, exercise_id, sets, reps, weight)
        if index is not None:
            return slot.day_of_week, index
    return None


def move_template(
    weekly_template: Sequence[DayTemplate],
    from_day: int,
    to_day: int,
    index: int,
) -> Tuple[List[DayTemplate], ExerciseTemplate]:
    """Return a copy of the week with one template moved between day slots.

    The moved template is appended to the target slot after its last entry.
    """
    week = [slot.model_copy(deep=True) for slot in weekly_template]
    source = next((slot for slot in week if slot.day_of_week == from_day), None)
    target = next((slot for slot in week if slot.day_of_week == to_day), None)
    if source is None or target is None or not 0 <= index < len(source.exercise_templates):
        raise NotFoundError(
            "Exercise template not found in source day",
            details={"day_of_week": from_day, "index": index},
        )

    moved = source.exercise_templates.pop(index)
    next_order = max((t.order_index for t in target.exercise_templates), default=-1) + 1
    moved = moved.model_copy(update={"order_index": next_order})
    target.exercise_templates.append(moved)
    return week, moved


def desired_templates(
    plan: WorkoutPlan,
    day: date,
    suppressed: Iterable[str] = (),
) -> List[ExerciseTemplate]:
    """Templates the plan prescribes for a date, minus suppressed exercises."""
    hidden = set(suppressed)
    slot = plan.day_slot(day_of_week(day))
    return [t for t in ordered(slot.exercise_templates) if t.exercise_id not in hidden]


def diff_day(
    desired: Sequence[ExerciseTemplate],
    live: Sequence[ScheduledExercise],
    preserve_user_modifications: bool = True,
) -> Tuple[List[ScheduledExercise], List[ExerciseTemplate], int]:
    """Compare one day's desired templates against the plan's live instances.

    Returns (stale instances to delete, templates to insert, retained count).
    Exact matches are kept as they are. With `preserve_user_modifications`,
    completed or user-modified instances are never stale and stand in for a
    template of the same exercise.
    """
    remaining = list(live)
    unmatched: List[ExerciseTemplate] = []
    retained = 0

    for template in desired:
        match = next((e for e in remaining if matches_template(e, template)), None)
        if match is None:
            unmatched.append(template)
            continue
        remaining.remove(match)
        retained += 1

    missing: List[ExerciseTemplate] = []
    for template in unmatched:
        protected = None
        if preserve_user_modifications:
            protected = next(
                (
                    e for e in remaining
                    if e.exercise_id == template.exercise_id and (e.completed or e.modified_by_user)
                ),
                None,
            )
        if protected is None:
            missing.append(template)
            continue
        remaining.remove(protected)
        retained += 1

    stale = [
        e for e in remaining
        if not (preserve_user_modifications and (e.completed or e.modified_by_user))
    ]
    return stale, missing, retained


def uncovered_templates(
    desired: Sequence[ExerciseTemplate],
    live: Sequence[ScheduledExercise],
) -> List[ExerciseTemplate]:
    """Templates with no live instance of the same exercise on the day."""
    available = Counter(e.exercise_id for e in live)
    missing = []
    for template in desired:
        if available[template.exercise_id] > 0:
            available[template.exercise_id] -= 1
        else:
            missing.append(template)
    return missing


def instance_from_template(
    plan: WorkoutPlan,
    template: ExerciseTemplate,
    day: date,
    category_id: Optional[str],
    batch_id: Optional[str] = None,
    now: Optional[datetime] = None,
) -> ScheduledExercise:
    """Materialize one template occurrence as an unsaved scheduled exercise."""
    now = now or datetime.utcnow()
    return ScheduledExercise(
        user_id=plan.user_id,
        exercise_id=template.exercise_id,
        category_id=category_id,
        workout_plan_id=plan.id,
        date=day,
        sets=template.sets,
        reps=template.reps,
        weight=template.weight,
        notes=template.notes,
        order_index=template.order_index,
        generated_at=now,
        generation_batch_id=batch_id,
        created_at=now,
        updated_at=now,
    )


def project_occurrences(
    plan: WorkoutPlan,
    start: date,
    end: date,
    existing: Sequence[ScheduledExercise],
) -> List[ProjectedOccurrence]:
    """Template occurrences of `plan` in [start, end] that are not materialized.

    A template is projected on a date unless a live instance of the same plan
    and exercise already sits there, or a hidden marker suppresses it.
    """
    if plan.id is None:
        return []
    window = plan_window(plan)
    taken = {}
    for instance in existing:
        if instance.workout_plan_id != plan.id:
            continue
        taken.setdefault(instance.date, []).append(instance)

    projected = []
    for day in iter_dates(start, end):
        if not in_window(day, window):
            continue
        day_instances = taken.get(day, [])
        hidden = [e.exercise_id for e in day_instances if e.is_hidden]
        live = [e for e in day_instances if not e.is_hidden]
        for template in uncovered_templates(desired_templates(plan, day, hidden), live):
            projected.append(ProjectedOccurrence(
                id=occurrence_id(plan.id, day, template),
                workout_plan_id=plan.id,
                date=day,
                day_of_week=day_of_week(day),
                exercise_id=template.exercise_id,
                sets=template.sets,
                reps=template.reps,
                weight=template.weight,
                duration_minutes=template.duration_minutes,
                notes=template.notes,
                order_index=template.order_index,
            ))
    return projected
