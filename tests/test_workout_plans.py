"""
Tests for the workout plan lifecycle: create, update, duplicate, activation
and the generation entry points.
"""
from datetime import date

import pytest

from models.schemas.enums import PlanLevel, PlanMode
from schemas.workout_plan import GenerationPolicy, WorkoutPlanCreate, WorkoutPlanUpdate
from tests.conftest import PULL_UPS, PUSH_UPS, SQUATS, make_plan, template, week
from utils.errors import ConflictError, NotFoundError, ValidationError

TODAY = date(2024, 1, 1)


def _create_payload(**kwargs) -> WorkoutPlanCreate:
    data = {
        "name": "  Strength Block  ",
        "level": PlanLevel.INTERMEDIATE,
        "mode": PlanMode.DATED,
        "start_date": date(2024, 1, 1),
        "end_date": date(2024, 3, 31),
        "weekly_template": week(mon=[template(PUSH_UPS)], wed=[template(PULL_UPS)]),
    }
    data.update(kwargs)
    return WorkoutPlanCreate(**data)


class TestCreate:
    @pytest.mark.asyncio
    async def test_creates_an_inactive_plan(self, plan_service, plan_store):
        plan = await plan_service.create_plan("user-1", _create_payload())

        assert plan.id in plan_store.plans
        assert plan.name == "Strength Block"
        assert not plan.is_active
        assert len(plan.weekly_template) == 7

    @pytest.mark.asyncio
    async def test_active_on_create_switches_plans(self, plan_service, plan_store, exercise_store):
        old = plan_store.add(make_plan(is_active=True, start_date=date(2024, 6, 1)))

        plan = await plan_service.create_plan("user-1", _create_payload(is_active=True), today=TODAY)

        assert plan.is_active
        assert not plan_store.plans[old.id].is_active
        assert [e.date for e in exercise_store.live()] == [date(2024, 1, 1), date(2024, 1, 3), date(2024, 1, 8)]

    @pytest.mark.asyncio
    async def test_active_on_create_with_overlap_is_a_conflict(self, plan_service, plan_store):
        plan_store.add(make_plan(is_active=True, start_date=date(2023, 6, 1)))

        with pytest.raises(ConflictError) as exc_info:
            await plan_service.create_plan("user-1", _create_payload(is_active=True), today=TODAY)

        assert len(exc_info.value.details["conflicts"]) == 1
        assert len(plan_store.plans) == 1


class TestUpdate:
    @pytest.mark.asyncio
    async def test_partial_update(self, plan_service, plan_store):
        plan = plan_store.add(make_plan())

        updated, generation = await plan_service.update_plan(
            "user-1", plan.id, WorkoutPlanUpdate(description="Upper body")
        )

        assert updated.description == "Upper body"
        assert updated.name == plan.name
        assert generation is None

    @pytest.mark.asyncio
    async def test_update_is_validated_against_the_whole_plan(self, plan_service, plan_store):
        plan = plan_store.add(make_plan())

        with pytest.raises(ValidationError):
            await plan_service.update_plan("user-1", plan.id, WorkoutPlanUpdate(mode=PlanMode.DATED))

        assert plan_store.plans[plan.id].mode == PlanMode.ONGOING

    @pytest.mark.asyncio
    async def test_regenerate_replaces_upcoming_exercises(self, plan_service, plan_store, exercise_store, generator):
        plan = plan_store.add(make_plan(is_active=True, generation_policy=GenerationPolicy(advance_days=6)))
        await generator.generate(plan, TODAY, date(2024, 1, 7))

        _, generation = await plan_service.update_plan(
            "user-1",
            plan.id,
            WorkoutPlanUpdate(weekly_template=week(tue=[template(SQUATS)])),
            regenerate=True,
            today=TODAY,
        )

        assert generation.removed == 2
        assert [(e.date, e.exercise_id) for e in exercise_store.live()] == [(date(2024, 1, 2), SQUATS)]

    @pytest.mark.asyncio
    async def test_unknown_plan(self, plan_service):
        with pytest.raises(NotFoundError):
            await plan_service.update_plan("user-1", "65a0000000000000000000aa", WorkoutPlanUpdate(name="x"))


class TestDeleteAndDuplicate:
    @pytest.mark.asyncio
    async def test_delete_keeps_scheduled_exercises(self, plan_service, plan_store, exercise_store, generator):
        plan = plan_store.add(make_plan())
        await generator.generate(plan, TODAY, date(2024, 1, 7))

        await plan_service.delete_plan("user-1", plan.id)

        assert plan.id not in plan_store.plans
        assert len(exercise_store.live()) == 2

    @pytest.mark.asyncio
    async def test_delete_unknown_plan(self, plan_service):
        with pytest.raises(NotFoundError):
            await plan_service.delete_plan("user-1", "65a0000000000000000000aa")

    @pytest.mark.asyncio
    async def test_duplicate_is_an_inactive_copy(self, plan_service, plan_store):
        plan = plan_store.add(make_plan(
            is_active=True,
            generation_policy=GenerationPolicy(furthest_generated_date=date(2024, 2, 1)),
        ))

        copy = await plan_service.duplicate_plan("user-1", plan.id)

        assert copy.id != plan.id
        assert copy.name == "Push Pull (Copy)"
        assert not copy.is_active
        assert copy.weekly_template == plan.weekly_template
        assert copy.generation_policy.furthest_generated_date is None

    @pytest.mark.asyncio
    async def test_duplicate_name_stays_within_limit(self, plan_service, plan_store):
        plan = plan_store.add(make_plan(name="x" * 100))

        copy = await plan_service.duplicate_plan("user-1", plan.id)

        assert len(copy.name) == 100
        assert copy.name.endswith(" (Copy)")


class TestActivation:
    @pytest.mark.asyncio
    async def test_activation_generates_the_first_week(self, plan_service, plan_store, exercise_store):
        plan = plan_store.add(make_plan())

        result = await plan_service.activate_plan("user-1", plan.id, today=TODAY)

        assert result.plan.is_active
        assert result.generation.count == 3
        assert [e.date for e in exercise_store.live()] == [date(2024, 1, 1), date(2024, 1, 3), date(2024, 1, 8)]

    @pytest.mark.asyncio
    async def test_overlapping_active_plan_blocks_activation(self, plan_service, plan_store):
        current = plan_store.add(make_plan(is_active=True, start_date=date(2023, 6, 1), name="Current"))
        candidate = plan_store.add(make_plan(name="Next"))

        with pytest.raises(ConflictError):
            await plan_service.activate_plan("user-1", candidate.id, today=TODAY)

        assert plan_store.plans[current.id].is_active
        assert not plan_store.plans[candidate.id].is_active

    @pytest.mark.asyncio
    async def test_force_switches_the_active_plan(self, plan_service, plan_store):
        current = plan_store.add(make_plan(is_active=True, start_date=date(2023, 6, 1), name="Current"))
        candidate = plan_store.add(make_plan(name="Next"))

        result = await plan_service.activate_plan("user-1", candidate.id, force=True, today=TODAY)

        assert [c.plan_id for c in result.conflicts] == [current.id]
        active = [p for p in plan_store.plans.values() if p.is_active]
        assert [p.id for p in active] == [candidate.id]

    @pytest.mark.asyncio
    async def test_non_overlapping_plan_switches_without_force(self, plan_service, plan_store):
        current = plan_store.add(make_plan(
            mode=PlanMode.DATED, start_date=date(2023, 9, 1), end_date=date(2023, 12, 31), is_active=True,
        ))
        candidate = plan_store.add(make_plan(
            mode=PlanMode.DATED, start_date=date(2024, 1, 1), end_date=date(2024, 3, 31),
        ))

        await plan_service.activate_plan("user-1", candidate.id, today=TODAY)

        assert not plan_store.plans[current.id].is_active
        assert plan_store.plans[candidate.id].is_active

    @pytest.mark.asyncio
    async def test_all_rest_plan_activates_with_an_empty_generation(self, plan_service, plan_store, exercise_store):
        plan = plan_store.add(make_plan(weekly_template=[]))

        result = await plan_service.activate_plan("user-1", plan.id, today=TODAY)

        assert result.plan.is_active
        assert result.generation.success
        assert result.generation.count == 0
        assert exercise_store.live() == []

    @pytest.mark.asyncio
    async def test_deactivate(self, plan_service, plan_store):
        plan = plan_store.add(make_plan(is_active=True))

        result = await plan_service.deactivate_plan("user-1", plan.id)

        assert not result.is_active


class TestGenerationEntryPoints:
    @pytest.mark.asyncio
    async def test_generate_defaults_to_the_active_plan(self, plan_service, plan_store, exercise_store):
        plan_store.add(make_plan(is_active=True))

        result = await plan_service.generate_exercises(
            "user-1", start_date=TODAY, end_date=date(2024, 1, 7)
        )

        assert result.count == 2

    @pytest.mark.asyncio
    async def test_generate_without_active_plan(self, plan_service):
        with pytest.raises(NotFoundError):
            await plan_service.generate_exercises("user-1", start_date=TODAY, end_date=date(2024, 1, 7))

    @pytest.mark.asyncio
    async def test_ensure_generated(self, plan_service, plan_store, exercise_store):
        plan = plan_store.add(make_plan())

        result = await plan_service.ensure_exercises_generated("user-1", plan.id, 2, today=TODAY)

        assert result.count == 2
        status = await plan_service.generation_status("user-1", plan.id, 2, today=TODAY)
        assert not status.needs_generation
