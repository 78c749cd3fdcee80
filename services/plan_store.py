"""Workout plan persistence on MongoDB."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pymongo import ReturnDocument

from models.database import get_workout_plans_collection
from models.schemas.enums import PlanLevel, PlanMode
from schemas.workout_plan import GenerationPolicy, WorkoutPlan
from utils.errors import persistence_guard
from utils.helpers import document_serializer, to_mongo, to_object_id
from utils.logger import setup_logger

logger = setup_logger(__name__)


class WorkoutPlanStore:
    """Template Store: reads and writes WorkoutPlan documents."""

    def __init__(self, collection=None):
        self._collection = collection

    @property
    def collection(self):
        if self._collection is not None:
            return self._collection
        return get_workout_plans_collection()

    @staticmethod
    def _to_model(document: Optional[Dict[str, Any]]) -> Optional[WorkoutPlan]:
        document = document_serializer(document)
        if document is None:
            return None
        return WorkoutPlan.model_validate(document)

    @persistence_guard("load workout plan")
    async def get(self, plan_id: str, user_id: Optional[str] = None) -> Optional[WorkoutPlan]:
        object_id = to_object_id(plan_id)
        if object_id is None:
            return None
        query: Dict[str, Any] = {"_id": object_id}
        if user_id is not None:
            query["user_id"] = user_id
        return self._to_model(await self.collection.find_one(query))

    @persistence_guard("list workout plans")
    async def list_for_user(
        self,
        user_id: str,
        mode: Optional[PlanMode] = None,
        level: Optional[PlanLevel] = None,
    ) -> List[WorkoutPlan]:
        query: Dict[str, Any] = {"user_id": user_id}
        if mode is not None:
            query["mode"] = mode.value
        if level is not None:
            query["level"] = level.value
        # Active plans first, then newest
        cursor = self.collection.find(query).sort([("is_active", -1), ("created_at", -1)])
        documents = await cursor.to_list(length=None)
        return [self._to_model(d) for d in documents]

    @persistence_guard("load active workout plan")
    async def get_active(self, user_id: str) -> Optional[WorkoutPlan]:
        return self._to_model(await self.collection.find_one({"user_id": user_id, "is_active": True}))

    @persistence_guard("list active workout plans")
    async def list_active(self) -> List[WorkoutPlan]:
        cursor = self.collection.find({"is_active": True})
        documents = await cursor.to_list(length=None)
        return [self._to_model(d) for d in documents]

    @persistence_guard("create workout plan")
    async def create(self, plan: WorkoutPlan) -> WorkoutPlan:
        now = datetime.utcnow()
        plan = plan.model_copy(update={"created_at": now, "updated_at": now})
        document = to_mongo(plan.model_dump(exclude={"id"}, mode="python"))
        result = await self.collection.insert_one(document)
        logger.info(f"Created workout plan {result.inserted_id} for user {plan.user_id}")
        return plan.model_copy(update={"id": str(result.inserted_id)})

    @persistence_guard("update workout plan")
    async def update(self, plan_id: str, user_id: str, fields: Dict[str, Any]) -> Optional[WorkoutPlan]:
        object_id = to_object_id(plan_id)
        if object_id is None:
            return None
        fields = {k: v for k, v in fields.items() if k not in ("id", "_id", "user_id", "created_at")}
        fields["updated_at"] = datetime.utcnow()
        document = await self.collection.find_one_and_update(
            {"_id": object_id, "user_id": user_id},
            {"$set": to_mongo(fields)},
            return_document=ReturnDocument.AFTER,
        )
        return self._to_model(document)

    @persistence_guard("update generation policy")
    async def update_generation_policy(self, plan_id: str, policy: GenerationPolicy) -> None:
        object_id = to_object_id(plan_id)
        if object_id is None:
            return
        await self.collection.update_one(
            {"_id": object_id},
            {"$set": {"generation_policy": to_mongo(policy.model_dump())}},
        )

    @persistence_guard("delete workout plan")
    async def delete(self, plan_id: str, user_id: str) -> bool:
        object_id = to_object_id(plan_id)
        if object_id is None:
            return False
        result = await self.collection.delete_one({"_id": object_id, "user_id": user_id})
        return result.deleted_count > 0

    @persistence_guard("switch active workout plan")
    async def switch_active(self, user_id: str, plan_id: str) -> Optional[WorkoutPlan]:
        """Deactivate the user's other plans, then activate `plan_id`.

        Deactivation runs first so two active plans are never visible.
        """
        object_id = to_object_id(plan_id)
        if object_id is None:
            return None
        if await self.collection.find_one({"_id": object_id, "user_id": user_id}, {"_id": 1}) is None:
            return None

        now = datetime.utcnow()
        await self.collection.update_many(
            {"user_id": user_id, "_id": {"$ne": object_id}, "is_active": True},
            {"$set": {"is_active": False, "updated_at": now}},
        )
        document = await self.collection.find_one_and_update(
            {"_id": object_id, "user_id": user_id},
            {"$set": {"is_active": True, "updated_at": now}},
            return_document=ReturnDocument.AFTER,
        )
        return self._to_model(document)

    @persistence_guard("change plan activation")
    async def set_active(self, user_id: str, plan_ids: List[str], is_active: bool) -> int:
        object_ids = [oid for oid in (to_object_id(p) for p in plan_ids) if oid is not None]
        if not object_ids:
            return 0
        result = await self.collection.update_many(
            {"_id": {"$in": object_ids}, "user_id": user_id},
            {"$set": {"is_active": is_active, "updated_at": datetime.utcnow()}},
        )
        return result.modified_count
