"""Scheduled exercise persistence on MongoDB."""

from datetime import date, datetime
from typing import Any, Dict, List, Optional, Tuple

from pymongo import ReturnDocument, UpdateOne
from pymongo.errors import BulkWriteError

from models.database import get_scheduled_exercises_collection
from schemas.scheduled_exercise import ScheduledExercise
from utils.errors import persistence_guard
from utils.helpers import document_serializer, to_mongo, to_object_id
from utils.logger import setup_logger

logger = setup_logger(__name__)


class ScheduledExerciseStore:
    """Scheduled Exercise Store: reads and writes dated exercise instances."""

    def __init__(self, collection=None):
        self._collection = collection

    @property
    def collection(self):
        if self._collection is not None:
            return self._collection
        return get_scheduled_exercises_collection()

    @staticmethod
    def _to_model(document: Optional[Dict[str, Any]]) -> Optional[ScheduledExercise]:
        document = document_serializer(document)
        if document is None:
            return None
        return ScheduledExercise.model_validate(document)

    @staticmethod
    def _to_document(exercise: ScheduledExercise) -> Dict[str, Any]:
        return to_mongo(exercise.model_dump(exclude={"id"}))

    @persistence_guard("load scheduled exercise")
    async def get(self, exercise_id: str, user_id: Optional[str] = None) -> Optional[ScheduledExercise]:
        object_id = to_object_id(exercise_id)
        if object_id is None:
            return None
        query: Dict[str, Any] = {"_id": object_id}
        if user_id is not None:
            query["user_id"] = user_id
        return self._to_model(await self.collection.find_one(query))

    @persistence_guard("list scheduled exercises")
    async def find_in_range(
        self,
        user_id: str,
        start: date,
        end: Optional[date] = None,
        workout_plan_id: Optional[str] = None,
        include_hidden: bool = False,
        completed: Optional[bool] = None,
    ) -> List[ScheduledExercise]:
        """Instances dated in [start, end]; an end of None leaves the range open."""
        date_filter: Dict[str, Any] = {"$gte": start.isoformat()}
        if end is not None:
            date_filter["$lte"] = end.isoformat()
        query: Dict[str, Any] = {"user_id": user_id, "date": date_filter}
        if workout_plan_id is not None:
            query["workout_plan_id"] = workout_plan_id
        if not include_hidden:
            query["is_hidden"] = {"$ne": True}
        if completed is not None:
            query["completed"] = completed
        cursor = self.collection.find(query).sort([("date", 1), ("order_index", 1)])
        documents = await cursor.to_list(length=None)
        return [self._to_model(d) for d in documents]

    @persistence_guard("create scheduled exercise")
    async def insert(self, exercise: ScheduledExercise) -> ScheduledExercise:
        result = await self.collection.insert_one(self._to_document(exercise))
        return exercise.model_copy(update={"id": str(result.inserted_id)})

    @persistence_guard("create scheduled exercises")
    async def insert_many(
        self, exercises: List[ScheduledExercise]
    ) -> Tuple[List[ScheduledExercise], List[Tuple[int, str]]]:
        """Insert a batch without stopping at the first failure.

        Returns the stored instances and (position, reason) for each one the
        database rejected.
        """
        if not exercises:
            return [], []
        documents = [self._to_document(e) for e in exercises]
        try:
            result = await self.collection.insert_many(documents, ordered=False)
            inserted_ids = list(result.inserted_ids)
            failures: List[Tuple[int, str]] = []
        except BulkWriteError as e:
            failed = {err["index"]: err.get("errmsg", "write error") for err in e.details.get("writeErrors", [])}
            inserted_ids = [documents[i].get("_id") if i not in failed else None for i in range(len(documents))]
            failures = sorted(failed.items())
            logger.warning(f"Bulk insert rejected {len(failures)} of {len(documents)} scheduled exercises")

        stored = []
        for exercise, inserted_id in zip(exercises, inserted_ids):
            if inserted_id is not None:
                stored.append(exercise.model_copy(update={"id": str(inserted_id)}))
        return stored, failures

    @persistence_guard("update scheduled exercise")
    async def update(self, exercise_id: str, user_id: str, fields: Dict[str, Any]) -> Optional[ScheduledExercise]:
        object_id = to_object_id(exercise_id)
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

    @persistence_guard("move scheduled exercises")
    async def update_dates(self, user_id: str, changes: Dict[str, date]) -> int:
        """Set new dates for several instances in one bulk write."""
        now = datetime.utcnow()
        operations = []
        for exercise_id, new_date in changes.items():
            object_id = to_object_id(exercise_id)
            if object_id is None:
                continue
            operations.append(UpdateOne(
                {"_id": object_id, "user_id": user_id},
                {"$set": {"date": new_date.isoformat(), "updated_at": now}},
            ))
        if not operations:
            return 0
        result = await self.collection.bulk_write(operations, ordered=True)
        return result.modified_count

    @persistence_guard("update completion status")
    async def set_completion(self, user_id: str, exercise_ids: List[str], completed: bool) -> int:
        object_ids = [oid for oid in (to_object_id(e) for e in exercise_ids) if oid is not None]
        if not object_ids:
            return 0
        now = datetime.utcnow()
        result = await self.collection.update_many(
            {"_id": {"$in": object_ids}, "user_id": user_id},
            {"$set": {"completed": completed, "completed_at": now if completed else None, "updated_at": now}},
        )
        return result.modified_count

    @persistence_guard("delete scheduled exercise")
    async def delete(self, exercise_id: str, user_id: str) -> bool:
        object_id = to_object_id(exercise_id)
        if object_id is None:
            return False
        result = await self.collection.delete_one({"_id": object_id, "user_id": user_id})
        return result.deleted_count > 0

    @persistence_guard("delete scheduled exercises")
    async def delete_many(self, exercise_ids: List[str]) -> int:
        object_ids = [oid for oid in (to_object_id(e) for e in exercise_ids) if oid is not None]
        if not object_ids:
            return 0
        result = await self.collection.delete_many({"_id": {"$in": object_ids}})
        return result.deleted_count

    @persistence_guard("clear scheduled exercises for date")
    async def delete_for_date(self, user_id: str, day: date, workout_plan_id: Optional[str] = None) -> int:
        query: Dict[str, Any] = {"user_id": user_id, "date": day.isoformat()}
        if workout_plan_id is not None:
            query["workout_plan_id"] = workout_plan_id
        result = await self.collection.delete_many(query)
        return result.deleted_count
