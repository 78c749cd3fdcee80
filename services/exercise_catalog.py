"""Read-only lookups into the exercise catalog."""

from typing import Dict, Optional

from models.database import get_exercises_collection
from schemas.exercise import Exercise
from utils.errors import persistence_guard
from utils.helpers import document_serializer, to_object_id


class ExerciseCatalog:
    """Resolves exercise ids to catalog entries (name, category)."""

    def __init__(self, collection=None):
        self._collection = collection

    @property
    def collection(self):
        if self._collection is not None:
            return self._collection
        return get_exercises_collection()

    @persistence_guard("load exercise")
    async def find_by_id(self, exercise_id: str) -> Optional[Exercise]:
        object_id = to_object_id(exercise_id)
        if object_id is None:
            return None
        document = document_serializer(await self.collection.find_one({"_id": object_id}))
        if document is None:
            return None
        return Exercise.model_validate(document)


class CategoryLookup:
    """Per-operation memo of exercise -> category lookups.

    `resolve` returns (found, category_id); found is False when the exercise
    no longer exists in the catalog.
    """

    def __init__(self, catalog: ExerciseCatalog):
        self.catalog = catalog
        self._cache: Dict[str, Optional[Exercise]] = {}

    async def resolve(self, exercise_id: str):
        if exercise_id not in self._cache:
            self._cache[exercise_id] = await self.catalog.find_by_id(exercise_id)
        exercise = self._cache[exercise_id]
        if exercise is None:
            return False, None
        return True, exercise.category_id
