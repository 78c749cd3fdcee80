"""Domain error taxonomy for plan generation, conflicts and rescheduling."""

import functools
from typing import Any, Dict, Optional

from pymongo.errors import PyMongoError


class WorkoutPlannerError(Exception):
    """Base class for every error the planner core raises."""

    status_code = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": type(self).__name__,
            "message": self.message,
            "details": self.details,
        }


class ValidationError(WorkoutPlannerError):
    """Malformed input: bad date range, missing weekly template, bad ids."""

    status_code = 400


class WeekRestrictionError(WorkoutPlannerError):
    """Reschedule target lies outside the source date's Sunday-Saturday week."""

    status_code = 400


class NotFoundError(WorkoutPlannerError):
    """A referenced plan, instance, occurrence or exercise does not exist."""

    status_code = 404


class ConflictError(WorkoutPlannerError):
    """Activation blocked by overlapping plans."""

    status_code = 409


class PersistenceError(WorkoutPlannerError):
    """The underlying store rejected or failed a read or write."""

    status_code = 503


def persistence_guard(operation: str):
    """Translate pymongo failures raised by a store coroutine into PersistenceError."""

    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            try:
                return await func(*args, **kwargs)
            except PyMongoError as e:
                raise PersistenceError(
                    f"Failed to {operation}: {e}",
                    details={"operation": operation, "reason": str(e)},
                ) from e

        return wrapper

    return decorator
