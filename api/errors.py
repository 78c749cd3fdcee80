"""Mapping of domain errors onto HTTP responses."""

from fastapi import HTTPException

from utils.errors import WorkoutPlannerError


def to_http_exception(error: WorkoutPlannerError) -> HTTPException:
    """HTTPException carrying the error's status code and `to_dict()` body."""
    return HTTPException(status_code=error.status_code, detail=error.to_dict())
