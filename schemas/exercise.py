"""Exercise catalog collection schema."""

from typing import Optional
from pydantic import BaseModel, Field


class Exercise(BaseModel):
    """Exercise catalog model (read-only reference data)."""
    id: str = Field(..., description="Exercise identifier")
    name: str = Field(..., description="Exercise name")
    category_id: Optional[str] = Field(None, description="Category identifier")
    description: Optional[str] = Field(None, description="How to perform the exercise")
    is_active: bool = Field(True, description="Whether the exercise is offered")
