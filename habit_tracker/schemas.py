"""Pydantic request/response schemas used by the API.

Schemas keep API input/output shapes stable and provide validation for
controller handlers and tests.
"""

from datetime import datetime
from pydantic import BaseModel, field_validator
from typing import List, Optional


class HabitIn(BaseModel):
    """Payload for creating or updating a habit."""
    name: str
    notes: Optional[str] = None

    @field_validator('name')
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError('name is required')
        return v


class HabitOut(BaseModel):
    """A habit as returned by create (no mark fields)."""
    id: int
    name: str
    notes: Optional[str] = None
    created_at: datetime


class HabitWithMarksOut(HabitOut):
    """A habit with its completion history, used by list and get."""
    done_count: int
    done_dates: List[str]


class HabitUpdatedOut(BaseModel):
    """Response of an update: only the mutable fields and the id."""
    id: int
    name: str
    notes: Optional[str] = None


class MarkOut(BaseModel):
    """Result of marking a habit for today."""
    status: str
    date: str


class DeletedOut(BaseModel):
    """Id of a deleted habit."""
    id: int
