"""SQLModel data models.

This module defines the application's database tables using SQLModel.
A `Habit` owns any number of `Mark` rows, one per day it was done.
"""

from typing import Optional
from sqlalchemy import Column, ForeignKey, Integer, UniqueConstraint
from sqlmodel import SQLModel, Field
from datetime import datetime, timezone


class Habit(SQLModel, table=True):
    """A named recurring activity a user tracks.

    Fields:
    - `name`: required display name
    - `notes`: optional free text
    - `created_at`: set once when the row is inserted
    """
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(nullable=False)
    notes: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class Mark(SQLModel, table=True):
    """A record that a `Habit` was completed on `date` (`YYYY-MM-DD`).

    The (habit_id, date) pair is unique, so a habit can be marked at most
    once per day.
    """
    __table_args__ = (UniqueConstraint('habit_id', 'date', name='uq_mark_habit_date'),)

    id: Optional[int] = Field(default=None, primary_key=True)
    habit_id: int = Field(
        sa_column=Column(Integer, ForeignKey('habit.id', ondelete='CASCADE'), nullable=False, index=True)
    )
    date: str = Field(max_length=10)
