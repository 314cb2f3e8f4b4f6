"""Business logic services used by HTTP controllers.

`HabitService` coordinates the habit and mark repositories. It performs
the small amount of domain logic the API needs (today's date, the
"already marked" rule, shaping habits with their completion history)
and leaves HTTP concerns to the controllers.
"""

import logging
from datetime import date, datetime, timezone
from typing import List, Optional
from sqlmodel import Session
from . import models, repositories

logger = logging.getLogger("habit_tracker.services")

STATUS_MARKED = "marked"
STATUS_ALREADY_MARKED = "already marked"


class HabitNotFound(LookupError):
    """Raised when a habit id does not match any stored habit."""

    def __init__(self, habit_id: int):
        super().__init__(f"habit {habit_id} not found")
        self.habit_id = habit_id


def today() -> str:
    """Return the server's local calendar date as `YYYY-MM-DD`."""
    return date.today().isoformat()


def _as_utc(ts: datetime) -> datetime:
    # SQLite hands back naive datetimes; they were stored as UTC.
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts


def habit_summary(habit: models.Habit) -> dict:
    """Shape a habit without its marks (create response)."""
    return {
        'id': habit.id,
        'name': habit.name,
        'notes': habit.notes,
        'created_at': _as_utc(habit.created_at),
    }


def habit_with_marks(habit: models.Habit, marks: List[models.Mark]) -> dict:
    """Shape a habit together with its ordered completion dates."""
    dates = [m.date for m in marks]
    out = habit_summary(habit)
    out['done_count'] = len(dates)
    out['done_dates'] = dates
    return out


class HabitService:
    """Create, read, update, delete and mark habits."""
    def __init__(self, session: Session):
        self.session = session
        self.habit_repo = repositories.HabitRepository(session)
        self.mark_repo = repositories.MarkRepository(session)

    def create(self, name: str, notes: Optional[str] = None) -> dict:
        """Insert a new habit and return it without mark fields."""
        if not name or not name.strip():
            raise ValueError('name is required')
        habit = self.habit_repo.insert(models.Habit(name=name.strip(), notes=notes))
        logger.info("habit_created id=%s", habit.id)
        return habit_summary(habit)

    def list_all(self) -> List[dict]:
        """Return every habit with its marks, ordered by habit id."""
        out = []
        for habit in self.habit_repo.list_ordered():
            marks = self.mark_repo.list_for_habit(habit.id)
            out.append(habit_with_marks(habit, marks))
        return out

    def _require(self, habit_id: int) -> models.Habit:
        habit = self.habit_repo.get(habit_id)
        if habit is None:
            raise HabitNotFound(habit_id)
        return habit

    def get(self, habit_id: int) -> dict:
        """Return one habit with its marks or raise `HabitNotFound`."""
        habit = self._require(habit_id)
        return habit_with_marks(habit, self.mark_repo.list_for_habit(habit.id))

    def mark_today(self, habit_id: int) -> dict:
        """Record that the habit was done today.

        The unique (habit_id, date) constraint makes the insert atomic: a
        second mark on the same day fails with `ConstraintViolation` and is
        reported as "already marked" instead of creating a duplicate.
        """
        self._require(habit_id)
        day = today()
        try:
            self.mark_repo.insert(models.Mark(habit_id=habit_id, date=day))
        except repositories.ConstraintViolation:
            # a foreign-key failure means the habit was deleted after the lookup
            if not self.habit_repo.exists(habit_id):
                raise HabitNotFound(habit_id)
            logger.info("habit_already_marked id=%s date=%s", habit_id, day)
            return {'status': STATUS_ALREADY_MARKED, 'date': day}
        logger.info("habit_marked id=%s date=%s", habit_id, day)
        return {'status': STATUS_MARKED, 'date': day}

    def update(self, habit_id: int, name: str, notes: Optional[str] = None) -> dict:
        """Overwrite name and notes; creation time and marks are untouched."""
        if not name or not name.strip():
            raise ValueError('name is required')
        habit = self._require(habit_id)
        habit = self.habit_repo.update_fields(habit, {'name': name.strip(), 'notes': notes})
        return {'id': habit.id, 'name': habit.name, 'notes': habit.notes}

    def delete(self, habit_id: int) -> dict:
        """Delete a habit and all its marks in a single transaction."""
        self._require(habit_id)
        with self.habit_repo.atomic():
            removed = self.mark_repo.delete_where(models.Mark.habit_id == habit_id, commit=False)
            self.habit_repo.delete_by_id(habit_id, commit=False)
        logger.info("habit_deleted id=%s marks_removed=%s", habit_id, removed)
        return {'id': habit_id}
