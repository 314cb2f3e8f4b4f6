"""Repository classes encapsulating database operations.

Each repository is small and focused on a single table (habits, marks).
Repositories return SQLModel objects, perform commits/refreshes where
appropriate and translate SQLAlchemy failures into `StoreError`, so the
layers above can tell "not found" (`None` / `False`) apart from "the
store failed".
"""

import functools
from contextlib import contextmanager
from typing import List
from sqlalchemy import delete
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, select
from . import models


class StoreError(Exception):
    """The database rejected or failed an operation."""


class ConstraintViolation(StoreError):
    """An insert or update violated a unique or foreign-key constraint."""


def _store_op(fn):
    """Roll back and re-raise SQLAlchemy errors as `StoreError`."""
    @functools.wraps(fn)
    def wrapper(self, *args, **kwargs):
        try:
            return fn(self, *args, **kwargs)
        except IntegrityError as e:
            self.session.rollback()
            raise ConstraintViolation(str(e.orig)) from e
        except SQLAlchemyError as e:
            self.session.rollback()
            raise StoreError(str(e)) from e
    return wrapper


class Repository:
    """Primitive create/read/update/delete operations over one model.

    Write operations commit by default; pass `commit=False` to batch
    several of them inside `atomic()`.
    """
    model = None

    def __init__(self, session: Session):
        self.session = session

    @contextmanager
    def atomic(self):
        """Commit everything done inside the block once, or nothing."""
        try:
            yield self.session
            self.session.commit()
        except IntegrityError as e:
            self.session.rollback()
            raise ConstraintViolation(str(e.orig)) from e
        except SQLAlchemyError as e:
            self.session.rollback()
            raise StoreError(str(e)) from e
        except Exception:
            self.session.rollback()
            raise

    @_store_op
    def insert(self, obj, commit: bool = True):
        """Persist a new row and return the managed instance."""
        self.session.add(obj)
        if commit:
            self.session.commit()
            self.session.refresh(obj)
        else:
            self.session.flush()
        return obj

    @_store_op
    def get(self, obj_id: int):
        """Return the row with primary key `obj_id` or `None`."""
        return self.session.get(self.model, obj_id)

    @_store_op
    def list_all(self, order_by=None) -> List:
        """Return every row, optionally ordered."""
        stmt = select(self.model)
        if order_by is not None:
            stmt = stmt.order_by(order_by)
        return list(self.session.exec(stmt).all())

    @_store_op
    def find_where(self, *criteria, order_by=None) -> List:
        """Return rows matching all `criteria`, optionally ordered."""
        stmt = select(self.model).where(*criteria)
        if order_by is not None:
            stmt = stmt.order_by(order_by)
        return list(self.session.exec(stmt).all())

    @_store_op
    def update_fields(self, obj, fields: dict, commit: bool = True):
        """Overwrite the given attributes on `obj` and persist them."""
        for key, value in fields.items():
            setattr(obj, key, value)
        self.session.add(obj)
        if commit:
            self.session.commit()
            self.session.refresh(obj)
        return obj

    @_store_op
    def delete_by_id(self, obj_id: int, commit: bool = True) -> bool:
        """Delete the row with primary key `obj_id`; False if it was absent."""
        obj = self.session.get(self.model, obj_id)
        if obj is None:
            return False
        self.session.delete(obj)
        if commit:
            self.session.commit()
        else:
            self.session.flush()
        return True

    @_store_op
    def delete_where(self, *criteria, commit: bool = True) -> int:
        """Delete every row matching `criteria` and return how many went."""
        result = self.session.execute(delete(self.model).where(*criteria))
        if commit:
            self.session.commit()
        return result.rowcount


class HabitRepository(Repository):
    """CRUD operations for `Habit` objects."""
    model = models.Habit

    def list_ordered(self) -> List[models.Habit]:
        """Return all habits, oldest id first."""
        return self.list_all(order_by=models.Habit.id)

    @_store_op
    def exists(self, habit_id: int) -> bool:
        """Return True if a habit row with `habit_id` is stored, bypassing the identity map."""
        stmt = select(models.Habit.id).where(models.Habit.id == habit_id)
        return self.session.exec(stmt).first() is not None


class MarkRepository(Repository):
    """Query helpers for `Mark` records."""
    model = models.Mark

    def list_for_habit(self, habit_id: int) -> List[models.Mark]:
        """List all marks of `habit_id`, earliest date first."""
        return self.find_where(models.Mark.habit_id == habit_id, order_by=models.Mark.date)
