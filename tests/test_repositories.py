import pytest
from sqlalchemy import text
from sqlmodel import Session

from habit_tracker import models
from habit_tracker.database import create_db_and_tables, make_engine, ping
from habit_tracker.repositories import (
    ConstraintViolation,
    HabitRepository,
    MarkRepository,
    StoreError,
)


@pytest.fixture
def session(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'repo.db'}")
    create_db_and_tables(engine)
    with Session(engine) as s:
        yield s
    engine.dispose()


def test_insert_get_and_update_fields(session):
    repo = HabitRepository(session)
    habit = repo.insert(models.Habit(name='Walk'))
    assert habit.id is not None
    assert habit.created_at is not None
    created = habit.created_at

    repo.update_fields(habit, {'name': 'Run', 'notes': '5k'})
    fetched = repo.get(habit.id)
    assert fetched.name == 'Run'
    assert fetched.notes == '5k'
    assert fetched.created_at == created
    assert repo.get(12345) is None


def test_find_where_orders_marks(session):
    habit = HabitRepository(session).insert(models.Habit(name='Walk'))
    marks = MarkRepository(session)
    for day in ('2024-05-03', '2024-05-01', '2024-05-02'):
        marks.insert(models.Mark(habit_id=habit.id, date=day))
    assert [m.date for m in marks.list_for_habit(habit.id)] == ['2024-05-01', '2024-05-02', '2024-05-03']


def test_unique_mark_per_day(session):
    habit = HabitRepository(session).insert(models.Habit(name='Walk'))
    marks = MarkRepository(session)
    marks.insert(models.Mark(habit_id=habit.id, date='2024-01-01'))
    with pytest.raises(ConstraintViolation):
        marks.insert(models.Mark(habit_id=habit.id, date='2024-01-01'))
    # the session is usable again after the rollback
    assert len(marks.list_for_habit(habit.id)) == 1


def test_mark_requires_existing_habit(session):
    with pytest.raises(ConstraintViolation):
        MarkRepository(session).insert(models.Mark(habit_id=999, date='2024-01-01'))


def test_delete_by_id_and_delete_where(session):
    habits = HabitRepository(session)
    marks = MarkRepository(session)
    habit_id = habits.insert(models.Habit(name='Walk')).id
    marks.insert(models.Mark(habit_id=habit_id, date='2024-01-01'))
    marks.insert(models.Mark(habit_id=habit_id, date='2024-01-02'))

    with habits.atomic():
        removed = marks.delete_where(models.Mark.habit_id == habit_id, commit=False)
        assert habits.delete_by_id(habit_id, commit=False) is True
    assert removed == 2
    assert habits.get(habit_id) is None
    assert marks.list_all() == []
    assert habits.delete_by_id(habit_id) is False


def test_atomic_rolls_back_everything_on_error(session):
    habits = HabitRepository(session)
    marks = MarkRepository(session)
    habit = habits.insert(models.Habit(name='Walk'))
    habit_id = habit.id
    marks.insert(models.Mark(habit_id=habit_id, date='2024-01-01'))

    with pytest.raises(RuntimeError):
        with habits.atomic():
            marks.delete_where(models.Mark.habit_id == habit_id, commit=False)
            raise RuntimeError('interrupted')
    assert len(marks.list_for_habit(habit_id)) == 1


def test_database_cascade_removes_marks(session):
    habits = HabitRepository(session)
    marks = MarkRepository(session)
    habit = habits.insert(models.Habit(name='Walk'))
    habit_id = habit.id
    marks.insert(models.Mark(habit_id=habit_id, date='2024-01-01'))
    session.expunge_all()
    assert habits.delete_by_id(habit_id) is True
    assert marks.list_for_habit(habit_id) == []


def test_store_error_wraps_sqlalchemy_errors(session):
    repo = HabitRepository(session)
    with pytest.raises(StoreError):
        repo.find_where(text('no_such_column = 1'))


def test_create_db_and_tables_is_idempotent(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'twice.db'}")
    create_db_and_tables(engine)
    create_db_and_tables(engine)
    assert ping(engine)
    engine.dispose()


def test_in_memory_database_is_shared_across_sessions():
    engine = make_engine("sqlite://")
    create_db_and_tables(engine)
    with Session(engine) as s:
        HabitRepository(s).insert(models.Habit(name='Walk'))
    with Session(engine) as s:
        assert [h.name for h in HabitRepository(s).list_ordered()] == ['Walk']
    engine.dispose()


def test_exists_reads_the_database(session):
    habits = HabitRepository(session)
    habit_id = habits.insert(models.Habit(name='Walk')).id
    assert habits.exists(habit_id) is True
    assert habits.exists(habit_id + 1) is False
