from __future__ import annotations

from datetime import date, datetime

import pytest

from studybuddy.domain.enums import Category, Priority, TaskStatus
from studybuddy.domain.errors import InvalidTask, NotFound
from studybuddy.infra.clock import FixedClock
from studybuddy.services.task_store import TaskStore

NOON = datetime(2026, 3, 10, 12, 0)


def make_store(**kwargs) -> tuple[TaskStore, FixedClock]:
    clock = FixedClock(NOON)
    return TaskStore(clock, **kwargs), clock


def test_add_applies_defaults_and_trims_title() -> None:
    store, _ = make_store()

    task = store.add({"title": "  Read chapter 3  "})

    assert task.title == "Read chapter 3"
    assert task.priority == Priority.MEDIUM
    assert task.category == Category.ACADEMIC
    assert task.status == TaskStatus.PENDING
    assert task.created_at == task.updated_at == NOON


def test_ids_are_never_reused() -> None:
    ids = iter(["a", "a", "b", "a", "c"])
    store, _ = make_store(id_factory=lambda: next(ids))

    first = store.add({"title": "One"})
    second = store.add({"title": "Two"})
    store.delete(first.id)
    third = store.add({"title": "Three"})

    assert [first.id, second.id, third.id] == ["a", "b", "c"]


@pytest.mark.parametrize("title", ["", "   ", None])
def test_blank_title_is_rejected(title) -> None:
    store, _ = make_store()

    with pytest.raises(InvalidTask):
        store.add({"title": title})
    assert len(store) == 0


def test_unknown_fields_and_bad_enums_are_rejected() -> None:
    store, _ = make_store()
    task = store.add({"title": "Essay"})

    with pytest.raises(InvalidTask):
        store.update(task.id, {"colour": "red"})
    with pytest.raises(InvalidTask):
        store.update(task.id, {"priority": "urgent"})
    with pytest.raises(InvalidTask):
        store.add({"title": "Run", "estimated_duration": -5})


def test_toggle_twice_restores_previous_status() -> None:
    store, _ = make_store()
    task = store.add({"title": "Lab report", "status": "in-progress"})

    completed = store.toggle_status(task.id)
    reopened = store.toggle_status(task.id)

    assert completed.status == TaskStatus.COMPLETED
    assert reopened.status == TaskStatus.IN_PROGRESS


def test_toggle_of_task_created_completed_reopens_as_pending() -> None:
    store, _ = make_store()
    task = store.add({"title": "Done already", "status": "completed"})

    assert store.toggle_status(task.id).status == TaskStatus.PENDING


def test_updated_at_never_precedes_created_at() -> None:
    store, clock = make_store()
    task = store.add({"title": "Clock skew"})

    clock.set(datetime(2026, 3, 9, 8, 0))
    updated = store.update(task.id, {"description": "moved"})

    assert updated.updated_at >= updated.created_at


def test_delete_unknown_task_raises() -> None:
    store, _ = make_store()

    with pytest.raises(NotFound):
        store.delete("missing")


def test_tags_are_normalized() -> None:
    store, _ = make_store()

    task = store.add({"title": "Quiz", "tags": "Math, exam,math, "})

    assert task.tags == ("math", "exam")


def test_reorder_changes_iteration_order_only() -> None:
    store, clock = make_store()
    first = store.add({"title": "First"})
    second = store.add({"title": "Second"})
    third = store.add({"title": "Third"})
    clock.advance(hours=1)

    store.reorder([third.id, first.id])

    tasks = store.list_tasks()
    assert [task.id for task in tasks] == [third.id, first.id, second.id]
    assert all(task.updated_at == NOON for task in tasks)
    with pytest.raises(NotFound):
        store.reorder(["nope"])


def test_subtasks_can_be_added_and_toggled() -> None:
    store, _ = make_store()
    task = store.add({"title": "Project", "subtasks": ["Outline"]})

    task = store.add_subtask(task.id, "Draft")
    task = store.toggle_subtask(task.id, 0)

    assert [subtask.text for subtask in task.subtasks] == ["Outline", "Draft"]
    assert task.subtask_progress == (1, 2)
    with pytest.raises(NotFound):
        store.toggle_subtask(task.id, 5)
    with pytest.raises(InvalidTask):
        store.add_subtask(task.id, "  ")


def test_due_buckets_follow_the_calendar_day() -> None:
    store, _ = make_store()
    overdue = store.add({"title": "Yesterday", "due_date": datetime(2026, 3, 9, 23, 59)})
    today_morning = store.add({"title": "This morning", "due_date": datetime(2026, 3, 10, 9, 0)})
    today_bare = store.add({"title": "Today", "due_date": date(2026, 3, 10)})
    upcoming = store.add({"title": "Soon", "due_date": datetime(2026, 3, 12, 10, 0)})
    store.add({"title": "Far", "due_date": datetime(2026, 6, 1)})
    store.add({"title": "Finished late", "due_date": datetime(2026, 3, 1), "status": "completed"})
    store.add({"title": "No date"})

    stats = store.stats()

    assert stats.overdue == 1
    assert stats.due_today == 2
    assert [task.id for task in store.overdue_tasks()] == [overdue.id]
    assert {task.id for task in store.tasks_due_today()} == {today_morning.id, today_bare.id}
    assert [task.id for task in store.upcoming_tasks()] == [upcoming.id]
    assert store.upcoming_tasks(within_days=1) == []


def test_stats_counts_statuses_and_rates() -> None:
    store, _ = make_store()
    store.add({"title": "A", "status": "completed"})
    store.add({"title": "B", "status": "in-progress"})
    store.add({"title": "C"})
    store.add({"title": "D"})

    stats = store.stats()

    assert (stats.total, stats.completed, stats.in_progress, stats.pending) == (4, 1, 1, 2)
    assert stats.total == len(store.filtered_tasks())
    assert stats.completion_rate == 25
    assert stats.productivity_score == 38


def test_filters_combine_and_search_is_case_insensitive() -> None:
    store, _ = make_store()
    algebra = store.add({"title": "Algebra homework", "category": "academic", "priority": "high"})
    store.add({"title": "Gym", "category": "personal", "tags": ["algebra-free"]})
    store.add({"title": "Standup", "category": "work", "description": "daily sync"})

    store.set_filter(search_query="ALG")
    assert len(store.filtered_tasks()) == 2

    store.set_filter({"category": "academic", "priority": "high"})
    assert [task.id for task in store.filtered_tasks()] == [algebra.id]

    store.set_filter(category="all", priority=None, search_query="SYNC")
    assert [task.title for task in store.filtered_tasks()] == ["Standup"]

    store.clear_filter()
    assert store.filters.is_empty
    assert len(store.filtered_tasks()) == 3


def test_invalid_filter_is_rejected() -> None:
    store, _ = make_store()

    with pytest.raises(InvalidTask):
        store.set_filter(status="archived")
    with pytest.raises(InvalidTask):
        store.set_filter(colour="red")


def test_completed_by_category_counts_only_completed() -> None:
    store, _ = make_store()
    store.add({"title": "Essay", "status": "completed"})
    store.add({"title": "Shift", "category": "work", "status": "completed"})
    store.add({"title": "Report", "category": "work", "status": "completed"})
    store.add({"title": "Run", "category": "personal"})

    counts = store.completed_by_category()

    assert counts[Category.WORK] == 2
    assert counts[Category.ACADEMIC] == 1
    assert counts[Category.PERSONAL] == 0


def test_search_for_the_word_all_is_a_real_search() -> None:
    store, _ = make_store()
    store.add({"title": "Call mom"})
    store.add({"title": "Essay"})

    store.set_filter(search_query="all")

    assert [task.title for task in store.filtered_tasks()] == ["Call mom"]
    assert store.filters.search_query == "all"


@pytest.mark.parametrize(
    "data",
    [
        {"title": "X", "subtasks": [{"text": None}]},
        {"title": "X", "subtasks": [{"text": 42}]},
        {"title": "X", "description": 7},
        {"title": 3},
    ],
)
def test_non_text_values_are_rejected(data: dict) -> None:
    store, _ = make_store()

    with pytest.raises(InvalidTask):
        store.add(data)
