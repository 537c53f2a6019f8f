from __future__ import annotations

from datetime import date, datetime

import pytest

from studybuddy.domain.entities import Achievement
from studybuddy.domain.enums import Category, TaskStatus
from studybuddy.domain.errors import NotFound
from studybuddy.infra.clock import FixedClock
from studybuddy.infra.repository import TASKS_SLOT
from studybuddy.services.focus_timer import FocusTimer, TimerSettings
from studybuddy.services.tracker import StudyTracker

AFTERNOON = datetime(2026, 3, 10, 14, 0)


class FakeRepo:
    def __init__(self) -> None:
        self.slots: dict[str, str] = {}

    def read(self, key: str) -> str | None:
        return self.slots.get(key)

    def write(self, key: str, payload: str) -> None:
        self.slots[key] = payload


def open_tracker(repo: FakeRepo | None = None, moment: datetime = AFTERNOON, **kwargs):
    repo = repo if repo is not None else FakeRepo()
    clock = FixedClock(moment)
    notified: list[Achievement] = []
    tracker = StudyTracker.open(repo, clock=clock, notify=notified.append, **kwargs)
    return tracker, clock, notified, repo


def test_creating_a_task_awards_xp() -> None:
    tracker, _, notified, _ = open_tracker()

    result = tracker.add_task({"title": "Read chapter 3"})

    assert result.xp_awarded == 5
    assert tracker.progress.xp == 5
    assert result.stats.total == 1
    assert result.unlocked == ()
    assert notified == []


def test_completion_unlocks_first_steps() -> None:
    tracker, _, notified, _ = open_tracker()
    task = tracker.add_task({"title": "Essay"}).task

    result = tracker.toggle_task(task.id)

    assert result.task.status == TaskStatus.COMPLETED
    assert [a.id for a in result.unlocked] == ["first-steps"]
    assert result.xp_awarded == 10 + 10
    assert tracker.progress.xp == 5 + 10 + 10
    assert tracker.progress.total_tasks_completed == 1
    assert tracker.progress.current_streak == 1
    assert [a.id for a in notified] == ["first-steps"]


def test_early_completion_earns_bonus() -> None:
    tracker, clock, _, _ = open_tracker(moment=datetime(2026, 3, 10, 6, 30))
    task = tracker.add_task({"title": "Morning run"}).task

    result = tracker.complete_task(task.id)

    assert result.xp_awarded == 35 + 10


def test_complete_task_leaves_completed_task_alone() -> None:
    tracker, _, _, _ = open_tracker()
    task = tracker.add_task({"title": "Done", "status": "completed"}).task
    xp = tracker.progress.xp

    result = tracker.complete_task(task.id)

    assert result.task.status == TaskStatus.COMPLETED
    assert result.xp_awarded == 0
    assert tracker.progress.xp == xp


def test_finishing_everything_due_today_is_a_perfect_day() -> None:
    tracker, _, notified, _ = open_tracker()
    first = tracker.add_task({"title": "Quiz", "due_date": date(2026, 3, 10)}).task
    second = tracker.add_task({"title": "Lab", "due_date": datetime(2026, 3, 10, 18, 0)}).task

    tracker.toggle_task(first.id)
    assert tracker.progress.perfect_days == 0

    result = tracker.toggle_task(second.id)

    assert tracker.progress.perfect_days == 1
    assert "perfect-day" in [a.id for a in result.unlocked]
    assert [a.id for a in notified] == ["first-steps", "perfect-day"]


def test_unlocks_are_notified_once() -> None:
    tracker, _, notified, _ = open_tracker()
    task = tracker.add_task({"title": "Essay"}).task

    tracker.toggle_task(task.id)
    tracker.toggle_task(task.id)
    tracker.toggle_task(task.id)

    assert [a.id for a in notified] == ["first-steps"]
    assert tracker.progress.xp == 5 + 10 + 10 + 10


def test_update_to_completed_counts_as_completion() -> None:
    tracker, _, _, _ = open_tracker()
    task = tracker.add_task({"title": "Shift", "category": "work"}).task

    result = tracker.update_task(task.id, {"status": "completed"})

    assert result.xp_awarded == 20
    assert tracker.progress.favorite_category == Category.WORK


def test_template_creates_task_due_tomorrow() -> None:
    tracker, _, _, _ = open_tracker()

    task = tracker.add_from_template("study-session").task

    assert task.title == "Study Session"
    assert task.category == Category.ACADEMIC
    assert task.estimated_duration == 60
    assert task.due_date == datetime(2026, 3, 11, 14, 0)
    with pytest.raises(NotFound):
        tracker.add_from_template("nap")


def test_delete_unknown_task_raises() -> None:
    tracker, _, _, _ = open_tracker()

    with pytest.raises(NotFound):
        tracker.delete_task("missing")


def test_state_survives_reopening() -> None:
    tracker, _, _, repo = open_tracker()
    first = tracker.add_task({"title": "First"}).task
    tracker.add_task({"title": "Second", "tags": ["exam"]})
    tracker.toggle_task(first.id)
    tracker.add_subtask(first.id, "Outline")

    reopened, _, notified, _ = open_tracker(repo)

    assert [task.title for task in reopened.store.list_tasks()] == ["First", "Second"]
    assert reopened.store.get_task(first.id).subtasks[0].text == "Outline"
    assert reopened.progress.xp == tracker.progress.xp
    assert reopened.progress.unlocked_achievements == {"first-steps"}
    assert notified == []


def test_corrupt_task_list_starts_empty() -> None:
    repo = FakeRepo()
    repo.write(TASKS_SLOT, "{broken")

    tracker, _, _, _ = open_tracker(repo)

    assert tracker.store.list_tasks() == []


def test_achievement_listing_marks_unlocked() -> None:
    tracker, _, _, _ = open_tracker()
    tracker.toggle_task(tracker.add_task({"title": "Essay"}).task.id)

    listing = dict((a.id, unlocked) for a, unlocked in tracker.achievements())

    assert listing["first-steps"] is True
    assert listing["task-master"] is False


def test_focus_session_adds_study_time_and_completes_task() -> None:
    tracker, _, _, _ = open_tracker()
    task = tracker.add_task({"title": "Revise notes"}).task
    timer = tracker.attach_timer(FocusTimer(TimerSettings(focus_minutes=1)))
    timer.bind_task(task.id)

    timer.start()
    for _ in range(60):
        timer.tick()

    assert tracker.progress.study_time_minutes == 1
    assert tracker.store.get_task(task.id).is_completed


def test_focus_auto_complete_can_be_disabled() -> None:
    tracker, _, _, _ = open_tracker(auto_complete_focus_task=False)
    task = tracker.add_task({"title": "Revise notes"}).task
    timer = tracker.attach_timer(FocusTimer(TimerSettings(focus_minutes=1)))
    timer.bind_task(task.id)

    timer.start()
    for _ in range(60):
        timer.tick()

    assert tracker.progress.study_time_minutes == 1
    assert not tracker.store.get_task(task.id).is_completed


def test_focus_on_deleted_task_is_ignored() -> None:
    tracker, _, _, _ = open_tracker()
    task = tracker.add_task({"title": "Gone"}).task
    timer = tracker.attach_timer(FocusTimer(TimerSettings(focus_minutes=1)))
    timer.bind_task(task.id)
    tracker.delete_task(task.id)

    timer.start()
    for _ in range(60):
        timer.tick()

    assert tracker.progress.study_time_minutes == 1


def test_motivational_message_is_deterministic_for_a_seed() -> None:
    tracker, _, _, _ = open_tracker()

    assert tracker.motivational_message(seed=3) == tracker.motivational_message(seed=3)
