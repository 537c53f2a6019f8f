from __future__ import annotations

import argparse
import logging
import signal
import sys
from datetime import datetime

from PySide6.QtCore import QCoreApplication
from sqlalchemy.exc import SQLAlchemyError

from studybuddy.config import SETTINGS
from studybuddy.domain.entities import Achievement, TaskEntity
from studybuddy.domain.enums import Category, Priority, TaskStatus, TimerMode
from studybuddy.domain.errors import NotFound, UnsupportedEnvironment
from studybuddy.domain.motivation import focus_quote
from studybuddy.domain.templates import TASK_TEMPLATES
from studybuddy.infra.db import init_db
from studybuddy.infra.logging import setup_logging
from studybuddy.infra.repository import SnapshotRepository
from studybuddy.infra.ticker import QtTickSource
from studybuddy.services.focus_timer import FocusTimer, PhaseCompletion, TimerSettings
from studybuddy.services.tracker import ActionResult, StudyTracker

logger = logging.getLogger(__name__)


def _parse_due(value: str) -> datetime:
    try:
        return datetime.fromisoformat(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid due date {value!r}, use YYYY-MM-DD[THH:MM]") from exc


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"expected a whole number, got {value!r}") from exc
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {number}")
    return number


def timer_settings(focus_minutes: int | None = None) -> TimerSettings:
    """Pomodoro lengths from the environment, optionally overriding the focus length."""
    return TimerSettings(
        focus_minutes=SETTINGS.focus_minutes if focus_minutes is None else focus_minutes,
        short_break_minutes=SETTINGS.short_break_minutes,
        long_break_minutes=SETTINGS.long_break_minutes,
        long_break_interval=SETTINGS.long_break_interval,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="studybuddy", description="Gamified task tracker")
    sub = parser.add_subparsers(dest="command", required=True)

    add = sub.add_parser("add", help="create a task")
    add.add_argument("title")
    add.add_argument("--description")
    add.add_argument("--priority", choices=[p.value for p in Priority], default=Priority.MEDIUM.value)
    add.add_argument("--category", choices=[c.value for c in Category], default=Category.ACADEMIC.value)
    add.add_argument("--due", type=_parse_due)
    add.add_argument("--tag", action="append", default=[])
    add.add_argument("--minutes", type=int, help="estimated duration")

    listing = sub.add_parser("list", help="show tasks")
    listing.add_argument("--status", choices=[s.value for s in TaskStatus])
    listing.add_argument("--category", choices=[c.value for c in Category])
    listing.add_argument("--priority", choices=[p.value for p in Priority])
    listing.add_argument("--search")

    done = sub.add_parser("done", help="toggle a task between completed and open")
    done.add_argument("task_id")

    delete = sub.add_parser("delete", help="delete a task")
    delete.add_argument("task_id")

    template = sub.add_parser("template", help="create a task from a template")
    template.add_argument("template_id", nargs="?", choices=[t.id for t in TASK_TEMPLATES])

    sub.add_parser("stats", help="show statistics, level and achievements")

    focus = sub.add_parser("focus", help="run one focus phase")
    focus.add_argument("--task", dest="task_id")
    focus.add_argument("--minutes", type=_positive_int, default=SETTINGS.focus_minutes)
    return parser


def _format_task(task: TaskEntity) -> str:
    mark = "x" if task.is_completed else ("~" if task.status == TaskStatus.IN_PROGRESS else " ")
    due = f" due {task.due_date:%Y-%m-%d %H:%M}" if task.due_date else ""
    tags = f" #{' #'.join(task.tags)}" if task.tags else ""
    return f"[{mark}] {task.id[:8]} {task.title} ({task.priority}, {task.category}){due}{tags}"


def _resolve_id(tracker: StudyTracker, prefix: str) -> str:
    matches = [task.id for task in tracker.store.list_tasks() if task.id.startswith(prefix)]
    if len(matches) != 1:
        raise NotFound(f"No single task matches {prefix!r}")
    return matches[0]


def _announce(achievement: Achievement) -> None:
    print(f"{achievement.icon} Achievement unlocked: {achievement.title} (+{achievement.reward.xp} XP)")


def _report(result: ActionResult) -> None:
    if result.task is not None:
        print(_format_task(result.task))
    if result.xp_awarded:
        print(f"+{result.xp_awarded} XP")


def _run_focus(tracker: StudyTracker, task_id: str | None, minutes: int) -> int:
    settings = timer_settings(minutes)
    app = QCoreApplication.instance() or QCoreApplication(sys.argv)
    with FocusTimer(settings, QtTickSource()) as timer:
        tracker.attach_timer(timer)
        record_phase = timer.on_phase_complete

        def on_phase_complete(completion: PhaseCompletion) -> None:
            record_phase(completion)
            print(f"Focus phase done. Next: {completion.next_mode.value}")
            app.quit()

        timer.on_phase_complete = on_phase_complete
        timer.bind_task(task_id)
        print(focus_quote(None))
        print(f"Focusing for {minutes} min. Ctrl+C to stop.")
        signal.signal(signal.SIGINT, lambda *_: app.quit())
        timer.start()
        app.exec()
        finished = timer.mode != TimerMode.FOCUS
    return 0 if finished else 1


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging()
    try:
        init_db()
    except SQLAlchemyError as exc:
        logger.error("Database unavailable: %s", exc)
        print(f"DB error: {exc}", file=sys.stderr)
        return 2

    tracker = StudyTracker.open(
        SnapshotRepository(),
        upcoming_days=SETTINGS.upcoming_days,
        notify=_announce,
        auto_complete_focus_task=SETTINGS.auto_complete_focus_task,
    )

    try:
        if args.command == "add":
            _report(tracker.add_task({
                "title": args.title,
                "description": args.description,
                "priority": args.priority,
                "category": args.category,
                "due_date": args.due,
                "tags": args.tag,
                "estimated_duration": args.minutes,
            }))
        elif args.command == "list":
            tracker.store.set_filter({
                "status": args.status,
                "category": args.category,
                "priority": args.priority,
                "search_query": args.search,
            })
            for task in tracker.store.filtered_tasks():
                print(_format_task(task))
        elif args.command == "done":
            _report(tracker.toggle_task(_resolve_id(tracker, args.task_id)))
        elif args.command == "delete":
            tracker.delete_task(_resolve_id(tracker, args.task_id))
        elif args.command == "template":
            if args.template_id is None:
                for template in TASK_TEMPLATES:
                    print(f"{template.id:15} {template.title}")
            else:
                _report(tracker.add_from_template(args.template_id))
        elif args.command == "stats":
            stats = tracker.stats()
            progress = tracker.progress
            print(
                f"Total: {stats.total} | Completed: {stats.completed} | In progress: {stats.in_progress} | "
                f"Pending: {stats.pending} | Overdue: {stats.overdue} | Today: {stats.due_today}"
            )
            print(f"Completion: {stats.completion_rate}% | Productivity: {stats.productivity_score}%")
            print(
                f"Level {progress.level} ({tracker.level_progress():.0f}% to next) | {progress.xp} XP | "
                f"Streak {progress.current_streak} (best {progress.longest_streak}) | "
                f"Focus {progress.study_time_minutes} min"
            )
            for achievement, unlocked in tracker.achievements():
                print(f"  {'✔' if unlocked else '·'} {achievement.icon} {achievement.title} [{achievement.rarity}]")
            print(tracker.motivational_message())
        elif args.command == "focus":
            task_id = _resolve_id(tracker, args.task_id) if args.task_id else None
            return _run_focus(tracker, task_id, args.minutes)
    except (ValueError, NotFound) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    except UnsupportedEnvironment as exc:
        print(f"Unavailable: {exc}", file=sys.stderr)
        return 3
    return 0


if __name__ == "__main__":
    sys.exit(main())
