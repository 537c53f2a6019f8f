from __future__ import annotations

from dataclasses import replace

import pytest

from studybuddy import main as cli
from studybuddy.infra.codec import decode_tasks
from studybuddy.infra.repository import TASKS_SLOT


class FakeRepo:
    def __init__(self) -> None:
        self.slots: dict[str, str] = {}

    def read(self, key: str) -> str | None:
        return self.slots.get(key)

    def write(self, key: str, payload: str) -> None:
        self.slots[key] = payload


@pytest.fixture
def repo(monkeypatch) -> FakeRepo:
    repo = FakeRepo()
    monkeypatch.setattr(cli, "setup_logging", lambda: None)
    monkeypatch.setattr(cli, "init_db", lambda: None)
    monkeypatch.setattr(cli, "SnapshotRepository", lambda: repo)
    return repo


def test_add_list_and_complete(repo: FakeRepo, capsys) -> None:
    assert cli.main(["add", "Essay draft", "--tag", "English", "--priority", "high"]) == 0
    assert "+5 XP" in capsys.readouterr().out

    task_id = decode_tasks(repo.slots[TASKS_SLOT])[0].id
    assert cli.main(["list", "--search", "essay"]) == 0
    assert "Essay draft" in capsys.readouterr().out

    assert cli.main(["done", task_id[:6]]) == 0
    out = capsys.readouterr().out
    assert "[x]" in out
    assert "First Steps" in out


def test_unknown_task_id_fails(repo: FakeRepo, capsys) -> None:
    assert cli.main(["delete", "nope"]) == 1
    assert "No single task" in capsys.readouterr().err


def test_template_listing_and_creation(repo: FakeRepo, capsys) -> None:
    assert cli.main(["template"]) == 0
    assert "exam-prep" in capsys.readouterr().out

    assert cli.main(["template", "reading"]) == 0
    assert len(decode_tasks(repo.slots[TASKS_SLOT])) == 1


def test_stats_reports_level(repo: FakeRepo, capsys) -> None:
    cli.main(["add", "One"])
    capsys.readouterr()

    assert cli.main(["stats"]) == 0
    out = capsys.readouterr().out
    assert "Total: 1" in out
    assert "Level 1" in out


def test_timer_settings_follow_environment(monkeypatch) -> None:
    monkeypatch.setattr(cli, "SETTINGS", replace(cli.SETTINGS, short_break_minutes=7, long_break_interval=2))

    timer = cli.timer_settings(50)

    assert timer.focus_minutes == 50
    assert timer.short_break_minutes == 7
    assert timer.long_break_interval == 2
    assert cli.timer_settings().focus_minutes == cli.SETTINGS.focus_minutes


@pytest.mark.parametrize("minutes", ["0", "-3", "ten"])
def test_focus_rejects_non_positive_minutes(repo: FakeRepo, minutes: str) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["focus", "--minutes", minutes])
    assert excinfo.value.code == 2


def test_focus_reports_bad_pomodoro_settings(repo: FakeRepo, monkeypatch, capsys) -> None:
    monkeypatch.setattr(cli, "SETTINGS", replace(cli.SETTINGS, long_break_minutes=0))

    assert cli.main(["focus", "--minutes", "5"]) == 1
    assert "long_break_minutes" in capsys.readouterr().err
