"""Command line behaviour through typer's CliRunner."""

from __future__ import annotations

import sqlite3
import time

import pytest
from typer.testing import CliRunner

from yakstack import cli
from yakstack.settings import Settings

runner = CliRunner()


@pytest.fixture()
def invoke(settings: Settings):
    def _invoke(*args: str):
        return runner.invoke(cli.app, ["--db", settings.db_path, *args])

    return _invoke


def test_push_and_ls(invoke) -> None:
    assert invoke("push", "write report").exit_code == 0
    assert invoke("push", "find printer driver").exit_code == 0

    result = invoke("ls")

    assert result.exit_code == 0
    assert result.output == "Stack: default\n0. write report\n1. find printer driver\n"


def test_pop_prints_the_finished_task(invoke) -> None:
    invoke("push", "a")
    invoke("push", "b")

    result = invoke("pop")

    assert result.exit_code == 0
    assert result.output == "b ✔️\n"


def test_pop_on_empty_stack_reports_no_tasks(invoke) -> None:
    result = invoke("pop")
    assert result.exit_code == 1
    assert "Error: no tasks!" in result.output


def test_pop_to_another_stack(invoke) -> None:
    invoke("push", "a")
    invoke("newstack", "work")

    assert invoke("pop", "work").exit_code == 0
    assert invoke("ls").output == "Stack: default\n"
    invoke("switchto", "work")
    assert invoke("ls").output == "Stack: work\n0. a\n"


def test_backpush_alias_and_insert(invoke) -> None:
    invoke("push", "a")
    invoke("push", "c")
    invoke("backpush", "z")
    assert invoke("insert", "1", "b").exit_code == 0
    assert invoke("ls").output == "Stack: default\n0. z\n1. a\n2. b\n3. c\n"


def test_swap_and_kill(invoke) -> None:
    for text in ("a", "b", "c"):
        invoke("push", text)

    assert invoke("swap", "0", "2").exit_code == 0
    killed = invoke("kill", "1")

    assert killed.exit_code == 0
    assert killed.output == "b ✘\n"
    assert invoke("ls").output == "Stack: default\n0. c\n1. a\n"


def test_task_errors_exit_with_their_status(invoke) -> None:
    invoke("push", "a")

    one = invoke("swap", "0", "4")
    both = invoke("swap", "3", "4")

    assert one.exit_code == 3
    assert "Error: task #4 doesn't exist" in one.output
    assert both.exit_code == 3
    assert "Error: tasks #3 and #4 don't exist" in both.output


def test_negative_index_is_a_task_error(invoke) -> None:
    invoke("push", "a")

    result = invoke("kill", "--", "-1")

    assert result.exit_code == 3
    assert "Error: task #-1 doesn't exist" in result.output
    assert invoke("ls").output == "Stack: default\n0. a\n"


def test_pop_help_describes_the_destination_stack(invoke) -> None:
    result = invoke("pop", "--help")

    assert result.exit_code == 0
    assert "stack to move the top task to" in result.output


def test_locked_store_exits_with_storage_status(invoke, settings: Settings) -> None:
    invoke("push", "a")
    other = sqlite3.connect(settings.db_path, isolation_level=None)
    other.execute("BEGIN EXCLUSIVE")
    try:
        result = invoke("push", "b")
    finally:
        other.execute("ROLLBACK")
        other.close()

    assert result.exit_code == 6
    assert "Error: database error" in result.output


def test_stack_commands(invoke) -> None:
    assert invoke("newstack", "work").exit_code == 0
    assert invoke("liststacks").output == "default\nwork\n"

    duplicate = invoke("newstack", "work")
    assert duplicate.exit_code == 2
    assert "Error: stack 'work' already exists" in duplicate.output

    missing = invoke("switchto", "nope")
    assert missing.exit_code == 2
    assert "Error: no such stack: 'nope'" in missing.output

    assert invoke("dropstack", "default").exit_code == 2
    assert invoke("dropstack", "work").exit_code == 0
    assert invoke("liststacks").output == "default\n"


def test_clear_and_clearall(invoke) -> None:
    invoke("push", "a")
    invoke("newstack", "work")
    invoke("switchto", "work")
    invoke("push", "w")

    assert invoke("clear").exit_code == 0
    assert invoke("ls").output == "Stack: work\n"
    invoke("switchto", "default")
    assert invoke("ls").output == "Stack: default\n0. a\n"
    assert invoke("clearall").exit_code == 0
    assert invoke("ls").output == "Stack: default\n"


def test_unique_prefix_selects_command(invoke) -> None:
    assert invoke("news", "work").exit_code == 0
    assert invoke("lists").output == "default\nwork\n"


def test_ambiguous_prefix_is_a_usage_error(invoke) -> None:
    result = invoke("p", "x")
    assert result.exit_code == 2
    assert "more than one command matches 'p'" in result.output


def test_unknown_command_is_a_usage_error(invoke) -> None:
    result = invoke("frobnicate")
    assert result.exit_code == 2
    assert "could not find command matching 'frobnicate'" in result.output


def test_remind_and_fire(invoke, monkeypatch: pytest.MonkeyPatch, spawner, notifier) -> None:
    monkeypatch.setattr("yakstack.scheduler.spawn_detached", spawner)
    monkeypatch.setattr(cli, "DesktopNotifier", lambda settings: notifier)
    monkeypatch.setattr(time, "sleep", lambda _seconds: None)
    invoke("push", "stretch")

    scheduled = invoke("remind", "0", "10m")

    assert scheduled.exit_code == 0
    reminder_id = scheduled.output.strip()
    assert spawner.calls[0][-1] == reminder_id
    assert reminder_id in invoke("reminders").output

    fired = invoke("fire-reminder", reminder_id)

    assert fired.exit_code == 0
    assert notifier.messages == ["stretch"]
    assert invoke("reminders").output == ""


def test_remind_rejects_bad_delay(invoke, monkeypatch: pytest.MonkeyPatch, spawner) -> None:
    monkeypatch.setattr("yakstack.scheduler.spawn_detached", spawner)
    invoke("push", "stretch")

    result = invoke("remind", "0", "tomorrow")

    assert result.exit_code == 4
    assert "Error: invalid reminder time: 'tomorrow'" in result.output
    assert spawner.calls == []


def test_fire_reminder_for_killed_task_exits_quietly(
    invoke, monkeypatch: pytest.MonkeyPatch, spawner, notifier
) -> None:
    monkeypatch.setattr("yakstack.scheduler.spawn_detached", spawner)
    monkeypatch.setattr(cli, "DesktopNotifier", lambda settings: notifier)
    invoke("push", "stretch")
    reminder_id = invoke("remind", "0", "5s").output.strip()
    invoke("kill", "0")

    result = invoke("fire-reminder", reminder_id)

    assert result.exit_code == 0
    assert notifier.messages == []
