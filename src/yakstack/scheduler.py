"""Reminder scheduling: record the reminder, then hand it to a detached worker.

The worker is a second run of this program (``yakstack.cli`` with the
internal reminder subcommand) that only talks to us through the database.
The reminder row is inserted and the worker spawned inside one exclusive
transaction, committed only once the spawn call returned. A failed spawn
therefore leaves no reminder behind, and concurrent scheduling calls (or any
other writer) are serialized around the handoff.
"""

from __future__ import annotations

import subprocess
import sys
from typing import Any, Callable, List, Optional

from loguru import logger

from yakstack.errors import AppEnvironmentError
from yakstack.models import Reminder, new_reminder_id
from yakstack.reminder_time import parse_delay
from yakstack.settings import Settings
from yakstack.store import TaskStore

Spawner = Callable[[List[str]], Any]

REMINDER_COMMAND = "fire-reminder"


def worker_command(settings: Settings, reminder_id: str) -> List[str]:
    """Command line re-invoking this program as the reminder worker."""
    executable = sys.executable
    if not executable:
        raise AppEnvironmentError("could not determine the path of the running executable")
    return [
        executable,
        "-m",
        "yakstack.cli",
        "--db",
        settings.db_path,
        REMINDER_COMMAND,
        reminder_id,
    ]


def spawn_detached(argv: List[str]) -> int:
    """Start ``argv`` detached from this process and return its pid.

    No standard streams are inherited and the child is never waited on.
    """
    kwargs: dict = {
        "stdin": subprocess.DEVNULL,
        "stdout": subprocess.DEVNULL,
        "stderr": subprocess.DEVNULL,
        "close_fds": True,
    }
    if sys.platform != "win32":
        kwargs["start_new_session"] = True
    else:
        kwargs["creationflags"] = (
            subprocess.CREATE_NEW_PROCESS_GROUP | subprocess.DETACHED_PROCESS
        )

    try:
        process = subprocess.Popen(argv, **kwargs)
    except OSError as exc:
        raise AppEnvironmentError(f"could not start reminder worker: {exc}") from exc
    return process.pid


class ReminderScheduler:
    def __init__(
        self,
        store: TaskStore,
        settings: Settings,
        spawn: Optional[Spawner] = None,
    ) -> None:
        self.store = store
        self.settings = settings
        self._spawn = spawn or spawn_detached

    def schedule_reminder(self, index: int, delay_spec: str) -> str:
        """Remind about the task at ``index`` of the current stack after ``delay_spec``.

        Returns the reminder id handed to the worker.
        """
        reminder_id = new_reminder_id()
        with self.store.transaction(exclusive=True) as session:
            stack_id = self.store.current_stack_id_in(session)
            task_id = self.store.task_id_at(session, stack_id, index)
            delay = parse_delay(delay_spec)
            argv = worker_command(self.settings, reminder_id)

            session.add(Reminder(id=reminder_id, delay=delay, task_id=task_id))
            session.flush()
            pid = self._spawn(argv)
            logger.info(
                "Reminder scheduled",
                reminder_id=reminder_id,
                task_id=task_id,
                delay=delay,
                worker_pid=pid,
            )
        return reminder_id
