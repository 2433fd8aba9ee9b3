"""Reminder worker, run in the detached process the scheduler starts.

Cancelling a reminder means deleting its task: the reminder row goes with it
by cascade, and the worker finds nothing to fire when it wakes up.
"""

from __future__ import annotations

import time
from typing import Callable, Optional, Protocol

from loguru import logger
from sqlalchemy import delete, select

from yakstack.models import Reminder, Task
from yakstack.store import TaskStore


class Notifier(Protocol):
    def notify(self, message: str) -> None: ...


class ReminderWorker:
    def __init__(
        self,
        store: TaskStore,
        notifier: Notifier,
        sleep: Optional[Callable[[float], None]] = None,
    ) -> None:
        self.store = store
        self.notifier = notifier
        self._sleep = sleep or time.sleep

    def run(self, reminder_id: str) -> Optional[str]:
        """Wait out the reminder's delay, consume it and notify.

        Returns the notified task text, or None when the reminder or its task
        disappeared in the meantime.
        """
        with self.store.transaction() as session:
            delay = session.scalar(select(Reminder.delay).where(Reminder.id == reminder_id))
        if delay is None:
            logger.info("Reminder already gone, nothing to do", reminder_id=reminder_id)
            return None

        # No connection may stay open (or locked) for the whole delay.
        self.store.dispose()
        logger.info("Reminder waiting", reminder_id=reminder_id, delay=delay)
        self._sleep(delay)

        text = self._consume(reminder_id)
        if text is None:
            logger.info("Reminder cancelled before firing", reminder_id=reminder_id)
            return None

        self.notifier.notify(text)
        logger.info("Reminder fired", reminder_id=reminder_id)
        return text

    def _consume(self, reminder_id: str) -> Optional[str]:
        with self.store.transaction(exclusive=True) as session:
            text = session.scalar(
                select(Task.task)
                .join(Reminder, Reminder.task_id == Task.id)
                .where(Reminder.id == reminder_id)
            )
            if text is None:
                return None
            session.execute(delete(Reminder).where(Reminder.id == reminder_id))
            return text
