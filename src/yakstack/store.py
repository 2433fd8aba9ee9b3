"""Ordered multi-stack task store.

Owns the stacks, tasks and current-stack pointer kept in SQLite. Every public
operation runs in exactly one transaction and reads the current stack inside
that transaction, so no operation ever acts on a stale pointer.

Positions (the indexes shown by ``ls``) are 0-based ranks by ascending
``task_order`` within one stack. They are derived on every call and never
cached, since any structural operation can shift them.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, List, Optional

from loguru import logger
from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from yakstack.db import create_store_engine, exclusive, init_db
from yakstack.errors import (
    CantDeleteCurrentStack,
    CantDeleteDefaultStack,
    NoSuchStack,
    NoSuchTask,
    NoSuchTasks,
    StackAlreadyExists,
    StorageError,
)
from yakstack.models import DEFAULT_STACK_ID, AppState, Reminder, Stack, Task
from yakstack.settings import Settings


@dataclass(frozen=True)
class PendingReminder:
    id: str
    delay: int
    task: str
    stack: str


class TaskStore:
    """
    SQLite-backed store of named task stacks.

    Stack directory: name/id resolution, the current-stack pointer and
    protection of the default stack.
    Sequencer: push, pushback, insert-after, pop, kill, swap, clear and
    moving the top task to another stack.

    Example:
        store = TaskStore(get_settings())
        store.push("write report")
        store.list_tasks()  # ["write report"]
    """

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self.engine = create_store_engine(settings)
        init_db(self.engine)
        self._session_factory = sessionmaker(bind=self.engine)
        self._exclusive_session_factory = sessionmaker(bind=exclusive(self.engine))
        logger.debug("TaskStore ready", db_path=settings.db_path)

    def dispose(self) -> None:
        """Close every pooled connection; the next call reopens the file."""
        self.engine.dispose()
        logger.debug("TaskStore connections released", db_path=self.settings.db_path)

    @contextmanager
    def transaction(self, *, exclusive: bool = False) -> Iterator[Session]:
        """Session bound to one transaction, committed on success.

        ``exclusive=True`` starts it with ``BEGIN EXCLUSIVE``, which keeps
        every other connection, readers included, out until it ends.
        """
        factory = self._exclusive_session_factory if exclusive else self._session_factory
        try:
            with factory.begin() as session:
                yield session
        except SQLAlchemyError as exc:
            logger.error("Store transaction failed", error=str(exc), exclusive=exclusive)
            raise StorageError(exc) from exc

    # --- Stack directory ---

    @staticmethod
    def current_stack_id_in(session: Session) -> int:
        return session.execute(select(AppState.stack_id)).scalar_one()

    @staticmethod
    def resolve_in(session: Session, name: str) -> int:
        stack_id = session.scalar(select(Stack.id).where(Stack.name == name))
        if stack_id is None:
            raise NoSuchStack(name)
        return stack_id

    def current_stack_id(self) -> int:
        with self.transaction() as session:
            return self.current_stack_id_in(session)

    def current_stack_name(self) -> str:
        with self.transaction() as session:
            stack_id = self.current_stack_id_in(session)
            return session.execute(select(Stack.name).where(Stack.id == stack_id)).scalar_one()

    def resolve(self, name: str) -> int:
        with self.transaction() as session:
            return self.resolve_in(session, name)

    def new_stack(self, name: str) -> int:
        with self.transaction() as session:
            if session.scalar(select(Stack.id).where(Stack.name == name)) is not None:
                raise StackAlreadyExists(name)
            stack = Stack(name=name)
            session.add(stack)
            session.flush()
            logger.info("Stack created", stack=name, stack_id=stack.id)
            return stack.id

    def switch_to(self, name: str) -> None:
        with self.transaction() as session:
            stack_id = self.resolve_in(session, name)
            session.execute(update(AppState).values(stack_id=stack_id))
            logger.info("Switched stack", stack=name, stack_id=stack_id)

    def drop_stack(self, name: str) -> None:
        with self.transaction() as session:
            current_id = self.current_stack_id_in(session)
            stack_id = self.resolve_in(session, name)
            if stack_id == DEFAULT_STACK_ID:
                raise CantDeleteDefaultStack()
            if stack_id == current_id:
                raise CantDeleteCurrentStack()
            removed = session.execute(delete(Task).where(Task.stack_id == stack_id)).rowcount
            session.execute(delete(Stack).where(Stack.id == stack_id))
            logger.info("Stack dropped", stack=name, stack_id=stack_id, tasks_removed=removed)

    def list_stacks(self) -> List[str]:
        with self.transaction() as session:
            return list(session.scalars(select(Stack.name).order_by(Stack.id)))

    # --- Sequencer ---

    @staticmethod
    def _ranked(stack_id: int):
        # Keys are distinct within a stack; id only makes the order total.
        return (
            select(Task)
            .where(Task.stack_id == stack_id)
            .order_by(Task.task_order, Task.id)
        )

    @staticmethod
    def count_in(session: Session, stack_id: int) -> int:
        return session.execute(
            select(func.count(Task.id)).where(Task.stack_id == stack_id)
        ).scalar_one()

    def task_at(self, session: Session, stack_id: int, index: int) -> Task:
        if index < 0:
            raise NoSuchTask(index)
        task = session.scalars(self._ranked(stack_id).offset(index).limit(1)).first()
        if task is None:
            raise NoSuchTask(index)
        return task

    def task_id_at(self, session: Session, stack_id: int, index: int) -> int:
        """Map a 0-based position in ``stack_id`` to a task identifier."""
        return self.task_at(session, stack_id, index).id

    def _top(self, session: Session, stack_id: int) -> Optional[Task]:
        return session.scalars(
            select(Task)
            .where(Task.stack_id == stack_id)
            .order_by(Task.task_order.desc(), Task.id.desc())
            .limit(1)
        ).first()

    @staticmethod
    def _append(session: Session, stack_id: int, text: str, *, bottom: bool) -> int:
        edge = func.min(Task.task_order) if bottom else func.max(Task.task_order)
        current = session.scalar(select(edge).where(Task.stack_id == stack_id))
        if current is None:
            order = 1
        else:
            order = current - 1 if bottom else current + 1
        task = Task(task=text, task_order=order, stack_id=stack_id)
        session.add(task)
        session.flush()
        logger.debug(
            "Task added",
            task_id=task.id,
            stack_id=stack_id,
            task_order=order,
            bottom=bottom,
        )
        return task.id

    def push(self, text: str) -> int:
        """Put ``text`` on top of the current stack. Returns the task id."""
        with self.transaction() as session:
            return self._append(session, self.current_stack_id_in(session), text, bottom=False)

    def pushback(self, text: str) -> int:
        """Put ``text`` at the bottom of the current stack. Returns the task id."""
        with self.transaction() as session:
            return self._append(session, self.current_stack_id_in(session), text, bottom=True)

    def insert_after(self, index: int, text: str) -> int:
        """Insert ``text`` right after position ``index`` of the current stack.

        Position 0 behaves as pushback and the last position as push. In
        between, every key from the insertion point up moves by one to free
        the slot, so keys stay distinct and earlier tasks keep their order.
        """
        with self.transaction() as session:
            stack_id = self.current_stack_id_in(session)
            count = self.count_in(session, stack_id)
            if index < 0 or index >= count:
                raise NoSuchTask(index)
            if index == 0:
                return self._append(session, stack_id, text, bottom=True)
            if index == count - 1:
                return self._append(session, stack_id, text, bottom=False)

            order = self.task_at(session, stack_id, index).task_order + 1
            session.execute(
                update(Task)
                .where(Task.stack_id == stack_id, Task.task_order >= order)
                .values(task_order=Task.task_order + 1)
                .execution_options(synchronize_session=False)
            )
            task = Task(task=text, task_order=order, stack_id=stack_id)
            session.add(task)
            session.flush()
            logger.debug("Task inserted", task_id=task.id, stack_id=stack_id, index=index)
            return task.id

    def pop(self) -> Optional[str]:
        """Remove and return the top task, or None when the stack is empty."""
        with self.transaction() as session:
            stack_id = self.current_stack_id_in(session)
            task = self._top(session, stack_id)
            if task is None:
                return None
            text = task.task
            session.delete(task)
            logger.debug("Task popped", task_id=task.id, stack_id=stack_id)
            return text

    def pop_to(self, destination: str) -> Optional[str]:
        """Move the top task to ``destination``. No-op on an empty stack.

        The task keeps its key unless the destination already uses it, in
        which case it goes on top of the destination.
        """
        with self.transaction() as session:
            stack_id = self.current_stack_id_in(session)
            destination_id = self.resolve_in(session, destination)
            task = self._top(session, stack_id)
            if task is None:
                logger.debug("Nothing to move", stack_id=stack_id, destination=destination)
                return None
            if destination_id != stack_id:
                taken = session.scalar(
                    select(func.count())
                    .select_from(Task)
                    .where(Task.stack_id == destination_id, Task.task_order == task.task_order)
                )
                if taken:
                    top = session.scalar(
                        select(func.max(Task.task_order)).where(Task.stack_id == destination_id)
                    )
                    task.task_order = top + 1
            task.stack_id = destination_id
            logger.info(
                "Task moved",
                task_id=task.id,
                from_stack_id=stack_id,
                to_stack_id=destination_id,
            )
            return task.task

    def kill(self, index: int) -> str:
        """Delete the task at ``index`` and return its text."""
        with self.transaction() as session:
            stack_id = self.current_stack_id_in(session)
            task = self.task_at(session, stack_id, index)
            text = task.task
            session.delete(task)
            logger.info("Task killed", task_id=task.id, stack_id=stack_id, index=index)
            return text

    def swap(self, first: int, second: int) -> None:
        """Exchange the keys of two positions. Task ids stay put."""
        with self.transaction() as session:
            stack_id = self.current_stack_id_in(session)
            count = self.count_in(session, stack_id)
            first_bad = first < 0 or first >= count
            second_bad = second < 0 or second >= count
            if first_bad and second_bad:
                raise NoSuchTasks(first, second)
            if first_bad:
                raise NoSuchTask(first)
            if second_bad:
                raise NoSuchTask(second)
            if first == second:
                return

            a = self.task_at(session, stack_id, first)
            b = self.task_at(session, stack_id, second)
            a.task_order, b.task_order = b.task_order, a.task_order
            logger.debug("Tasks swapped", stack_id=stack_id, task_ids=(a.id, b.id))

    def clear(self) -> int:
        with self.transaction() as session:
            stack_id = self.current_stack_id_in(session)
            removed = session.execute(delete(Task).where(Task.stack_id == stack_id)).rowcount
            logger.info("Stack cleared", stack_id=stack_id, tasks_removed=removed)
            return removed

    def clear_all(self) -> int:
        with self.transaction() as session:
            removed = session.execute(delete(Task)).rowcount
            logger.info("All stacks cleared", tasks_removed=removed)
            return removed

    def list_tasks(self) -> List[str]:
        with self.transaction() as session:
            stack_id = self.current_stack_id_in(session)
            return [task.task for task in session.scalars(self._ranked(stack_id))]

    def task_count(self) -> int:
        with self.transaction() as session:
            return self.count_in(session, self.current_stack_id_in(session))

    # --- Reminders ---

    def pending_reminders(self) -> List[PendingReminder]:
        with self.transaction() as session:
            rows = session.execute(
                select(Reminder.id, Reminder.delay, Task.task, Stack.name)
                .join(Task, Reminder.task_id == Task.id)
                .join(Stack, Task.stack_id == Stack.id)
                .order_by(Stack.id, Task.task_order)
            )
            return [
                PendingReminder(id=reminder_id, delay=delay, task=text, stack=stack_name)
                for reminder_id, delay, text, stack_name in rows
            ]
