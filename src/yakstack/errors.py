"""Error taxonomy shared by the store, the reminder subsystem and the CLI.

Every error carries the exit status the CLI terminates with, so callers never
need to map exception types to codes themselves.
"""

from __future__ import annotations

from sqlalchemy.exc import SQLAlchemyError


class YakstackError(Exception):
    """Base class for every failure reported to the user."""

    exit_code: int = 1


# ---------------------------------------------------------------------------
# Stacks


class StackError(YakstackError):
    exit_code = 2


class NoSuchStack(StackError):
    def __init__(self, name: str) -> None:
        super().__init__(f"no such stack: '{name}'")
        self.name = name


class StackAlreadyExists(StackError):
    def __init__(self, name: str) -> None:
        super().__init__(f"stack '{name}' already exists")
        self.name = name


class CantDeleteDefaultStack(StackError):
    def __init__(self) -> None:
        super().__init__("can't delete default stack")


class CantDeleteCurrentStack(StackError):
    def __init__(self) -> None:
        super().__init__("can't delete current stack")


# ---------------------------------------------------------------------------
# Tasks


class TaskError(YakstackError):
    exit_code = 3


class NoTasks(TaskError):
    """Empty stack on pop. Informational, hence the mildest exit status."""

    exit_code = 1

    def __init__(self) -> None:
        super().__init__("no tasks!")


class NoSuchTask(TaskError):
    def __init__(self, index: int) -> None:
        super().__init__(f"task #{index} doesn't exist")
        self.index = index


class NoSuchTasks(TaskError):
    def __init__(self, first: int, second: int) -> None:
        super().__init__(f"tasks #{first} and #{second} don't exist")
        self.indexes = (first, second)


# ---------------------------------------------------------------------------
# Reminders and environment


class InvalidReminderTime(YakstackError):
    exit_code = 4

    def __init__(self, spec: str) -> None:
        super().__init__(f"invalid reminder time: '{spec}'")
        self.spec = spec


class AppEnvironmentError(YakstackError):
    """The host cannot run the detached worker (no interpreter path, spawn failed)."""

    exit_code = 5


# ---------------------------------------------------------------------------
# Storage


class StorageError(YakstackError):
    exit_code = 6

    def __init__(self, cause: SQLAlchemyError) -> None:
        super().__init__(f"database error: {cause}")
        self.cause = cause


# ---------------------------------------------------------------------------
# Command resolution


class CommandError(YakstackError):
    exit_code = 2


class NoMatchingCommand(CommandError):
    def __init__(self, prefix: str) -> None:
        super().__init__(f"could not find command matching '{prefix}'")


class AmbiguousPrefix(CommandError):
    def __init__(self, prefix: str) -> None:
        super().__init__(f"more than one command matches '{prefix}'")
