"""yakstack command line: a yak-shaving stack of tasks.

Commands can be abbreviated to any unique prefix (``yakstack sw 0 1``).
"""

import functools
from typing import Optional

import click
import typer
from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from typer.core import TyperGroup

from yakstack.errors import AmbiguousPrefix, NoMatchingCommand, NoTasks, StorageError, YakstackError
from yakstack.logging_config import setup_logging
from yakstack.notifications import DesktopNotifier
from yakstack.scheduler import REMINDER_COMMAND, ReminderScheduler
from yakstack.settings import Settings, get_settings
from yakstack.store import TaskStore
from yakstack.worker import ReminderWorker


class PrefixGroup(TyperGroup):
    """Resolves a command from any unique prefix of a visible command name."""

    def get_command(self, ctx: click.Context, cmd_name: str) -> Optional[click.Command]:
        command = super().get_command(ctx, cmd_name)
        if command is not None:
            return command
        matches = [
            name
            for name in self.list_commands(ctx)
            if name.startswith(cmd_name) and not self.commands[name].hidden
        ]
        if not matches:
            ctx.fail(str(NoMatchingCommand(cmd_name)))
        if len(matches) > 1:
            ctx.fail(str(AmbiguousPrefix(cmd_name)))
        return super().get_command(ctx, matches[0])


app = typer.Typer(
    cls=PrefixGroup,
    name="yakstack",
    help="yak-shaving stack",
    no_args_is_help=True,
    add_completion=False,
    pretty_exceptions_enable=False,
)


def _fail(error: YakstackError) -> None:
    logger.debug("Command failed", error=str(error), kind=type(error).__name__)
    typer.echo(f"Error: {error}", err=True)
    raise typer.Exit(code=error.exit_code)


def reports_errors(func):
    """Turn yakstack errors into ``Error: ...`` on stderr and their exit status."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except YakstackError as exc:
            _fail(exc)
        except SQLAlchemyError as exc:
            _fail(StorageError(exc))

    return wrapper


def _settings(ctx: typer.Context) -> Settings:
    return ctx.obj


def _store(ctx: typer.Context) -> TaskStore:
    return TaskStore(_settings(ctx))


@app.callback()
def main_callback(
    ctx: typer.Context,
    db: Optional[str] = typer.Option(
        None, "--db", help="Database file to use instead of the configured one"
    ),
) -> None:
    settings = get_settings()
    if db is not None:
        settings = settings.model_copy(update={"db_path": db})
    setup_logging(settings)
    ctx.obj = settings


# --- Tasks ---


@app.command("push")
@reports_errors
def push(ctx: typer.Context, task: str = typer.Argument(..., help="task description")):
    """Push a task onto the stack"""
    _store(ctx).push(task)


@app.command("pushback")
@app.command("backpush", hidden=True)
@reports_errors
def pushback(ctx: typer.Context, task: str = typer.Argument(..., help="task description")):
    """Push a task onto the bottom of the stack"""
    _store(ctx).pushback(task)


@app.command("insert")
@reports_errors
def insert(
    ctx: typer.Context,
    index: int = typer.Argument(..., help="position to insert after"),
    task: str = typer.Argument(..., help="task description"),
):
    """Insert a task right after the task at INDEX"""
    _store(ctx).insert_after(index, task)


@app.command("pop")
@reports_errors
def pop(
    ctx: typer.Context,
    stack: Optional[str] = typer.Argument(None, help="stack to move the top task to"),
):
    """Pop a task from the top of the stack, or move it onto another stack"""
    store = _store(ctx)
    if stack is not None:
        store.pop_to(stack)
        return
    task = store.pop()
    if task is None:
        raise NoTasks()
    typer.echo(f"{task} ✔️")


@app.command("ls")
@reports_errors
def ls(ctx: typer.Context):
    """List all tasks"""
    store = _store(ctx)
    typer.echo(f"Stack: {store.current_stack_name()}")
    for index, task in enumerate(store.list_tasks()):
        typer.echo(f"{index}. {task}")


@app.command("swap")
@reports_errors
def swap(
    ctx: typer.Context,
    task1: int = typer.Argument(..., help="first task"),
    task2: int = typer.Argument(..., help="second task"),
):
    """Swap two tasks"""
    _store(ctx).swap(task1, task2)


@app.command("kill")
@reports_errors
def kill(ctx: typer.Context, index: int = typer.Argument(..., help="task to delete")):
    """Delete a task anywhere in the stack"""
    task = _store(ctx).kill(index)
    typer.echo(f"{task} ✘")


@app.command("clear")
@reports_errors
def clear(ctx: typer.Context):
    """Clear all tasks on the current stack"""
    _store(ctx).clear()


@app.command("clearall")
@reports_errors
def clearall(ctx: typer.Context):
    """Clear all tasks from all stacks"""
    _store(ctx).clear_all()


# --- Stacks ---


@app.command("newstack")
@reports_errors
def newstack(ctx: typer.Context, name: str = typer.Argument(..., help="name of the stack")):
    """Create a new stack"""
    _store(ctx).new_stack(name)


@app.command("switchto")
@reports_errors
def switchto(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="name of the stack to switch to"),
):
    """Switch to another stack"""
    _store(ctx).switch_to(name)


@app.command("dropstack")
@reports_errors
def dropstack(
    ctx: typer.Context,
    name: str = typer.Argument(
        ..., help="name of the stack to drop. Must not be default or current stack"
    ),
):
    """Drop a stack"""
    _store(ctx).drop_stack(name)


@app.command("liststacks")
@reports_errors
def liststacks(ctx: typer.Context):
    """List all stacks"""
    for name in _store(ctx).list_stacks():
        typer.echo(name)


# --- Reminders ---


@app.command("remind")
@reports_errors
def remind(
    ctx: typer.Context,
    index: int = typer.Argument(..., help="task to be reminded of"),
    delay: str = typer.Argument(..., help="delay such as 1h30m, 45m or 90s"),
):
    """Show a desktop notification for a task after a delay"""
    settings = _settings(ctx)
    reminder_id = ReminderScheduler(_store(ctx), settings).schedule_reminder(index, delay)
    typer.echo(reminder_id)


@app.command("reminders")
@reports_errors
def reminders(ctx: typer.Context):
    """List reminders that have not fired yet"""
    for reminder in _store(ctx).pending_reminders():
        typer.echo(f"{reminder.id}  {reminder.delay}s  [{reminder.stack}] {reminder.task}")


@app.command(REMINDER_COMMAND, hidden=True)
@reports_errors
def fire_reminder(ctx: typer.Context, reminder_id: str = typer.Argument(...)):
    """Wait for a reminder's delay and show it (started by remind)"""
    settings = _settings(ctx)
    worker = ReminderWorker(_store(ctx), DesktopNotifier(settings))
    try:
        worker.run(reminder_id)
    except YakstackError:
        raise
    except Exception:
        logger.exception("Reminder worker failed", reminder_id=reminder_id)
        raise


def main() -> None:
    app()


if __name__ == "__main__":
    main()
