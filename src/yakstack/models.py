import uuid

from sqlalchemy import Column, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()

DEFAULT_STACK_ID = 1
DEFAULT_STACK_NAME = "default"


def new_reminder_id() -> str:
    return uuid.uuid4().hex


# --- Models ---
class Stack(Base):
    __tablename__ = "stacks"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False, unique=True)

    tasks = relationship("Task", back_populates="stack", passive_deletes=True)


class AppState(Base):
    """Singleton row pointing at the current stack."""

    __tablename__ = "app_state"

    id = Column(Integer, primary_key=True)
    stack_id = Column(Integer, ForeignKey("stacks.id"), nullable=False)


class Task(Base):
    __tablename__ = "tasks"
    # Not unique: insert-after shifts keys in place and SQLite checks
    # uniqueness row by row during an UPDATE.
    __table_args__ = (Index("tasks_ix", "stack_id", "task_order"),)

    id = Column(Integer, primary_key=True)
    task = Column(Text, nullable=False)
    task_order = Column(Integer, nullable=False)
    stack_id = Column(Integer, ForeignKey("stacks.id"), nullable=False)

    stack = relationship("Stack", back_populates="tasks")
    reminders = relationship("Reminder", back_populates="task", passive_deletes=True)


class Reminder(Base):
    __tablename__ = "reminders"

    id = Column(String(32), primary_key=True, default=new_reminder_id)
    delay = Column(Integer, nullable=False)
    task_id = Column(
        Integer, ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True
    )

    task = relationship("Task", back_populates="reminders")
