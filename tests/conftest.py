"""Shared fixtures: every test gets its own database and data directory."""

from __future__ import annotations

from pathlib import Path
from typing import Iterator, List

import pytest

from yakstack.settings import Settings
from yakstack.store import TaskStore


@pytest.fixture()
def settings(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Settings:
    monkeypatch.setenv("YAKSTACK__APP_DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("YAKSTACK__DB_PATH", str(tmp_path / "yakstack.db"))
    monkeypatch.setenv("YAKSTACK__BUSY_TIMEOUT_SECONDS", "1")
    return Settings()


@pytest.fixture()
def store(settings: Settings) -> Iterator[TaskStore]:
    task_store = TaskStore(settings)
    yield task_store
    task_store.dispose()


class FakeSpawner:
    """Records worker command lines instead of starting processes."""

    def __init__(self, pid: int = 4242) -> None:
        self.pid = pid
        self.calls: List[List[str]] = []

    def __call__(self, argv: List[str]) -> int:
        self.calls.append(list(argv))
        return self.pid


class FakeNotifier:
    def __init__(self) -> None:
        self.messages: List[str] = []

    def notify(self, message: str) -> None:
        self.messages.append(message)


@pytest.fixture()
def spawner() -> FakeSpawner:
    return FakeSpawner()


@pytest.fixture()
def notifier() -> FakeNotifier:
    return FakeNotifier()
