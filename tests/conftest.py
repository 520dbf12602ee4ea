# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from float_todo.cli.bootstrap import create_initial_state
from float_todo.core.state import AppState
from float_todo.tasks.task_persistence import JsonTaskStorage

from .fakes import FakeClock


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with bootstrap/connectors.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated from the environment and any .env file.
    """
    data_dir = tmp_path / "data"
    return SimpleNamespace(
        app_name="float-todo-test",
        log_level="DEBUG",
        data_dir=data_dir,
        tasks_path=data_dir / "tasks.json",
        log_dir=tmp_path / "logs",
        background_saves=False,
        save_debounce_seconds=0.0,
    )


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def storage(settings: SimpleNamespace) -> JsonTaskStorage:
    return JsonTaskStorage(settings.tasks_path)


@pytest.fixture()
def state(settings: SimpleNamespace) -> AppState:
    """
    AppState wired the same way the CLI does it (real JSON file in tmp_path),
    with synchronous saves so assertions can read the file right away.
    """
    return create_initial_state(settings=settings)
