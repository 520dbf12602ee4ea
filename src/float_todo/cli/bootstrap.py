# src/float_todo/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local data directories exist,
- wires storage, writer and controller into AppState.
"""

from __future__ import annotations

import logging

from ..config import get_settings
from ..core.controller import AppController
from ..core.state import AppState
from ..tasks.task_persistence import JsonTaskStorage, SnapshotWriter

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.tasks_path.parent.mkdir(parents=True, exist_ok=True)


def create_initial_state(*, settings=None) -> AppState:
    """
    Create AppState from the provided settings.

    The controller is constructed but not initialized; call
    state.controller.init() to load the task file.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    storage = JsonTaskStorage(settings.tasks_path)
    writer = SnapshotWriter(
        storage,
        background=bool(getattr(settings, "background_saves", False)),
        debounce_seconds=float(getattr(settings, "save_debounce_seconds", 0.0)),
    )
    controller = AppController(storage, writer)

    logger.debug("State wired (tasks_path=%s)", settings.tasks_path)
    return AppState(settings=settings, storage=storage, writer=writer, controller=controller)
