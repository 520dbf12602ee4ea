# src/float_todo/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The controller depends on Protocols instead of concrete implementations,
so storage and renderers stay swappable and tests can pass in fakes.
"""

from pathlib import Path
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from ..tasks.task_models import PersistedSnapshot
    from .events import RenderModel


class TaskStorage(Protocol):
    """Durable storage for the whole task list (load once, save whole snapshots)."""

    def load(self) -> PersistedSnapshot: ...
    def save(self, snapshot: PersistedSnapshot) -> None: ...
    def quarantine(self) -> Path | None: ...


class SnapshotSink(Protocol):
    """Where the controller sends snapshots to be persisted (see SnapshotWriter)."""

    @property
    def failed(self) -> bool: ...

    last_error: Exception | None

    def submit(self, snapshot: PersistedSnapshot) -> None: ...
    def flush(self) -> bool: ...
    def close(self) -> bool: ...


class Renderer(Protocol):
    """Receives every render snapshot produced by the controller."""

    def __call__(self, model: RenderModel) -> None: ...
