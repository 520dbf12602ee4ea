# src/float_todo/core/events.py

"""
UI events (input) and render snapshots (output).

The renderer/window layer decodes raw input into these events; the controller
answers each one with a RenderModel. Both sides are frozen so neither can
mutate what the other holds.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum

from ..tasks.task_models import Task, TaskId


@dataclass(slots=True, frozen=True)
class AddItem:
    text: str


@dataclass(slots=True, frozen=True)
class ToggleItem:
    id: TaskId


@dataclass(slots=True, frozen=True)
class EditItem:
    id: TaskId
    text: str


@dataclass(slots=True, frozen=True)
class DeleteItem:
    id: TaskId


@dataclass(slots=True, frozen=True)
class Quit:
    pass


@dataclass(slots=True, frozen=True)
class WindowShown:
    """Window became visible; re-render without changing anything."""


@dataclass(slots=True, frozen=True)
class WindowClosed:
    """Window manager closed the window; same as Quit."""


UIEvent = AddItem | ToggleItem | EditItem | DeleteItem | Quit | WindowShown | WindowClosed

TERMINAL_EVENTS = (Quit, WindowClosed)


class ControllerState(StrEnum):
    LOADING = "loading"
    READY = "ready"
    SHUTTING_DOWN = "shutting_down"


@dataclass(slots=True, frozen=True)
class RenderItem:
    id: TaskId
    text: str
    completed: bool

    @classmethod
    def from_task(cls, task: Task) -> RenderItem:
        return cls(id=task.id, text=task.text, completed=task.completed)


@dataclass(slots=True, frozen=True)
class RenderModel:
    """
    What the renderer should show right now.

    notice:  transient, shown in exactly one render
    warning: persistent, shown until the condition clears
    """

    items: tuple[RenderItem, ...] = field(default_factory=tuple)
    notice: str | None = None
    warning: str | None = None
    state: ControllerState = ControllerState.READY

    @property
    def open_count(self) -> int:
        return sum(1 for item in self.items if not item.completed)

    @property
    def finished(self) -> bool:
        return self.state == ControllerState.SHUTTING_DOWN
