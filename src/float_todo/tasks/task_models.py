# tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass, field

TaskId = int

SCHEMA_VERSION = 1


@dataclass(slots=True, frozen=True)
class Task:
    id: TaskId
    text: str
    completed: bool
    created_at: float
    updated_at: float

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "text": self.text,
            "completed": self.completed,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


@dataclass(slots=True, frozen=True)
class PersistedSnapshot:
    """
    Durable form of the task list at one point in time.

    next_id is stored alongside the tasks so ids stay unique across restarts,
    including ids of tasks that were deleted before the last save.
    """

    next_id: TaskId = 1
    tasks: tuple[Task, ...] = field(default_factory=tuple)
    version: int = SCHEMA_VERSION

    def to_dict(self) -> dict[str, object]:
        return {
            "version": SCHEMA_VERSION,
            "next_id": self.next_id,
            "tasks": [t.to_dict() for t in self.tasks],
        }
