# tasks/task_store.py

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import replace

from ..core.errors import NotFoundError, ValidationError
from .task_models import PersistedSnapshot, Task, TaskId

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


def _clean_text(text: str) -> str:
    cleaned = (text or "").strip()
    if not cleaned:
        raise ValidationError("Task text cannot be empty.")
    try:
        cleaned.encode("utf-8")
    except UnicodeEncodeError as exc:
        # Lone surrogates would make every later save of the file fail.
        raise ValidationError("Task text contains characters that cannot be saved.") from exc
    return cleaned


class TaskStore:
    """
    In-memory ordered task list.

    - records are frozen; mutations swap in a replacement record
    - every operation validates before touching state, so a failed call
      leaves the store exactly as it was
    - ids come from a counter that only moves forward (never reused)
    - timestamps never go backwards, even if the wall clock does
    """

    def __init__(
        self,
        tasks: tuple[Task, ...] | list[Task] = (),
        *,
        next_id: TaskId = 1,
        clock: Clock = time.time,
    ) -> None:
        self._tasks: list[Task] = []
        self._index: dict[TaskId, int] = {}
        self._clock = clock
        self._last_ts = 0.0
        self._dirty = False

        for task in tasks:
            if task.id in self._index:
                raise ValueError(f"duplicate task id {task.id}")
            self._index[task.id] = len(self._tasks)
            self._tasks.append(task)
            self._last_ts = max(self._last_ts, task.created_at, task.updated_at)

        highest = max(self._index, default=0)
        self._next_id = max(int(next_id), highest + 1)

    @classmethod
    def from_snapshot(cls, snapshot: PersistedSnapshot, *, clock: Clock = time.time) -> TaskStore:
        return cls(snapshot.tasks, next_id=snapshot.next_id, clock=clock)

    # ---- helpers ----

    def _now(self) -> float:
        ts = max(float(self._clock()), self._last_ts)
        self._last_ts = ts
        return ts

    def _position(self, task_id: TaskId) -> int:
        pos = self._index.get(task_id)
        if pos is None:
            raise NotFoundError(task_id)
        return pos

    def _reindex(self) -> None:
        self._index = {t.id: i for i, t in enumerate(self._tasks)}

    # ---- queries ----

    @property
    def next_id(self) -> TaskId:
        return self._next_id

    @property
    def dirty(self) -> bool:
        return self._dirty

    def mark_clean(self) -> None:
        self._dirty = False

    def __len__(self) -> int:
        return len(self._tasks)

    def get(self, task_id: TaskId) -> Task:
        return self._tasks[self._position(task_id)]

    def list(self) -> tuple[Task, ...]:
        return tuple(self._tasks)

    def snapshot(self) -> PersistedSnapshot:
        return PersistedSnapshot(next_id=self._next_id, tasks=self.list())

    # ---- mutations ----

    def add(self, text: str) -> TaskId:
        cleaned = _clean_text(text)

        now = self._now()
        task_id = self._next_id
        task = Task(id=task_id, text=cleaned, completed=False, created_at=now, updated_at=now)

        self._next_id += 1
        self._index[task_id] = len(self._tasks)
        self._tasks.append(task)
        self._dirty = True

        logger.debug("Task added id=%s", task_id)
        return task_id

    def toggle(self, task_id: TaskId) -> None:
        pos = self._position(task_id)
        current = self._tasks[pos]
        self._tasks[pos] = replace(current, completed=not current.completed, updated_at=self._now())
        self._dirty = True
        logger.debug("Task toggled id=%s completed=%s", task_id, not current.completed)

    def edit(self, task_id: TaskId, text: str) -> None:
        pos = self._position(task_id)
        cleaned = _clean_text(text)
        self._tasks[pos] = replace(self._tasks[pos], text=cleaned, updated_at=self._now())
        self._dirty = True
        logger.debug("Task edited id=%s", task_id)

    def delete(self, task_id: TaskId) -> None:
        pos = self._position(task_id)
        del self._tasks[pos]
        self._reindex()
        self._dirty = True
        logger.debug("Task deleted id=%s", task_id)
