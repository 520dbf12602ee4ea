# src/float_todo/core/errors.py

"""
Error taxonomy for the task core.

None of these are fatal to the process:
- ValidationError   -> transient notice in the next render
- NotFoundError     -> logged, treated as a no-op
- PersistenceError  -> empty start (load) or persistent warning (save)
- InvalidStateError -> caller bug (event sent before init / after shutdown)
"""

from __future__ import annotations


class TodoError(Exception):
    """Base class for all float_todo errors."""


class ValidationError(TodoError):
    pass


class NotFoundError(TodoError):
    def __init__(self, task_id: int) -> None:
        super().__init__(f"Task {task_id} not found")
        self.task_id = task_id


class PersistenceError(TodoError):
    pass


class InvalidStateError(TodoError):
    pass
