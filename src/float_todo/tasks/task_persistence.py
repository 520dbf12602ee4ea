# tasks/task_persistence.py

from __future__ import annotations

"""
Durable storage for the task list.

JsonTaskStorage
- one JSON file, replaced atomically (write temp -> fsync -> os.replace)
- a missing file is a normal first run (empty snapshot)
- anything unreadable raises PersistenceError; the caller decides what to do

SnapshotWriter
- decides *when* snapshots get written
- at most one save in flight; newer snapshots replace older pending ones
- one retry per save; failures are remembered so the UI can warn
- flush()/close() never drop a pending snapshot
"""

import contextlib
import json
import logging
import os
import threading
import time
from pathlib import Path
from typing import Any

from ..core.errors import PersistenceError
from ..core.ports import TaskStorage
from .task_models import SCHEMA_VERSION, PersistedSnapshot, Task

logger = logging.getLogger(__name__)

LEGACY_VERSION = 0


def _parse_ts(value: Any, name: str, task_id: int) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise PersistenceError(f"invalid {name} for task {task_id}")
    return float(value)


def _parse_task(raw: Any, *, legacy: bool) -> Task:
    if not isinstance(raw, dict):
        raise PersistenceError(f"task entry is not an object: {raw!r}")

    task_id = raw.get("id")
    if isinstance(task_id, bool) or not isinstance(task_id, int) or task_id < 1:
        raise PersistenceError(f"invalid task id: {task_id!r}")

    text = raw.get("text")
    if not isinstance(text, str) or not text.strip():
        raise PersistenceError(f"invalid text for task {task_id}")
    try:
        text.encode("utf-8")
    except UnicodeEncodeError as exc:
        raise PersistenceError(f"unencodable text for task {task_id}") from exc

    completed = raw.get("completed", False)
    if not isinstance(completed, bool):
        raise PersistenceError(f"invalid completed flag for task {task_id}")

    # Legacy files carry no timestamps at all.
    default_ts = 0.0 if legacy else None
    created_at = _parse_ts(raw.get("created_at", default_ts), "created_at", task_id)
    updated_at = _parse_ts(raw.get("updated_at", created_at), "updated_at", task_id)

    return Task(
        id=task_id,
        text=text.strip(),
        completed=completed,
        created_at=created_at,
        updated_at=max(updated_at, created_at),
    )


def _flatten_projects(projects: Any) -> list[Any]:
    if not isinstance(projects, list):
        raise PersistenceError("'projects' must be a list")
    raw_tasks: list[Any] = []
    for project in projects:
        if not isinstance(project, dict) or not isinstance(project.get("tasks", []), list):
            raise PersistenceError(f"invalid project entry: {project!r}")
        raw_tasks.extend(project.get("tasks", []))
    return raw_tasks


def parse_snapshot(data: Any) -> PersistedSnapshot:
    """
    Validate decoded JSON and turn it into a PersistedSnapshot.

    Accepted shapes:
    - {"version": 1, "next_id": N, "tasks": [...]}
    - a bare list of {id, text, completed} (unversioned legacy file)
    - {"projects": [{"tasks": [...]}, ...], "next_task_id": N} (unversioned
      legacy app file; project tasks are merged into one list, in order)
    """
    if isinstance(data, list):
        version = LEGACY_VERSION
        raw_tasks: Any = data
        raw_next_id: Any = None
    elif isinstance(data, dict) and "version" not in data and "projects" in data:
        version = LEGACY_VERSION
        raw_tasks = _flatten_projects(data["projects"])
        raw_next_id = data.get("next_task_id")
        if isinstance(raw_next_id, bool) or not isinstance(raw_next_id, int) or raw_next_id < 1:
            raw_next_id = None
    elif isinstance(data, dict):
        version = data.get("version")
        if version != SCHEMA_VERSION:
            raise PersistenceError(f"unsupported schema version: {version!r}")
        raw_tasks = data.get("tasks")
        raw_next_id = data.get("next_id")
        if not isinstance(raw_tasks, list):
            raise PersistenceError("'tasks' must be a list")
        if isinstance(raw_next_id, bool) or not isinstance(raw_next_id, int) or raw_next_id < 1:
            raise PersistenceError(f"invalid next_id: {raw_next_id!r}")
    else:
        raise PersistenceError(f"unexpected top-level JSON type: {type(data).__name__}")

    legacy = version == LEGACY_VERSION
    tasks: list[Task] = []
    seen: set[int] = set()
    for raw in raw_tasks:
        task = _parse_task(raw, legacy=legacy)
        if task.id in seen:
            raise PersistenceError(f"duplicate task id: {task.id}")
        seen.add(task.id)
        tasks.append(task)

    next_id = max(seen, default=0) + 1
    if raw_next_id is not None:
        next_id = max(next_id, raw_next_id)

    return PersistedSnapshot(next_id=next_id, tasks=tuple(tasks), version=version)


class JsonTaskStorage:
    """JSON file storage for the task list (one file, atomic replace)."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    @property
    def _tmp_path(self) -> Path:
        return self._path.with_name(self._path.name + ".tmp")

    def load(self) -> PersistedSnapshot:
        if not self._path.exists():
            logger.info("No task file at %s, starting empty.", self._path)
            return PersistedSnapshot()

        try:
            data = json.loads(self._path.read_text("utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError, RecursionError) as exc:
            raise PersistenceError(f"cannot read {self._path}: {exc}") from exc

        snapshot = parse_snapshot(data)
        logger.info(
            "Loaded %d tasks from %s (version=%s next_id=%s)",
            len(snapshot.tasks),
            self._path,
            snapshot.version,
            snapshot.next_id,
        )
        return snapshot

    def save(self, snapshot: PersistedSnapshot) -> None:
        tmp = self._tmp_path
        try:
            payload = json.dumps(snapshot.to_dict(), ensure_ascii=False, indent=2)
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp, "w", encoding="utf-8") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp, self._path)
        except (OSError, TypeError, ValueError) as exc:
            with contextlib.suppress(OSError):
                tmp.unlink()
            raise PersistenceError(f"cannot write {self._path}: {exc}") from exc

        self._fsync_dir()
        logger.debug("Saved %d tasks to %s", len(snapshot.tasks), self._path)

    def _fsync_dir(self) -> None:
        # Best-effort: makes the rename itself durable (POSIX only).
        if not hasattr(os, "O_DIRECTORY"):
            return
        with contextlib.suppress(OSError):
            fd = os.open(self._path.parent, os.O_RDONLY | os.O_DIRECTORY)
            try:
                os.fsync(fd)
            finally:
                os.close(fd)

    def quarantine(self) -> Path | None:
        """Move an unreadable file aside so the next save cannot overwrite it."""
        if not self._path.exists():
            return None
        backup = self._path.with_name(self._path.name + ".bak")
        try:
            os.replace(self._path, backup)
        except OSError:
            logger.exception("Failed to move unreadable task file %s aside", self._path)
            return None
        logger.warning("Unreadable task file moved to %s", backup)
        return backup


class SnapshotWriter:
    """
    Save scheduler in front of a TaskStorage.

    background=False: submit() saves inline (simplest correct policy).
    background=True:  a single worker thread saves, after debounce_seconds.

    After a failed save (including its retry) the worker does not keep
    hammering the disk: it waits for the next submit() or flush().
    """

    def __init__(
        self,
        storage: TaskStorage,
        *,
        background: bool = False,
        debounce_seconds: float = 0.0,
    ) -> None:
        self._storage = storage
        self._background = bool(background)
        self._debounce_s = max(0.0, float(debounce_seconds))

        self._cond = threading.Condition()
        self._pending: PersistedSnapshot | None = None
        self._in_flight = False
        self._started = 0  # write attempts taken so far
        self._retry_blocked = False
        self._flush_requested = False
        self._closed = False
        self._worker: threading.Thread | None = None

        self.last_error: PersistenceError | None = None

        if self._background:
            self._worker = threading.Thread(
                target=self._run, name="float-todo-writer", daemon=True
            )
            self._worker.start()

    @property
    def failed(self) -> bool:
        return self.last_error is not None

    @property
    def pending(self) -> bool:
        with self._cond:
            return self._pending is not None or self._in_flight

    # ---- saving ----

    def _save_with_retry(self, snapshot: PersistedSnapshot) -> bool:
        error: PersistenceError | None = None
        for attempt in (1, 2):
            try:
                self._storage.save(snapshot)
            except PersistenceError as exc:
                logger.warning("Save attempt %d failed: %s", attempt, exc)
                error = exc
                continue
            if self.last_error is not None:
                logger.info("Saving works again after an earlier failure.")
            self.last_error = None
            return True

        logger.error("Save failed after retry; changes may not be durable: %s", error)
        self.last_error = error
        return False

    def _write_one(self, *, force: bool = False) -> None:
        with self._cond:
            snapshot = self._pending
            if snapshot is None or (self._retry_blocked and not force):
                return
            self._pending = None
            self._in_flight = True
            self._started += 1

        ok = False
        try:
            ok = self._save_with_retry(snapshot)
        finally:
            with self._cond:
                self._in_flight = False
                if not ok:
                    if self._pending is None:
                        # Keep it so the next submit/flush tries again.
                        self._pending = snapshot
                    self._retry_blocked = True
                self._cond.notify_all()

    def _run(self) -> None:
        logger.debug("Snapshot writer thread started.")
        while True:
            with self._cond:
                while not self._closed and (self._pending is None or self._retry_blocked):
                    self._cond.wait()
                if self._closed:
                    logger.debug("Snapshot writer thread stopping.")
                    return

                if self._debounce_s > 0 and not self._flush_requested:
                    deadline = time.monotonic() + self._debounce_s
                    while not self._flush_requested and not self._closed:
                        remaining = deadline - time.monotonic()
                        if remaining <= 0:
                            break
                        self._cond.wait(remaining)

            self._write_one()

    def _worker_alive(self) -> bool:
        return self._worker is not None and self._worker.is_alive()

    def submit(self, snapshot: PersistedSnapshot) -> None:
        with self._cond:
            if self._closed:
                raise PersistenceError("snapshot writer is closed")
            self._pending = snapshot
            self._retry_blocked = False
            self._cond.notify_all()

        if not self._background:
            self._write_one(force=True)

    def flush(self) -> bool:
        """
        Block until every submitted snapshot is on disk.

        Returns False if an attempt started by this flush failed (after its
        retry); the snapshot then stays pending and last_error says why.
        """
        if not self._background:
            self._write_one(force=True)
            return not self.failed

        with self._cond:
            start = self._started
            self._flush_requested = True
            self._cond.notify_all()

            while self._worker_alive():
                if self._in_flight:
                    self._cond.wait()
                    continue
                if self._pending is None:
                    break
                if self.failed and self._started > start:
                    break
                if self._retry_blocked:
                    # Failure predates this flush: allow one fresh attempt.
                    self._retry_blocked = False
                    self._cond.notify_all()
                self._cond.wait()

            self._flush_requested = False
            orphaned = self._pending is not None and not self._worker_alive()

        if orphaned:
            self._write_one(force=True)
        return not self.failed

    def close(self) -> bool:
        """Flush, then stop the worker. Safe to call more than once."""
        if self._closed:
            return not self.failed

        ok = self.flush()

        with self._cond:
            self._closed = True
            self._cond.notify_all()
        if self._worker is not None:
            self._worker.join(timeout=5.0)
            self._worker = None

        if self.pending:
            logger.error("Snapshot writer closed with unsaved changes: %s", self.last_error)
        else:
            logger.debug("Snapshot writer closed.")
        return ok
