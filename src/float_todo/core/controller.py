# src/float_todo/core/controller.py

from __future__ import annotations

"""
Application controller.

State machine: LOADING -> READY -> SHUTTING_DOWN (terminal).

One event at a time:
- apply the store mutation (atomic, or nothing on error)
- hand a snapshot to the writer after every successful mutation
- answer with a RenderModel

Errors never escape handle_event(): validation problems become a one-shot
notice, unknown ids are logged no-ops, save failures become a persistent
warning until a later save succeeds.
"""

import logging
import threading
from collections.abc import Callable

from ..tasks.task_models import PersistedSnapshot
from ..tasks.task_store import TaskStore
from .errors import InvalidStateError, NotFoundError, PersistenceError, ValidationError
from .events import (
    AddItem,
    ControllerState,
    DeleteItem,
    EditItem,
    RenderItem,
    RenderModel,
    TERMINAL_EVENTS,
    ToggleItem,
    UIEvent,
    WindowShown,
)
from .ports import SnapshotSink, TaskStorage

logger = logging.getLogger(__name__)

EMPTY_TEXT_NOTICE = "Task text cannot be empty."
LOAD_FAILED_NOTICE = "Saved tasks could not be read; starting with an empty list."

StoreFactory = Callable[[PersistedSnapshot], TaskStore]


class AppController:
    def __init__(
        self,
        storage: TaskStorage,
        writer: SnapshotSink,
        *,
        store_factory: StoreFactory = TaskStore.from_snapshot,
    ) -> None:
        self._storage = storage
        self._writer = writer
        self._store_factory = store_factory

        self._store: TaskStore | None = None
        self._state = ControllerState.LOADING
        self._notice: str | None = None
        self._lock = threading.Lock()

    @property
    def state(self) -> ControllerState:
        return self._state

    @property
    def store(self) -> TaskStore:
        if self._store is None:
            raise InvalidStateError("controller has not been initialized")
        return self._store

    # ---- lifecycle ----

    def init(self) -> RenderModel:
        with self._lock:
            if self._state != ControllerState.LOADING:
                raise InvalidStateError(f"init() called in state {self._state}")

            try:
                snapshot = self._storage.load()
            except PersistenceError:
                logger.exception("Failed to load tasks; starting empty.")
                backup = self._storage.quarantine()
                snapshot = PersistedSnapshot()
                self._notice = LOAD_FAILED_NOTICE
                if backup is not None:
                    self._notice += f" The unreadable file was kept as {backup.name}."

            self._store = self._store_factory(snapshot)
            self._state = ControllerState.READY
            logger.info("Controller ready with %d tasks.", len(self._store))
            return self._render()

    def shutdown(self) -> RenderModel:
        with self._lock:
            return self._shutdown_locked()

    def _shutdown_locked(self) -> RenderModel:
        if self._state == ControllerState.SHUTTING_DOWN:
            return self._render()

        if self._state == ControllerState.READY:
            if self._store is not None and self._store.dirty:
                self._submit()
            if not self._writer.close():
                logger.error("Shutting down with unsaved changes: %s", self._writer.last_error)
        else:
            # Never loaded, so nothing to save; just stop the worker.
            self._writer.close()

        self._state = ControllerState.SHUTTING_DOWN
        logger.info("Controller shut down.")
        return self._render()

    # ---- events ----

    def handle_event(self, event: UIEvent) -> RenderModel:
        with self._lock:
            if self._state != ControllerState.READY:
                raise InvalidStateError(f"cannot handle {type(event).__name__} in state {self._state}")

            if isinstance(event, TERMINAL_EVENTS):
                logger.info("%s received, flushing and shutting down.", type(event).__name__)
                return self._shutdown_locked()

            if isinstance(event, WindowShown):
                return self._render()

            try:
                self._apply(event)
            except ValidationError as exc:
                logger.debug("Rejected %s: %s", type(event).__name__, exc)
                self._notice = str(exc) or EMPTY_TEXT_NOTICE
                return self._render()
            except NotFoundError as exc:
                logger.warning("Ignoring %s: %s", type(event).__name__, exc)
                return self._render()

            self._submit()
            return self._render()

    def _apply(self, event: UIEvent) -> None:
        store = self.store
        if isinstance(event, AddItem):
            store.add(event.text)
        elif isinstance(event, ToggleItem):
            store.toggle(event.id)
        elif isinstance(event, EditItem):
            store.edit(event.id, event.text)
        elif isinstance(event, DeleteItem):
            store.delete(event.id)
        else:
            raise TypeError(f"unsupported event: {event!r}")

    def _submit(self) -> None:
        store = self.store
        try:
            self._writer.submit(store.snapshot())
        except PersistenceError:
            logger.exception("Could not hand snapshot to writer.")
            return
        store.mark_clean()

    # ---- rendering ----

    def _warning(self) -> str | None:
        if not self._writer.failed:
            return None
        return f"Changes may not be saved: {self._writer.last_error}"

    def _render(self, *, consume_notice: bool = True) -> RenderModel:
        items = tuple(RenderItem.from_task(t) for t in self._store.list()) if self._store is not None else ()
        model = RenderModel(
            items=items,
            notice=self._notice,
            warning=self._warning(),
            state=self._state,
        )
        if consume_notice:
            self._notice = None
        return model

    def snapshot(self) -> RenderModel:
        """Current render model; does not consume a pending notice."""
        with self._lock:
            return self._render(consume_notice=False)
