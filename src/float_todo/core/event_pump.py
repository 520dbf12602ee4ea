# src/float_todo/core/event_pump.py

from __future__ import annotations

"""
Event pump.

Front-ends with asynchronous (or multi-threaded) input sources post events
here; the pump drains one asyncio.Queue and feeds the controller strictly one
event at a time, so the controller never sees interleaved events.

The controller call itself runs in a worker thread (asyncio.to_thread) so a
blocking save never stalls the loop.

To stop the pump, post Quit / WindowClosed (or cancel run()).
"""

import asyncio
import logging
import threading

from .controller import AppController
from .events import TERMINAL_EVENTS, ControllerState, RenderModel, UIEvent
from .errors import InvalidStateError
from .ports import Renderer

logger = logging.getLogger(__name__)


class EventPump:
    def __init__(self, controller: AppController, renderer: Renderer) -> None:
        self._controller = controller
        self._renderer = renderer
        self._queue: asyncio.Queue[UIEvent] = asyncio.Queue()
        self._lock = threading.Lock()
        self._early: list[UIEvent] = []
        self._loop: asyncio.AbstractEventLoop | None = None
        self._loop_thread: int | None = None

    def post(self, event: UIEvent) -> None:
        """Queue an event. Safe to call from any thread, before or during run()."""
        with self._lock:
            loop = self._loop
            if loop is None:
                # Picked up by run() once it is bound to a loop.
                self._early.append(event)
                return
            on_loop = threading.get_ident() == self._loop_thread

        if on_loop:
            self._queue.put_nowait(event)
        else:
            loop.call_soon_threadsafe(self._queue.put_nowait, event)

    def _bind(self) -> None:
        with self._lock:
            self._loop = asyncio.get_running_loop()
            self._loop_thread = threading.get_ident()
            early, self._early = self._early, []
        for event in early:
            self._queue.put_nowait(event)

    def _unbind(self) -> None:
        with self._lock:
            self._loop = None
            self._loop_thread = None

    def _emit(self, model: RenderModel) -> None:
        try:
            self._renderer(model)
        except Exception:
            logger.exception("Renderer failed; continuing.")

    async def run(self) -> RenderModel:
        """Process events until a terminal event; returns the final snapshot."""
        self._bind()
        logger.debug("Event pump started.")

        last = self._controller.snapshot()
        try:
            while True:
                event = await self._queue.get()
                try:
                    last = await asyncio.to_thread(self._controller.handle_event, event)
                except InvalidStateError:
                    if self._controller.state == ControllerState.SHUTTING_DOWN:
                        logger.info("Controller shut down elsewhere; stopping event pump.")
                        return self._controller.snapshot()
                    logger.warning("Dropping %s: controller not ready.", type(event).__name__)
                    continue
                finally:
                    self._queue.task_done()

                self._emit(last)
                if isinstance(event, TERMINAL_EVENTS):
                    logger.debug("Event pump finished.")
                    return last
        finally:
            self._unbind()
