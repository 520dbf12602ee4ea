# src/float_todo/connectors/console_connector.py

from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import Callable
from datetime import datetime

from ..cli.commands import registry as command_registry
from ..core.event_pump import EventPump
from ..core.errors import InvalidStateError
from ..core.events import (
    TERMINAL_EVENTS,
    AddItem,
    ControllerState,
    RenderModel,
    WindowClosed,
    WindowShown,
)
from ..core.state import AppState

logger = logging.getLogger(__name__)

InputFn = Callable[[str], str]
OutputFn = Callable[[str], None]


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def format_snapshot(model: RenderModel) -> str:
    """Plain-text rendering of a RenderModel (one line per task)."""
    lines: list[str] = []

    if model.warning:
        lines.append(f"!! {model.warning}")
    if model.notice:
        lines.append(f"-- {model.notice}")

    if not model.items:
        lines.append("  (no tasks)")
    for item in model.items:
        mark = "x" if item.completed else " "
        lines.append(f"  [{mark}] {item.id:>3}  {item.text}")

    lines.append(f"  {model.open_count} open / {len(model.items)} total")
    return "\n".join(lines)


def _read_events(
    pump: EventPump,
    rendered: threading.Event,
    read_line: InputFn,
    write: OutputFn,
) -> None:
    """
    Reader thread: decode stdin lines into UI events and post them to the pump.

    Waits for each event's snapshot to be printed before prompting again.
    Stops after posting a terminal event.
    """
    try:
        while True:
            rendered.wait()
            try:
                line = read_line("> ").strip()
            except EOFError:
                logger.info("Console EOF received, closing.")
                pump.post(WindowClosed())
                return
            except KeyboardInterrupt:
                logger.info("Console KeyboardInterrupt, closing.")
                write("")
                pump.post(WindowClosed())
                return

            if not line:
                continue

            result = command_registry.handle(line)
            if result is None:
                result = AddItem(line)

            if isinstance(result, str):
                write(result)
                continue

            rendered.clear()
            pump.post(result)
            if isinstance(result, TERMINAL_EVENTS):
                return
    except Exception:
        logger.exception("Console reader failed; closing.")
        pump.post(WindowClosed())


def run_console_loop(
    state: AppState,
    *,
    read_line: InputFn = input,
    write: OutputFn = print,
) -> RenderModel:
    """
    Console front-end: lines are read on a background thread and marshalled
    through an EventPump; every snapshot is printed from the event loop.

    The controller must already be initialized. Returns the final snapshot.
    """
    if state.controller.state != ControllerState.READY:
        raise InvalidStateError(f"console needs a ready controller, got {state.controller.state}")

    app_name = str(getattr(getattr(state, "settings", None), "app_name", "float-todo"))

    logger.info("Console connector started.")
    write(f"[{_ts_local()}] [{app_name}] Type a task to add it. Use /help for commands, /quit to exit.")

    rendered = threading.Event()

    def render(model: RenderModel) -> None:
        try:
            write(format_snapshot(model))
        finally:
            rendered.set()

    pump = EventPump(state.controller, render)
    pump.post(WindowShown())

    reader = threading.Thread(
        target=_read_events,
        args=(pump, rendered, read_line, write),
        name="float-todo-console",
        daemon=True,
    )
    reader.start()

    try:
        last = asyncio.run(pump.run())
    except KeyboardInterrupt:
        logger.info("Console interrupted, closing.")
        write("")
        last = state.controller.shutdown()

    logger.info("Console connector finished.")
    return last
