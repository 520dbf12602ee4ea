# src/float_todo/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, loads the task list, then runs the
console connector in the main thread. The final save always happens before
the process exits (controller.shutdown() is idempotent).
"""

from __future__ import annotations

import contextlib
import logging
import signal

from ..cli.bootstrap import create_initial_state
from ..config import get_settings
from ..connectors.console_connector import run_console_loop
from ..logging_setup import setup_logging

logger = logging.getLogger(__name__)


def _handle_signal(signum, _frame) -> None:
    logger.info("Signal %s received, shutting down...", signum)
    # The console loop treats this like Ctrl+C: WindowClosed -> flush -> exit.
    raise KeyboardInterrupt


def main() -> None:
    settings = get_settings()

    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)

    setup_logging(log_dir=settings.log_dir, console_level=console_level)

    logger.info("Starting %s (tasks file: %s)...", settings.app_name, settings.tasks_path)

    state = create_initial_state(settings=settings)

    with contextlib.suppress(ValueError, OSError):
        # Not available off the main thread / on some platforms.
        signal.signal(signal.SIGTERM, _handle_signal)

    try:
        state.controller.init()
        run_console_loop(state)
    finally:
        state.controller.shutdown()
        logger.info("Bye.")


if __name__ == "__main__":
    main()
