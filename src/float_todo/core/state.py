# src/float_todo/core/state.py

from __future__ import annotations

from dataclasses import dataclass

from .controller import AppController
from .ports import SnapshotSink, TaskStorage


@dataclass
class AppState:
    """
    Everything one running instance owns.

    Built once by the composition root (cli.bootstrap) and passed to
    connectors; tests build their own instances side by side.
    """

    # Store Settings on the state for easy access in other modules.
    settings: object

    storage: TaskStorage
    writer: SnapshotSink
    controller: AppController
