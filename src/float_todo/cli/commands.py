# src/float_todo/cli/commands.py

from __future__ import annotations

import logging
from collections.abc import Callable

from ..core.events import AddItem, DeleteItem, EditItem, Quit, ToggleItem, UIEvent, WindowShown

CommandResult = UIEvent | str
CommandHandler = Callable[[str], CommandResult]

logger = logging.getLogger(__name__)


class CommandRegistry:
    """
    Slash-command registry used by the console connector (/add, /done, ...).

    A command either decodes into a UI event for the controller or answers
    directly with a string (help, usage errors).
    """

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(self, line: str) -> CommandResult | None:
        """
        Handle a string like "/command args".
        Returns an event, a reply string, or None if not a command.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split(maxsplit=1)
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        rest = parts[1].strip() if len(parts) > 1 else ""

        handler = self._handlers.get(name)
        if not handler:
            logger.debug("Unknown command /%s", name)
            return f"Unknown command: /{name}. Use /help to list available commands."

        return handler(rest)

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        lines.append("Any line that is not a command is added as a new task.")
        return "\n".join(lines)


registry = CommandRegistry()


def _parse_id(raw: str) -> int | None:
    try:
        value = int(raw)
    except ValueError:
        return None
    return value if value > 0 else None


def cmd_help(rest: str) -> CommandResult:
    return registry.build_help()


def cmd_add(rest: str) -> CommandResult:
    # Empty text is passed through; the controller owns that rejection.
    return AddItem(rest)


def cmd_done(rest: str) -> CommandResult:
    task_id = _parse_id(rest)
    if task_id is None:
        return "Usage: /done <id>"
    return ToggleItem(task_id)


def cmd_edit(rest: str) -> CommandResult:
    parts = rest.split(maxsplit=1)
    task_id = _parse_id(parts[0]) if parts else None
    if task_id is None:
        return "Usage: /edit <id> <new text>"
    return EditItem(task_id, parts[1] if len(parts) > 1 else "")


def cmd_del(rest: str) -> CommandResult:
    task_id = _parse_id(rest)
    if task_id is None:
        return "Usage: /del <id>"
    return DeleteItem(task_id)


def cmd_list(rest: str) -> CommandResult:
    return WindowShown()


def cmd_quit(rest: str) -> CommandResult:
    return Quit()


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("add", cmd_add, help_text="Add a task: /add <text>.", aliases=["a"])
registry.register(
    "done", cmd_done, help_text="Toggle a task done/not done: /done <id>.", aliases=["toggle", "x"]
)
registry.register("edit", cmd_edit, help_text="Change a task's text: /edit <id> <text>.", aliases=["e"])
registry.register("del", cmd_del, help_text="Delete a task: /del <id>.", aliases=["rm"])
registry.register("list", cmd_list, help_text="Show the task list again.", aliases=["ls"])
registry.register("quit", cmd_quit, help_text="Save and exit.", aliases=["exit", "q"])
