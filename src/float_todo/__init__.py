"""float-todo: a small persistent todo list for a single floating window."""

__version__ = "0.1.0"
