"""Rich console used by the CLI.

Wraps Rich's Console so string output is sanitized on non-UTF-8 terminals
and adds the two message shapes every command uses.
"""
from typing import Any

from rich.console import Console
from rich.markup import escape

from .logger import is_utf8_capable, sanitize_for_terminal


class SafeConsole(Console):
    """Console that degrades glyphs to ASCII where the terminal needs it."""

    def __init__(self, *args, **kwargs):
        """All arguments are passed through to Rich's Console."""
        self._needs_sanitization = not is_utf8_capable()
        if self._needs_sanitization:
            kwargs.setdefault('legacy_windows', True)
        super().__init__(*args, **kwargs)

    def print(self, *objects: Any, **kwargs) -> None:
        """Print, sanitizing plain strings first when required."""
        if self._needs_sanitization:
            objects = tuple(
                sanitize_for_terminal(obj, force=True) if isinstance(obj, str) else obj
                for obj in objects
            )
        super().print(*objects, **kwargs)

    def error(self, message: str) -> None:
        """Print a red ``Error:`` line; ``message`` is markup-escaped."""
        self.print(f"[bold red]Error:[/bold red] {escape(message)}")

    def heading(self, label: str, value: str) -> None:
        """Print the blue ``label: value`` line that opens each report."""
        self.print(f"[bold blue]{label}:[/bold blue] {escape(value)}\n")
