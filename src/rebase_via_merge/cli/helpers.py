"""Console shared by the engine and the command layer."""

from __future__ import annotations

from rich.console import Console
from rich.markup import escape

console = Console(highlight=False, soft_wrap=True)


def print_paths(paths: list[str], *, style: str = "yellow", empty: str = "(none)") -> None:
    """Print one indented path per line, or the ``empty`` sentinel."""
    if not paths:
        console.print(f"  [dim]{empty}[/dim]")
        return
    for path in paths:
        console.print(f"  [{style}]{escape(path)}[/{style}]")


__all__ = ["console", "print_paths"]
