"""Terminal output for parley commands, on two shared Rich consoles."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator, Sequence

from rich import box
from rich.console import Console
from rich.padding import Padding
from rich.panel import Panel
from rich.table import Table

console = Console(highlight=False)
err_console = Console(stderr=True, highlight=False)

INDENT = "  "

# kind -> (mark, style)
_MARKS = {
    "success": ("✓", "green"),
    "error": ("✗", "red"),
    "warning": ("⚠", "yellow"),
    "step": ("→", "bold"),
}


def _mark(kind: str, msg: str, target: Console = console) -> None:
    mark, style = _MARKS[kind]
    target.print(f"{INDENT}[{style}]{mark}[/{style}] {msg}")


def success(msg: str) -> None:
    _mark("success", msg)


def error(msg: str) -> None:
    _mark("error", msg, err_console)


def warning(msg: str) -> None:
    _mark("warning", msg)


def step(msg: str) -> None:
    _mark("step", msg)


def info(msg: str) -> None:
    console.print(f"{INDENT}[dim]ℹ {msg}[/dim]")


def dim(msg: str) -> None:
    console.print(f"{INDENT}[dim]{msg}[/dim]")


def plain(msg: str = "") -> None:
    console.print(msg)


def prompt(msg: str) -> str:
    return console.input(msg)


def banner(title: str) -> None:
    console.print(Panel.fit(f"[bold cyan]{title}[/bold cyan]", border_style="cyan", padding=(0, 6)))
    console.print()


def header(msg: str) -> None:
    console.print()
    console.print(f"{INDENT}[bold]{msg}[/bold]")


def rule(title: str = "") -> None:
    console.rule(f"[magenta]{title}[/magenta]" if title else "", style="magenta")


def check_line(label: str, result: str) -> None:
    """One aligned ``label... result`` row of a prerequisite report."""
    console.print(f"{INDENT}{label + '...':<34} {result}")


def next_steps(items: Sequence[str]) -> None:
    header("Next steps:")
    for number, item in enumerate(items, 1):
        console.print(f"{INDENT * 2}{number}. {item}")


@contextmanager
def spinner(msg: str) -> Iterator[None]:
    """Animate ``msg`` while the block runs; print it once when not on a terminal."""
    if console.is_terminal:
        with console.status(f"{INDENT}{msg}...", spinner="dots"):
            yield
    else:
        dim(f"{msg}...")
        yield


def table(headers: Sequence[str], rows: Sequence[Sequence[str]]) -> None:
    """Print rows under ``headers``; a leading ``#`` column is right-aligned."""
    grid = Table(box=box.SIMPLE_HEAD, header_style="bold cyan", pad_edge=False)
    for name in headers:
        grid.add_column(name, justify="right" if name == "#" else "left", no_wrap=name != "Name")
    for row in rows:
        grid.add_row(*row)
    console.print(Padding(grid, (0, 0, 0, len(INDENT))))
