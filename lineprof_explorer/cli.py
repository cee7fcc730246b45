"""CLI entry point for the line profile explorer."""

import json
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.prompt import Prompt
from rich.table import Table

from lineprof_explorer.config import REDUCE_DEPTH, default_source_root
from lineprof_explorer.errors import MalformedSelector
from lineprof_explorer.loaders import load_json_tree, load_perfetto_tree
from lineprof_explorer.log import setup_logging
from lineprof_explorer.navigation import NavigationController
from lineprof_explorer.projection import ProjectionMode, SourceReader, TableModel
from lineprof_explorer.selectors import parse_selector
from lineprof_explorer.tree import ProfilingNode

app = typer.Typer(
    help="Line profile explorer - drill into time and memory of a call tree",
    no_args_is_help=True
)
console = Console()

BAR_WIDTH = 12


@app.callback(invoke_without_command=True)
def main(ctx: typer.Context):
    """Line profile explorer - drill into time and memory of a call tree."""
    setup_logging()


def _check_file(path: Path, what: str) -> None:
    if not path.exists():
        console.print(f"[red]Error:[/red] {what} not found: {path}")
        raise typer.Exit(code=1)
    if not path.is_file():
        console.print(f"[red]Error:[/red] Path is not a file: {path}")
        raise typer.Exit(code=1)


def _load(tree: Optional[Path], trace: Optional[Path]) -> ProfilingNode:
    if (tree is None) == (trace is None):
        console.print("[red]Error:[/red] Pass exactly one of --tree or --trace")
        raise typer.Exit(code=1)

    try:
        if tree is not None:
            _check_file(tree, "Tree file")
            return load_json_tree(tree)
        _check_file(trace, "Trace file")
        return load_perfetto_tree(trace)
    except typer.Exit:
        raise
    except Exception as e:
        console.print(f"[red]Error loading profile:[/red] {escape(str(e))}")
        raise typer.Exit(code=1)


def _bar(value: float, peak: float) -> str:
    if peak <= 0 or value <= 0:
        return ""
    filled = max(1, round(BAR_WIDTH * value / peak))
    return "█" * filled


def render_table(model: TableModel, title: str) -> Table:
    """Rich table with inline bars for time and memory."""
    peak_time = max((row.time for row in model.rows), default=0.0)
    peak_mem = max(
        (max(row.memory_released, row.memory_allocated) for row in model.rows),
        default=0.0
    )

    first_header = "line" if model.mode is ProjectionMode.SOURCE_ALIGNED else "#"
    second_header = "source" if model.mode is ProjectionMode.SOURCE_ALIGNED else "call"
    table = Table(title=title, show_lines=False)
    table.add_column(first_header, justify="right", style="dim")
    table.add_column(second_header, overflow="fold")
    table.add_column("t (s)", justify="right")
    table.add_column("", style="cyan")
    table.add_column("r (MB)", justify="right")
    table.add_column("a (MB)", justify="right")
    table.add_column("", style="magenta")
    table.add_column("d", justify="right")

    for row in model.rows:
        label = escape(row.label)
        if row.handle:
            label = f"[bold]{label}[/bold]"
        table.add_row(
            str(row.position),
            label,
            f"{row.time:.3f}" if row.time else "",
            _bar(row.time, peak_time),
            f"{row.memory_released:.3f}" if row.memory_released else "",
            f"{row.memory_allocated:.3f}" if row.memory_allocated else "",
            _bar(row.memory_allocated, peak_mem),
            str(row.duplications) if row.duplications else ""
        )
    return table


def _title(controller: NavigationController, model: TableModel) -> str:
    where = model.source_path or controller.current.label
    return f"Line profiling: {where} (depth {controller.depth})"


@app.command()
def show(
    tree: Optional[Path] = typer.Option(None, "--tree", help="Path to a JSON profile tree"),
    trace: Optional[Path] = typer.Option(None, "--trace", help="Path to a Perfetto trace file"),
    focus: Optional[List[str]] = typer.Option(None, "--focus", help="Selector to drill into (repeatable)"),
    out: Optional[Path] = typer.Option(None, "--out", help="Write the table as JSON to this path"),
    source_root: Optional[Path] = typer.Option(None, "--source-root", help="Directory relative source paths resolve against"),
    depth: int = typer.Option(REDUCE_DEPTH, "--depth", min=1, help="Call listing depth when source is not aligned"),
):
    """Project a profile (optionally after drilling in) and print the table."""
    root = _load(tree, trace)

    selectors = []
    for text in focus or []:
        try:
            selectors.append(parse_selector(text))
        except MalformedSelector as e:
            console.print(f"[red]Error:[/red] {escape(str(e))}")
            raise typer.Exit(code=1)

    controller = NavigationController(
        root,
        reader=SourceReader(source_root or default_source_root()),
        max_depth=depth
    )
    model = controller.table()
    for selector in selectors:
        model = controller.navigate(selector)

    console.print(render_table(model, _title(controller, model)))

    if out is not None:
        with open(out, "w") as f:
            json.dump(model.to_dict(), f, indent=2)
        console.print(f"[green]✓[/green] Table written to: {out}")


def handle_command(controller: NavigationController, model: TableModel, text: str) -> TableModel | None:
    """
    Apply one line of interactive input.

    Returns the new table, or None when the user asked to quit.
    Raises MalformedSelector for input that is neither a command nor a selector.
    """
    command = text.strip()
    if command in ("q", "quit", "exit"):
        return None
    if command in ("b", "back"):
        return controller.back()
    if command.isdigit():
        row = model.row_at(int(command))
        if row is None or row.handle is None:
            raise MalformedSelector(f"Row {command} has nothing to drill into")
        return controller.navigate(parse_selector(row.handle))
    return controller.navigate(parse_selector(command))


@app.command()
def explore(
    tree: Optional[Path] = typer.Option(None, "--tree", help="Path to a JSON profile tree"),
    trace: Optional[Path] = typer.Option(None, "--trace", help="Path to a Perfetto trace file"),
    source_root: Optional[Path] = typer.Option(None, "--source-root", help="Directory relative source paths resolve against"),
    depth: int = typer.Option(REDUCE_DEPTH, "--depth", min=1, help="Call listing depth when source is not aligned"),
):
    """Interactively drill into a profile and back out again."""
    root = _load(tree, trace)
    controller = NavigationController(
        root,
        reader=SourceReader(source_root or default_source_root()),
        max_depth=depth
    )

    console.print(
        "[blue]Starting interactive profile explorer.[/blue] "
        "Enter a row number or selector to drill in, 'b' to go back, 'q' to quit."
    )
    model = controller.table()
    while True:
        console.print(render_table(model, _title(controller, model)))
        text = Prompt.ask("[bold]navigate[/bold]", console=console, default="q")
        try:
            updated = handle_command(controller, model, text)
        except MalformedSelector as e:
            console.print(f"[red]Error:[/red] {escape(str(e))}")
            continue
        if updated is None:
            break
        model = updated


if __name__ == "__main__":
    app()
