# twigmod/cli/console_output.py
"""
Console rendering of dependency graphs and build summaries.
"""
import json
from typing import List, Tuple
from pathlib import Path

import click
from rich.console import Console as RichConsole
from rich.table import Table
import structlog

from twigmod.core.emitter import TemplateUnit

log = structlog.get_logger(__name__)


def _display(path: Path, root: Path) -> str:
    try:
        return path.relative_to(root).as_posix()
    except ValueError:
        return str(path)


def dependency_rows(unit: TemplateUnit, root: Path) -> List[Tuple[str, str, str, str]]:
    return [
        (str(position), record.specifier, record.template_id, _display(record.path, root))
        for position, record in enumerate(unit.graph.records)
    ]


def print_dependency_table(unit: TemplateUnit, root: Path, console: RichConsole):
    table = Table(title=f"dependencies of {unit.template_id}", title_justify="left")
    table.add_column("#", justify="right", style="dim")
    table.add_column("specifier", style="cyan")
    table.add_column("template id")
    table.add_column("path", style="green")
    for row in dependency_rows(unit, root):
        table.add_row(*row)
    console.print(table)
    for skipped in unit.graph.skipped:
        console.print(f"[yellow]skipped[/yellow] {skipped.specifier} ({skipped.reason}) {skipped.detail}".rstrip())


def dependency_json(unit: TemplateUnit) -> str:
    payload = {
        "template_id": unit.template_id,
        "path": str(unit.path),
        "dependencies": [
            {
                "specifier": record.specifier,
                "template_id": record.template_id,
                "path": str(record.path),
                "referrer": str(record.referrer) if record.referrer else None,
                "line": record.lineno,
            }
            for record in unit.graph.records
        ],
        "skipped": [
            {"specifier": s.specifier, "path": str(s.path), "reason": s.reason, "detail": s.detail}
            for s in unit.graph.skipped
        ],
    }
    return json.dumps(payload, indent=2) + "\n"


def dependency_plain(unit: TemplateUnit) -> str:
    return "".join(f"{record.path}\n" for record in unit.graph.records)


def print_build_summary(written: List[Path], failed: List[Tuple[Path, str]]):
    click.secho("--- build summary ---", fg="cyan", err=True)
    click.echo(f"Modules written: {len(written)}", err=True)
    if failed:
        click.secho(f"Templates failed: {len(failed)}", fg="red", err=True)
        for path, reason in failed:
            click.echo(f"  {path}: {reason}", err=True)
