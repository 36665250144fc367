"""Shared console output and argument helpers for the CLI commands."""

from __future__ import annotations

from collections.abc import Collection, Iterable, Iterator, Sequence
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from code_couplet.config import get_settings
from code_couplet.core.index import CouplingWorkspace
from code_couplet.documents.buffers import BufferedDocuments
from code_couplet.errors import CoupletError
from code_couplet.models import Finding, Range, make_range
from code_couplet.store.json_store import JsonSchemaStore
from code_couplet.store.paths import MAPPING_SUFFIX, MAPPINGS_DIR_NAME, inverse, normalize_path

console = Console()


def build_workspace(extra_roots: Sequence[Path] = ()) -> CouplingWorkspace:
    settings = get_settings()
    return CouplingWorkspace(
        JsonSchemaStore(),
        BufferedDocuments(),
        known_roots=[*settings.known_roots, *extra_roots],
    )


def print_error(exc: CoupletError) -> None:
    console.print(f"[red]{exc.error_code}[/red] {escape(exc.message)}", soft_wrap=True)


@contextmanager
def couplet_errors() -> Iterator[None]:
    """Turn engine errors into a red message and exit code 2."""
    try:
        yield
    except CoupletError as exc:
        print_error(exc)
        raise typer.Exit(2) from exc


def format_range(range_: Range | None) -> str:
    if range_ is None:
        return "-"
    return f"{range_.start.line}:{range_.start.char}-{range_.end.line}:{range_.end.char}"


def parse_range(value: str) -> Range:
    """Parse ``L:C-L:C`` (zero-based, as stored in mapping files)."""
    try:
        start, end = value.split("-")
        start_line, start_char = (int(part) for part in start.split(":"))
        end_line, end_char = (int(part) for part in end.split(":"))
        return make_range(start_line, start_char, end_line, end_char)
    except ValueError as exc:
        raise typer.BadParameter(f"expected LINE:CHAR-LINE:CHAR, got {value!r}") from exc


def expand_sources(paths: Iterable[Path]) -> list[Path]:
    """Files stay as given; a directory stands for every source file with a mapping below it."""
    sources: list[Path] = []
    for path in paths:
        path = normalize_path(path)
        if not path.is_dir():
            sources.append(path)
            continue
        for mapping in sorted(path.rglob(f"*{MAPPING_SUFFIX}")):
            if mapping.parent.name == MAPPINGS_DIR_NAME and not mapping.name.startswith(".tmp-"):
                sources.append(inverse(mapping))
    return list(dict.fromkeys(sources))


def first_line(value: str, width: int = 40) -> str:
    line = value.split("\n", 1)[0]
    return line if len(line) <= width else f"{line[: width - 3]}..."


def render_table(
    title: str | None,
    headers: Sequence[str],
    rows: Sequence[tuple[Any, ...]],
    no_wrap: Collection[str] = (),
) -> None:
    table = Table(title=title, show_lines=False)
    for h in headers:
        table.add_column(h, no_wrap=h in no_wrap)
    for row in rows:
        table.add_row(*(escape(str(v)) for v in row))
    console.print(table)


def render_findings(findings: Sequence[tuple[Path, Finding]]) -> None:
    if not findings:
        console.print("[green]All pins match[/green]")
        return
    rows = []
    for path, finding in findings:
        fix = finding.move_fix
        rows.append(
            (
                path,
                finding.comment_id,
                finding.error_type.value,
                format_range(finding.comment_location.range),
                f"{finding.code_location.path}:{format_range(finding.code_location.range)}",
                ", ".join(finding.out_of_bounds) or "-",
                "-" if fix is None else f"{format_range(fix.comment)} / {format_range(fix.code)}",
            )
        )
    render_table(
        "Mismatched pins",
        ["file", "id", "error", "comment", "code", "out of bounds", "move fix"],
        rows,
        no_wrap=("id", "error", "comment"),
    )
    console.print(f"({len(findings)} mismatches)")


class ConsoleSink:
    """Prints findings as they are published. Implements ``FindingsSink``."""

    def publish(self, path: Path, findings: list[Finding]) -> None:
        if findings:
            render_findings([(path, f) for f in findings])
        else:
            console.print(f"[green]{escape(str(path))}[/green]: all pins match")
