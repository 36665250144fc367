import asyncio
from pathlib import Path
from typing import Annotated

import typer

from code_couplet.cli.render import build_workspace, console, expand_sources, print_error, render_findings
from code_couplet.errors import CoupletError
from code_couplet.models import Finding


def check(
    paths: Annotated[list[Path], typer.Argument(help="Source files, or directories holding mapping folders.")],
    root: Annotated[
        list[Path] | None, typer.Option("--root", help="Extra project root, may be repeated.")
    ] = None,
) -> None:
    """Validate every pin of the given files and report mismatches.

    Exits 1 when any pin mismatches and 2 when a file could not be checked.
    A file that fails, such as one with a malformed mapping, does not stop the others.
    """
    workspace = build_workspace(root or ())
    failed: list[Path] = []

    async def _run() -> list[tuple[Path, Finding]]:
        results: list[tuple[Path, Finding]] = []
        for source in expand_sources(paths):
            try:
                findings = await workspace.get_mismatches(source)
            except FileNotFoundError:
                console.print(f"[yellow]Skipping[/yellow] {source}: file not found")
                continue
            except CoupletError as exc:
                print_error(exc)
                failed.append(source)
                continue
            results.extend((source, finding) for finding in findings)
        return results

    results = asyncio.run(_run())
    render_findings(results)
    if failed:
        raise typer.Exit(2)
    if results:
        raise typer.Exit(1)
