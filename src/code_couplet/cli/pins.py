import asyncio
from pathlib import Path
from typing import Annotated

import typer

from code_couplet.cli.render import (
    build_workspace,
    console,
    couplet_errors,
    first_line,
    format_range,
    parse_range,
    render_table,
)
from code_couplet.core.linking import Selection
from code_couplet.errors import LinkError
from code_couplet.models import AutomaticPin
from code_couplet.store.paths import map_to_storage_path, normalize_path


def pins(
    file: Annotated[Path, typer.Argument(help="Source file holding the comments.")],
) -> None:
    """List the pins stored for a file."""
    workspace = build_workspace()

    with couplet_errors():
        schema = asyncio.run(workspace.get_schema(file))
    rows = [
        (
            c.id,
            c.kind.type if not isinstance(c.kind, AutomaticPin) else f"automatic ({c.kind.relevance:.2f})",
            format_range(c.comment_range),
            c.code_relative_path or ".",
            format_range(c.code_range),
            first_line(c.comment_value),
        )
        for c in schema.comments
    ]
    render_table(str(normalize_path(file)), ["id", "kind", "comment", "code file", "code", "text"], rows)
    console.print(f"({len(rows)} pins)")


def where(
    file: Annotated[Path, typer.Argument(help="Source file.")],
) -> None:
    """Show the save root and mapping file used for a source file."""
    workspace = build_workspace()
    with couplet_errors():
        root = workspace.resolver.resolve(file)
        location = map_to_storage_path(root, file)
    console.print(f"root:    {root}", soft_wrap=True)
    console.print(f"mapping: {location}", soft_wrap=True)


def link(
    file: Annotated[Path, typer.Argument(help="File holding the comment.")],
    comment_range: Annotated[str, typer.Argument(help="Comment range as LINE:CHAR-LINE:CHAR (zero-based).")],
    code_range: Annotated[str, typer.Argument(help="Code range as LINE:CHAR-LINE:CHAR (zero-based).")],
    code_file: Annotated[
        Path | None, typer.Option("--code-file", help="File holding the code, defaults to FILE.")
    ] = None,
) -> None:
    """Pin a comment range to a code range."""
    comment = Selection(normalize_path(file), parse_range(comment_range))
    code = Selection(normalize_path(code_file or file), parse_range(code_range))
    workspace = build_workspace()

    async def _run():
        index = await workspace.index_for(comment.path)
        return await index.link(comment, code)

    with couplet_errors():
        result = asyncio.run(_run())
    console.print(f"[green]Pin {result.comment.id} {result.status}[/green] in {result.location}")


def auto_link(
    file: Annotated[Path, typer.Argument(help="Source file.")],
    start_line: Annotated[int, typer.Argument(help="First line of the selection (1-based).")],
    end_line: Annotated[int, typer.Argument(help="Last line of the selection (1-based, inclusive).")],
) -> None:
    """Pin the comment block in a line span to the code block that follows it."""
    workspace = build_workspace()

    async def _run():
        index = await workspace.index_for(file)
        return await index.auto_link(file, start_line - 1, end_line - 1)

    with couplet_errors():
        result = asyncio.run(_run())
    console.print(
        f"[green]Pin {result.comment.id} {result.status}[/green]: comment {format_range(result.comment.comment_range)}"
        f" -> code {format_range(result.comment.code_range)}"
    )


def unlink(
    file: Annotated[Path, typer.Argument(help="Source file.")],
    comment_id: Annotated[int, typer.Argument(help="Pin id, see `code-couplet pins`.")],
) -> None:
    """Remove a pin."""
    workspace = build_workspace()

    async def _run():
        index = await workspace.index_for(file)
        return await index.unlink(file, comment_id)

    with couplet_errors():
        result = asyncio.run(_run())
    if result.status == "not found":
        console.print(f"[yellow]No pin with id {comment_id}[/yellow]")
        raise typer.Exit(1)
    console.print(f"[green]Removed pin {comment_id}[/green] from {result.location}")


def fix(
    file: Annotated[Path, typer.Argument(help="Source file.")],
    comment_id: Annotated[int, typer.Argument(help="Pin id to move.")],
) -> None:
    """Move a mismatched pin to where its stored text now lives."""
    workspace = build_workspace()

    async def _run():
        index = await workspace.index_for(file)
        findings = await index.get_mismatches(file)
        finding = next((f for f in findings if f.comment_id == comment_id), None)
        if finding is None:
            raise LinkError(f"pin {comment_id} matches its document, nothing to fix")
        if finding.move_fix is None:
            raise LinkError(f"the stored text of pin {comment_id} was not found, relink it instead")
        return await index.accept_move_fix(file, comment_id, finding.move_fix)

    with couplet_errors():
        pin = asyncio.run(_run())
    console.print(
        f"[green]Moved pin {pin.id}[/green]: comment {format_range(pin.comment_range)}"
        f" -> code {format_range(pin.code_range)}"
    )
