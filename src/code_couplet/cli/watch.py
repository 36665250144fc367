import asyncio
import logging
from pathlib import Path
from typing import Annotated

import typer

from code_couplet.cli.render import ConsoleSink, console, print_error
from code_couplet.config import get_settings
from code_couplet.core.index import CouplingWorkspace
from code_couplet.documents.buffers import BufferedDocuments
from code_couplet.errors import CoupletError
from code_couplet.store.json_store import JsonSchemaStore
from code_couplet.store.paths import inverse
from code_couplet.watcher.watchfiles_adapter import WatchfilesWatcher

logger = logging.getLogger(__name__)


async def revalidate_changes(workspace: CouplingWorkspace, sources: set[Path], mappings: set[Path]) -> None:
    """Reload mappings changed on disk, then revalidate every affected source file.

    A mapping that fails to reload is reported and skipped; the rest of the batch still runs.
    """
    for mapping in sorted(mappings):
        source = inverse(mapping)
        try:
            index = await workspace.index_for(source)
            await index.reload(source)
        except CoupletError as exc:
            print_error(exc)
            sources.discard(source)
            continue
        sources.add(source)
    for source in sorted(sources):
        try:
            await workspace.get_mismatches(source)
        except FileNotFoundError:
            logger.info("Skipping %s, it no longer exists", source)
        except CoupletError as exc:
            print_error(exc)


def watch(
    directory: Annotated[Path, typer.Argument(help="Directory to watch.")] = Path("."),
) -> None:
    """Revalidate pins whenever source or mapping files change."""
    workspace = CouplingWorkspace(
        JsonSchemaStore(),
        BufferedDocuments(),
        known_roots=get_settings().known_roots,
        sink=ConsoleSink(),
    )

    async def _on_change(sources: set[Path], mappings: set[Path]) -> None:
        await revalidate_changes(workspace, sources, mappings)

    async def _run() -> None:
        watcher = WatchfilesWatcher(directory, _on_change)
        await watcher.start()
        try:
            await asyncio.Event().wait()
        finally:
            await watcher.stop()

    console.print(f"[green]Watching {directory}[/green] (Ctrl+C to stop)")
    try:
        asyncio.run(_run())
    except KeyboardInterrupt:
        console.print("Stopped")
