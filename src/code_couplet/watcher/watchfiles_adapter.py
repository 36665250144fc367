from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable, Coroutine
from pathlib import Path
from typing import Any

from watchfiles import Change, awatch

from code_couplet.core.languages import _EXTENSION_LANGUAGE_MAP
from code_couplet.store.paths import MAPPING_SUFFIX, MAPPINGS_DIR_NAME

logger = logging.getLogger(__name__)

_SUPPORTED_EXTENSIONS: frozenset[str] = frozenset(_EXTENSION_LANGUAGE_MAP.keys())

_IGNORED_DIRS: frozenset[str] = frozenset({".git", ".hg", ".svn", "node_modules", "__pycache__"})


def _is_mapping_file(path: Path) -> bool:
    return path.parent.name == MAPPINGS_DIR_NAME and path.name.endswith(MAPPING_SUFFIX)


def _is_supported_file(path: Path) -> bool:
    if any(part in _IGNORED_DIRS or part == MAPPINGS_DIR_NAME for part in path.parts):
        return False
    return path.suffix in _SUPPORTED_EXTENSIONS


class WatchfilesWatcher:
    """Watch a project for saved source files and mapping files changed on disk.

    ``on_change`` receives two sets: changed source files, then changed mapping
    files. Deleted mapping files are reported too. Implements the
    ``FileWatcherPort`` protocol.
    """

    def __init__(
        self,
        directory: str | Path,
        on_change: Callable[[set[Path], set[Path]], Coroutine[Any, Any, None]],
    ) -> None:
        self._directory = Path(directory)
        self._on_change = on_change
        self._task: asyncio.Task[None] | None = None

    async def start(self) -> None:
        if self._task is not None:
            return
        self._task = asyncio.create_task(self._watch())
        logger.info("Watcher started for %s", self._directory)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        logger.info("Watcher stopped for %s", self._directory)

    async def _watch(self) -> None:
        async for changes in awatch(self._directory):
            sources: set[Path] = set()
            mappings: set[Path] = set()
            for change, raw in changes:
                path = Path(raw)
                if _is_mapping_file(path):
                    # Atomic writes leave a temp file behind only until the rename.
                    if not path.name.startswith(".tmp-"):
                        mappings.add(path)
                elif _is_supported_file(path) and change != Change.deleted:
                    sources.add(path)
            if not sources and not mappings:
                continue
            logger.info("Detected changes in %d source and %d mapping file(s)", len(sources), len(mappings))
            try:
                await self._on_change(sources, mappings)
            except Exception:
                logger.exception("Error in watcher callback")
