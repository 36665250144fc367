from __future__ import annotations

import asyncio
from collections.abc import Iterable
from pathlib import Path

from code_couplet.core.text import TextDocument
from code_couplet.models import TextEdit
from code_couplet.store.paths import normalize_path


def _read_document(path: Path) -> str:
    data = path.read_bytes()
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError:
        return data.decode("utf-8", errors="replace")


class BufferedDocuments:
    """Serves open editor buffers first and falls back to the file on disk.

    Implements the ``DocumentProvider`` protocol.
    """

    def __init__(self) -> None:
        self._buffers: dict[Path, TextDocument] = {}

    def is_open(self, path: Path) -> bool:
        return normalize_path(path) in self._buffers

    def open_buffer(self, path: Path, text: str) -> TextDocument:
        path = normalize_path(path)
        document = TextDocument(text, path=str(path))
        self._buffers[path] = document
        return document

    def close_buffer(self, path: Path) -> None:
        self._buffers.pop(normalize_path(path), None)

    def apply_edits(self, path: Path, edits: Iterable[TextEdit]) -> TextDocument:
        path = normalize_path(path)
        try:
            document = self._buffers[path]
        except KeyError:
            raise KeyError(f"{path} is not open") from None
        for edit in edits:
            document = document.apply_edit(edit)
        self._buffers[path] = document
        return document

    async def open_document(self, path: Path) -> TextDocument:
        path = normalize_path(path)
        document = self._buffers.get(path)
        if document is not None:
            return document
        text = await asyncio.to_thread(_read_document, path)
        return TextDocument(text, path=str(path))
