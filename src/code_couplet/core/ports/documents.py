from pathlib import Path
from typing import Protocol

from code_couplet.core.text import TextDocument
from code_couplet.models import Finding


class DocumentProvider(Protocol):
    async def open_document(self, path: Path) -> TextDocument: ...


class FindingsSink(Protocol):
    def publish(self, path: Path, findings: list[Finding]) -> None: ...
