from pathlib import Path
from typing import Protocol

from code_couplet.models import SchemaFile, StoredMapping
from code_couplet.store.json_store import LoadAllResult, SaveResult


class MappingStore(Protocol):
    async def load(self, root: Path, source_path: Path) -> StoredMapping | None: ...

    async def current_hash(self, root: Path, source_path: Path) -> str: ...

    async def save(
        self,
        root: Path,
        source_path: Path,
        schema: SchemaFile,
        expected_hash: str | None = None,
    ) -> SaveResult: ...

    async def delete(self, root: Path, source_path: Path) -> bool: ...

    async def load_all(self, root: Path) -> LoadAllResult: ...
