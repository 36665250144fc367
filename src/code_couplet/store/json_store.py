from __future__ import annotations

import asyncio
import hashlib
import logging
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path

from code_couplet.errors import ConcurrentModificationError, DecodeError
from code_couplet.models import EMPTY_SCHEMA_HASH, SchemaFile, StoredMapping
from code_couplet.store.paths import MAPPING_SUFFIX, inverse, map_to_storage_path, mappings_dir

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SaveResult:
    location: Path
    content_hash: str


@dataclass
class LoadAllResult:
    mappings: dict[Path, StoredMapping] = field(default_factory=dict)
    errors: dict[Path, DecodeError] = field(default_factory=dict)


def serialize_schema(schema: SchemaFile) -> bytes:
    return (schema.model_dump_json(by_alias=True, indent=2) + "\n").encode("utf-8")


def compute_content_hash(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def decode_schema(data: bytes, path: Path) -> SchemaFile:
    try:
        return SchemaFile.model_validate_json(data)
    except ValueError as exc:
        raise DecodeError(path, str(exc)) from exc


def _read_bytes(path: Path) -> bytes | None:
    try:
        return path.read_bytes()
    except FileNotFoundError:
        return None


def _write_atomic(path: Path, data: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, temp_name = tempfile.mkstemp(dir=path.parent, prefix=".tmp-", suffix=MAPPING_SUFFIX)
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(data)
        os.replace(temp_name, path)
    except BaseException:
        Path(temp_name).unlink(missing_ok=True)
        raise


class JsonSchemaStore:
    """Reads and writes one JSON mapping per source file under its save root.

    Saves are guarded by content hash: a caller that passes ``expected_hash``
    gets ``ConcurrentModificationError`` instead of overwriting a file that
    changed since it was read.
    """

    async def load(self, root: Path, source_path: Path) -> StoredMapping | None:
        location = map_to_storage_path(root, source_path)
        data = await asyncio.to_thread(_read_bytes, location)
        if data is None:
            return None
        return StoredMapping(schema=decode_schema(data, location), content_hash=compute_content_hash(data))

    async def current_hash(self, root: Path, source_path: Path) -> str:
        data = await asyncio.to_thread(_read_bytes, map_to_storage_path(root, source_path))
        return EMPTY_SCHEMA_HASH if data is None else compute_content_hash(data)

    async def save(
        self,
        root: Path,
        source_path: Path,
        schema: SchemaFile,
        expected_hash: str | None = None,
    ) -> SaveResult:
        location = map_to_storage_path(root, source_path)
        if expected_hash is not None:
            actual = await self.current_hash(root, source_path)
            if actual != expected_hash:
                raise ConcurrentModificationError(source_path, expected_hash, actual)
        data = serialize_schema(schema)
        await asyncio.to_thread(_write_atomic, location, data)
        content_hash = compute_content_hash(data)
        logger.info("Saved %d pin(s) for %s to %s", len(schema.comments), source_path, location)
        return SaveResult(location=location, content_hash=content_hash)

    async def delete(self, root: Path, source_path: Path) -> bool:
        location = map_to_storage_path(root, source_path)
        try:
            await asyncio.to_thread(location.unlink)
        except FileNotFoundError:
            return False
        logger.info("Deleted mapping %s", location)
        return True

    async def load_all(self, root: Path) -> LoadAllResult:
        """Load every mapping under ``root``; files that fail to decode are reported, not raised."""
        result = LoadAllResult()
        folder = mappings_dir(root)
        entries = await asyncio.to_thread(lambda: sorted(folder.glob(f"*{MAPPING_SUFFIX}")) if folder.is_dir() else [])
        for location in entries:
            if location.name.startswith(".tmp-"):
                continue
            source_path = inverse(location)
            data = await asyncio.to_thread(_read_bytes, location)
            if data is None:
                continue
            try:
                schema = decode_schema(data, location)
            except DecodeError as exc:
                logger.warning("Skipping mapping %s: %s", location, exc.reason)
                result.errors[source_path] = exc
                continue
            result.mappings[source_path] = StoredMapping(schema=schema, content_hash=compute_content_hash(data))
        logger.info("Loaded %d mapping(s) from %s", len(result.mappings), folder)
        return result
