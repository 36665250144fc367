"""In-memory pins for a project and their life cycle.

``CouplingIndex`` owns every loaded mapping under one save root. Edits are
applied synchronously in arrival order; loads and saves for a given source
file run one at a time through an ``IOGuard``. ``CouplingWorkspace`` resolves
the save root of each file and hands out one index per root.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from code_couplet.core.comments import find_comment_lines
from code_couplet.core.guard import IOGuard
from code_couplet.core.languages import line_comment_token, resolve_language
from code_couplet.core.linking import (
    LinkResult,
    Selection,
    UnlinkResult,
    find_comment_code_blocks,
    find_pin,
    remove_pin,
    upsert_pin,
)
from code_couplet.core.ports.documents import DocumentProvider, FindingsSink
from code_couplet.core.ports.store import MappingStore
from code_couplet.core.ranges import TrackedRange, apply_edits as translate_edits
from code_couplet.core.text import TextDocument
from code_couplet.core.validation import code_paths_for, validate
from code_couplet.errors import ConcurrentModificationError, DecodeError, LinkError
from code_couplet.models import (
    EMPTY_SCHEMA_HASH,
    Comment,
    Finding,
    MoveFix,
    PinKind,
    SchemaFile,
    TextEdit,
    empty_schema,
)
from code_couplet.store.json_store import LoadAllResult
from code_couplet.store.paths import RootResolver, code_relative_path, normalize_path, resolve_code_path

logger = logging.getLogger(__name__)

# (file holding the pin, pin id, "comment" or "code")
PinKey = tuple[Path, int, str]


class FileState(str, Enum):
    UNLOADED = "unloaded"
    CLEAN = "clean"
    DIRTY = "dirty"
    SAVING = "saving"
    CONFLICT = "conflict"


@dataclass
class EditResult:
    was_updated: bool = False
    needs_revalidation: set[PinKey] = field(default_factory=set)
    dirty: set[Path] = field(default_factory=set)

    def merge(self, other: EditResult) -> None:
        self.was_updated = self.was_updated or other.was_updated
        self.needs_revalidation |= other.needs_revalidation
        self.dirty |= other.dirty


class CollectingSink:
    """Keeps the latest findings per file. Implements ``FindingsSink``."""

    def __init__(self) -> None:
        self.findings: dict[Path, list[Finding]] = {}

    def publish(self, path: Path, findings: list[Finding]) -> None:
        self.findings[path] = findings


class CouplingIndex:
    def __init__(
        self,
        root: Path,
        store: MappingStore,
        documents: DocumentProvider,
        *,
        sink: FindingsSink | None = None,
    ) -> None:
        self.root = normalize_path(root)
        self._store = store
        self._documents = documents
        self._sink = sink
        self._guard = IOGuard()
        self._schemas: dict[Path, SchemaFile] = {}
        self._hashes: dict[Path, str] = {}
        self._dirty: set[Path] = set()
        self._saving: set[Path] = set()
        self._conflicts: set[Path] = set()
        self.decode_errors: dict[Path, DecodeError] = {}

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    def state(self, path: Path) -> FileState:
        path = normalize_path(path)
        if path in self._conflicts:
            return FileState.CONFLICT
        if path in self._saving:
            return FileState.SAVING
        if path in self._dirty:
            return FileState.DIRTY
        if path in self._schemas:
            return FileState.CLEAN
        return FileState.UNLOADED

    def loaded_paths(self) -> list[Path]:
        return sorted(self._schemas)

    def cached_schema(self, path: Path) -> SchemaFile | None:
        return self._schemas.get(normalize_path(path))

    def last_seen_hash(self, path: Path) -> str | None:
        return self._hashes.get(normalize_path(path))

    def reset(self) -> None:
        self._guard = IOGuard()
        self._schemas.clear()
        self._hashes.clear()
        self._dirty.clear()
        self._saving.clear()
        self._conflicts.clear()
        self.decode_errors.clear()

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def _remember(self, path: Path, schema: SchemaFile, content_hash: str) -> None:
        self._schemas[path] = schema
        self._hashes[path] = content_hash

    async def load_existing(self) -> LoadAllResult:
        """Load every mapping stored under the root so cross-file code targets are known."""
        result = await self._store.load_all(self.root)
        for source, stored in result.mappings.items():
            if source not in self._schemas:
                self._remember(source, stored.schema, stored.content_hash)
        self.decode_errors.update(result.errors)
        return result

    async def _load_locked(self, path: Path) -> SchemaFile:
        stored = await self._store.load(self.root, path)
        if stored is None:
            schema, content_hash = empty_schema(), EMPTY_SCHEMA_HASH
        else:
            schema, content_hash = stored.schema, stored.content_hash
        self._remember(path, schema, content_hash)
        self.decode_errors.pop(path, None)
        return schema

    async def _schema_locked(self, path: Path) -> SchemaFile:
        schema = self._schemas.get(path)
        if schema is None:
            schema = await self._load_locked(path)
        return schema

    async def get_schema(self, path: Path) -> SchemaFile:
        path = normalize_path(path)
        schema = self._schemas.get(path)
        if schema is not None:
            return schema
        async with self._guard.hold(path):
            return await self._schema_locked(path)

    async def reload(self, path: Path) -> SchemaFile:
        """Replace the cached mapping with the stored one, dropping unsaved range updates."""
        path = normalize_path(path)
        async with self._guard.hold(path):
            schema = await self._load_locked(path)
            self._dirty.discard(path)
            self._conflicts.discard(path)
        logger.info("Reloaded mapping for %s", path)
        return schema

    # ------------------------------------------------------------------
    # Edits
    # ------------------------------------------------------------------

    def _tracked_ranges(self, path: Path) -> list[TrackedRange]:
        tracked: list[TrackedRange] = []
        for source, schema in self._schemas.items():
            for comment in schema.comments:
                if source == path:
                    tracked.append(TrackedRange((source, comment.id, "comment"), comment.comment_range))
                if resolve_code_path(source, comment.code_relative_path) == path:
                    tracked.append(TrackedRange((source, comment.id, "code"), comment.code_range))
        return tracked

    def referrers(self, path: Path) -> list[Path]:
        """Other loaded files holding pins whose code lives in ``path``."""
        path = normalize_path(path)
        return sorted(
            source
            for source, schema in self._schemas.items()
            if source != path
            and any(resolve_code_path(source, c.code_relative_path) == path for c in schema.comments)
        )

    def apply_edits(self, path: Path, edits: Iterable[TextEdit]) -> EditResult:
        """Shift every loaded range that lives in ``path``. Never suspends."""
        path = normalize_path(path)
        tracked = self._tracked_ranges(path)
        if not tracked:
            return EditResult()
        translated = translate_edits(edits, tracked)
        dirty = {key[0] for key in translated.updated}
        self._dirty |= dirty
        return EditResult(
            was_updated=translated.was_updated,
            needs_revalidation=set(translated.needs_revalidation),
            dirty=dirty,
        )

    # ------------------------------------------------------------------
    # Saving
    # ------------------------------------------------------------------

    async def save_schema(self, path: Path, schema: SchemaFile, *, check_hash: bool = True) -> Path:
        path = normalize_path(path)
        async with self._guard.hold(path):
            return await self._save_locked(path, schema, check_hash=check_hash)

    async def _save_locked(self, path: Path, schema: SchemaFile, *, check_hash: bool) -> Path:
        if path in self._conflicts:
            actual = await self._store.current_hash(self.root, path)
            raise ConcurrentModificationError(path, self._hashes.get(path), actual)
        expected = self._hashes.get(path) if check_hash else None
        self._dirty.discard(path)
        self._saving.add(path)
        # Edits arriving during the write must land on the object being written.
        self._schemas[path] = schema
        try:
            result = await self._store.save(self.root, path, schema, expected_hash=expected)
        except ConcurrentModificationError:
            self._conflicts.add(path)
            self._dirty.add(path)
            raise
        except Exception:
            self._dirty.add(path)
            raise
        finally:
            self._saving.discard(path)
        self._hashes[path] = result.content_hash
        logger.debug("Saved schema to %s", result.location)
        return result.location

    async def _save_dirty(self, paths: Iterable[Path]) -> None:
        owners = [p for p in paths if p in self._dirty]
        if owners:
            await asyncio.gather(*(self.save_schema(p, self._schemas[p], check_hash=True) for p in owners))

    async def handle_save(self, path: Path, should_cancel: Callable[[], bool] | None = None) -> list[Finding]:
        """Persist every dirty mapping with ranges in ``path``, then revalidate it."""
        path = normalize_path(path)
        await self._save_dirty([path, *self.referrers(path)])
        return await self.get_mismatches(path, should_cancel=should_cancel)

    async def handle_referenced_save(self, path: Path, should_cancel: Callable[[], bool] | None = None) -> None:
        """A file saved under another root holds code for pins kept here."""
        path = normalize_path(path)
        await self._save_dirty(self.referrers(path))
        await self.revalidate_referrers(path, should_cancel)

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    async def _open_code_document(self, path: Path) -> TextDocument:
        try:
            return await self._documents.open_document(path)
        except FileNotFoundError:
            logger.warning("Code file %s is missing, its pins are reported as out of bounds", path)
            return TextDocument("", path=str(path))

    async def _validate_file(
        self, path: Path, schema: SchemaFile, should_cancel: Callable[[], bool] | None
    ) -> list[Finding]:
        document = await self._documents.open_document(path)
        code_documents = {p: await self._open_code_document(p) for p in code_paths_for(schema, path)}
        findings = validate(
            document,
            schema,
            comment_path=path,
            code_documents=code_documents,
            should_cancel=should_cancel,
        )
        if self._sink is not None:
            self._sink.publish(path, findings)
        return findings

    async def revalidate_referrers(self, path: Path, should_cancel: Callable[[], bool] | None = None) -> None:
        """Revalidate each file whose pins point at code in ``path``; one failure does not stop the rest."""
        sources = self.referrers(path)
        if not sources:
            return
        results = await asyncio.gather(
            *(self._validate_file(source, self._schemas[source], should_cancel) for source in sources),
            return_exceptions=True,
        )
        for source, outcome in zip(sources, results, strict=True):
            if isinstance(outcome, BaseException):
                logger.warning("Could not revalidate %s: %s", source, outcome)

    async def get_mismatches(self, path: Path, should_cancel: Callable[[], bool] | None = None) -> list[Finding]:
        path = normalize_path(path)
        schema = await self.get_schema(path)
        findings = await self._validate_file(path, schema, should_cancel)
        await self.revalidate_referrers(path, should_cancel)
        return findings

    # ------------------------------------------------------------------
    # Pins
    # ------------------------------------------------------------------

    async def _editable_copy(self, path: Path) -> SchemaFile:
        """Deep copy of the cached mapping, to be changed and saved under the guard for ``path``."""
        schema = await self._schema_locked(path)
        # A conflicted file is refused by the save itself with ConcurrentModificationError.
        if path in self._dirty and path not in self._conflicts:
            raise LinkError(f"{path} has unsaved range updates, save it before changing its pins")
        return schema.model_copy(deep=True)

    async def link(self, comment: Selection, code: Selection, *, kind: PinKind | None = None) -> LinkResult:
        comment_path = normalize_path(comment.path)
        code_path = normalize_path(code.path)
        comment_document = await self._documents.open_document(comment_path)
        code_document = await self._documents.open_document(code_path)
        comment_value = comment_document.get_text(comment.range)
        code_value = code_document.get_text(code.range)
        async with self._guard.hold(comment_path):
            schema = await self._editable_copy(comment_path)
            schema.configuration.line_comment = line_comment_token(resolve_language(None, comment_path))
            status, pin = upsert_pin(
                schema,
                comment_range=comment.range,
                comment_value=comment_value,
                code_range=code.range,
                code_value=code_value,
                code_relative_path=code_relative_path(comment_path, code_path),
                kind=kind,
            )
            location = await self._save_locked(comment_path, schema, check_hash=True)
        return LinkResult(status=status, comment=pin, location=location)

    async def auto_link(self, path: Path, start_line: int, end_line: int) -> LinkResult:
        """Pin the single comment block inside ``start_line..end_line`` to the code block after it."""
        path = normalize_path(path)
        document = await self._documents.open_document(path)
        language = resolve_language(None, path)
        comment_lines = find_comment_lines(document.text, language, line_comment_token(language))
        comment_range, code_range = find_comment_code_blocks(document, comment_lines, start_line, end_line)
        return await self.link(Selection(path, comment_range), Selection(path, code_range))

    async def unlink(self, path: Path, comment_id: int) -> UnlinkResult:
        path = normalize_path(path)
        async with self._guard.hold(path):
            schema = await self._editable_copy(path)
            if not remove_pin(schema, comment_id):
                return UnlinkResult(status="not found")
            location = await self._save_locked(path, schema, check_hash=True)
        return UnlinkResult(status="removed", location=location)

    async def accept_move_fix(self, path: Path, comment_id: int, move_fix: MoveFix) -> Comment:
        """Point a pin at the ranges proposed by a finding's move-fix and persist it."""
        path = normalize_path(path)
        async with self._guard.hold(path):
            schema = await self._editable_copy(path)
            pin = find_pin(schema, comment_id)
            if pin is None:
                raise LinkError(f"no pin with id {comment_id} in {path}")
            if move_fix.comment is not None:
                pin.comment_range = move_fix.comment.model_copy(deep=True)
            if move_fix.code is not None:
                pin.code_range = move_fix.code.model_copy(deep=True)
            await self._save_locked(path, schema, check_hash=True)
        return pin


class CouplingWorkspace:
    """Hands out one ``CouplingIndex`` per save root and routes file events to them."""

    def __init__(
        self,
        store: MappingStore,
        documents: DocumentProvider,
        *,
        known_roots: Sequence[Path] = (),
        sink: FindingsSink | None = None,
    ) -> None:
        self._store = store
        self._documents = documents
        self._sink = sink
        self.resolver = RootResolver(known_roots)
        self._indexes: dict[Path, CouplingIndex] = {}
        self._guard = IOGuard()

    @property
    def indexes(self) -> list[CouplingIndex]:
        return list(self._indexes.values())

    async def index_for(self, path: Path) -> CouplingIndex:
        root = await asyncio.to_thread(self.resolver.resolve, path)
        index = self._indexes.get(root)
        if index is not None:
            return index
        async with self._guard.hold(root):
            index = self._indexes.get(root)
            if index is None:
                index = CouplingIndex(root, self._store, self._documents, sink=self._sink)
                await index.load_existing()
                self._indexes[root] = index
        return index

    async def get_schema(self, path: Path) -> SchemaFile:
        return await (await self.index_for(path)).get_schema(path)

    async def save_schema(self, path: Path, schema: SchemaFile, *, check_hash: bool = True) -> Path:
        return await (await self.index_for(path)).save_schema(path, schema, check_hash=check_hash)

    def apply_edits(self, path: Path, edits: Iterable[TextEdit]) -> EditResult:
        """Apply edits to every loaded index, since pins in one root may point at code in another."""
        edits = list(edits)
        result = EditResult()
        for index in self._indexes.values():
            result.merge(index.apply_edits(path, edits))
        return result

    async def get_mismatches(self, path: Path, should_cancel: Callable[[], bool] | None = None) -> list[Finding]:
        own = await self.index_for(path)
        findings = await own.get_mismatches(path, should_cancel=should_cancel)
        others = [index for index in self._indexes.values() if index is not own]
        await asyncio.gather(*(index.revalidate_referrers(path, should_cancel) for index in others))
        return findings

    async def handle_save(self, path: Path, should_cancel: Callable[[], bool] | None = None) -> list[Finding]:
        own = await self.index_for(path)
        findings = await own.handle_save(path, should_cancel=should_cancel)
        others = [index for index in self._indexes.values() if index is not own]
        await asyncio.gather(*(index.handle_referenced_save(path, should_cancel) for index in others))
        return findings

    def reset(self) -> None:
        for index in self._indexes.values():
            index.reset()
        self._indexes.clear()
        self.resolver.reset()
        self._guard = IOGuard()
