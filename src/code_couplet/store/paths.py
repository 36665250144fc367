"""Where mapping files live.

Every source file under a save root gets one flat JSON file inside
``<root>/.cc_mappings``. Its name is the root-relative path with separators
replaced by ``cCCc``, so ``src/a/b.ts`` is stored as ``srccCCcacCCcb.ts.json``.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Sequence
from pathlib import Path

from code_couplet.errors import PathOutsideRootError, UnmappablePathError

logger = logging.getLogger(__name__)

MAPPINGS_DIR_NAME = ".cc_mappings"
PATH_TRANSFORM_FRAGMENT = "cCCc"
MAPPING_SUFFIX = ".json"
VCS_MARKERS = (".git", ".svn", ".hg")


def normalize_path(path: str | os.PathLike[str]) -> Path:
    return Path(os.path.abspath(path))


def find_closest_parent_containing(start: Path, folder_name: str) -> Path | None:
    """Closest ancestor of ``start`` (itself included when it is a directory) holding ``folder_name``."""
    parent = start if start.is_dir() else start.parent
    for candidate in (parent, *parent.parents):
        if (candidate / folder_name).exists():
            return candidate
    return None


def resolve_storage_root(source_path: Path, known_roots: Sequence[Path] | None = None) -> Path:
    """Pick the save root for ``source_path``.

    In order: the closest version-control root, the longest known project root
    containing the path, the closest folder that already holds mappings, and
    finally the source file's own directory.
    """
    source_path = normalize_path(source_path)
    repo_roots = [root for marker in VCS_MARKERS if (root := find_closest_parent_containing(source_path, marker))]
    if repo_roots:
        return max(repo_roots, key=lambda root: len(root.parts))

    for known in sorted((normalize_path(r) for r in known_roots or ()), key=lambda r: len(r.parts), reverse=True):
        if source_path.is_relative_to(known):
            return known

    mappings_root = find_closest_parent_containing(source_path, MAPPINGS_DIR_NAME)
    if mappings_root is not None:
        return mappings_root

    return source_path.parent


class RootResolver:
    """Caches ``resolve_storage_root`` per source path until ``reset``."""

    def __init__(self, known_roots: Sequence[Path] | None = None) -> None:
        self.known_roots = [normalize_path(r) for r in known_roots or ()]
        self._cache: dict[Path, Path] = {}

    def resolve(self, source_path: Path) -> Path:
        source_path = normalize_path(source_path)
        root = self._cache.get(source_path)
        if root is None:
            root = resolve_storage_root(source_path, self.known_roots)
            logger.debug("Save root for %s is %s", source_path, root)
            self._cache[source_path] = root
        return root

    def reset(self) -> None:
        self._cache.clear()


def mappings_dir(root: Path) -> Path:
    return normalize_path(root) / MAPPINGS_DIR_NAME


def map_to_storage_path(root: Path, source_path: Path) -> Path:
    root = normalize_path(root)
    source_path = normalize_path(source_path)
    try:
        relative = source_path.relative_to(root)
    except ValueError:
        raise PathOutsideRootError(root, source_path) from None
    parts = relative.parts
    if not parts:
        raise PathOutsideRootError(root, source_path)
    flat = PATH_TRANSFORM_FRAGMENT.join(parts)
    if flat.split(PATH_TRANSFORM_FRAGMENT) != list(parts):
        raise UnmappablePathError(relative, PATH_TRANSFORM_FRAGMENT)
    return root / MAPPINGS_DIR_NAME / f"{flat}{MAPPING_SUFFIX}"


def inverse(storage_path: Path) -> Path:
    storage_path = normalize_path(storage_path)
    name = storage_path.name
    if storage_path.parent.name != MAPPINGS_DIR_NAME or not name.endswith(MAPPING_SUFFIX):
        raise ValueError(f"{storage_path} is not a mapping file")
    root = storage_path.parent.parent
    return root.joinpath(*name[: -len(MAPPING_SUFFIX)].split(PATH_TRANSFORM_FRAGMENT))


def resolve_code_path(comment_path: Path, code_relative_path: str) -> Path:
    if not code_relative_path:
        return comment_path
    return normalize_path(comment_path.parent / code_relative_path)


def code_relative_path(comment_path: Path, code_path: Path) -> str:
    comment_path = normalize_path(comment_path)
    code_path = normalize_path(code_path)
    if comment_path == code_path:
        return ""
    return Path(os.path.relpath(code_path, comment_path.parent)).as_posix()
