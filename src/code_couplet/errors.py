"""Exceptions raised by the coupling engine.

A missing mapping file is not an error: ``JsonSchemaStore.load`` returns ``None``.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from code_couplet.models import Range


class CoupletError(Exception):
    """Base exception for code-couplet."""

    error_code: str = "COUPLET_ERROR"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class DecodeError(CoupletError):
    """Persisted mapping bytes are not a valid schema document."""

    error_code: str = "DECODE_ERROR"

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"could not decode mapping {path}: {reason}")


class PathOutsideRootError(CoupletError):
    """A source path was mapped against a root that does not contain it."""

    error_code: str = "PATH_OUTSIDE_ROOT"

    def __init__(self, root: Path, path: Path) -> None:
        self.root = root
        self.path = path
        super().__init__(f"{path} is not located under save root {root}")


class UnmappablePathError(CoupletError):
    """The relative path already contains the separator token, so it cannot be inverted."""

    error_code: str = "UNMAPPABLE_PATH"

    def __init__(self, path: Path, token: str) -> None:
        self.path = path
        self.token = token
        super().__init__(f"{path} contains the reserved token {token!r}")


class ConcurrentModificationError(CoupletError):
    """The mapping on disk changed since it was last seen."""

    error_code: str = "CONCURRENT_MODIFICATION"

    def __init__(self, path: Path, expected_hash: str | None, actual_hash: str) -> None:
        self.path = path
        self.expected_hash = expected_hash
        self.actual_hash = actual_hash
        super().__init__(f"mapping for {path} changed outside the editor, reload before saving")


class OutOfBoundsRangeError(CoupletError):
    """A tracked range no longer fits inside the document."""

    error_code: str = "OUT_OF_BOUNDS_RANGE"

    def __init__(self, range_: Range, line_count: int) -> None:
        self.range = range_
        self.line_count = line_count
        super().__init__(
            f"range {range_.start.line}:{range_.start.char}-{range_.end.line}:{range_.end.char} "
            f"is outside a document of {line_count} line(s)"
        )


class LinkError(CoupletError):
    """A selection cannot be turned into a pin."""

    error_code: str = "LINK_ERROR"
