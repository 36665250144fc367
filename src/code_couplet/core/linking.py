"""Building and editing pins inside a schema."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from code_couplet.core.text import TextDocument
from code_couplet.errors import LinkError
from code_couplet.models import Comment, PinKind, Range, SchemaFile, make_range


@dataclass(frozen=True)
class Selection:
    path: Path
    range: Range


@dataclass(frozen=True)
class LinkResult:
    status: Literal["added", "updated"]
    comment: Comment
    location: Path


@dataclass(frozen=True)
class UnlinkResult:
    status: Literal["removed", "not found"]
    location: Path | None = None


def next_id(schema: SchemaFile) -> int:
    return max((c.id for c in schema.comments), default=-1) + 1


def find_pin(schema: SchemaFile, comment_id: int) -> Comment | None:
    return next((c for c in schema.comments if c.id == comment_id), None)


def find_pin_by_ranges(
    schema: SchemaFile, comment_range: Range, code_range: Range, code_relative_path: str
) -> Comment | None:
    for comment in schema.comments:
        if (
            comment.comment_range == comment_range
            and comment.code_range == code_range
            and comment.code_relative_path == code_relative_path
        ):
            return comment
    return None


def upsert_pin(
    schema: SchemaFile,
    *,
    comment_range: Range,
    comment_value: str,
    code_range: Range,
    code_value: str,
    code_relative_path: str,
    kind: PinKind | None = None,
) -> tuple[Literal["added", "updated"], Comment]:
    """Add a pin, or refresh the stored values of the pin with the same ranges."""
    existing = find_pin_by_ranges(schema, comment_range, code_range, code_relative_path)
    if existing is not None:
        existing.comment_value = comment_value
        existing.code_value = code_value
        if kind is not None:
            existing.kind = kind
        return "updated", existing
    # Ranges are shifted in place later, so a pin must never share a Range with its caller.
    comment = Comment(
        id=next_id(schema),
        comment_range=comment_range.model_copy(deep=True),
        comment_value=comment_value,
        code_range=code_range.model_copy(deep=True),
        code_value=code_value,
        code_relative_path=code_relative_path,
    )
    if kind is not None:
        comment.kind = kind
    schema.comments.append(comment)
    return "added", comment


def remove_pin(schema: SchemaFile, comment_id: int) -> bool:
    for index, comment in enumerate(schema.comments):
        if comment.id == comment_id:
            del schema.comments[index]
            return True
    return False


def whole_lines(document: TextDocument, start_line: int, end_line: int) -> Range:
    return make_range(start_line, 0, end_line, document.line_length(end_line))


def find_comment_code_blocks(
    document: TextDocument, comment_lines: set[int], start_line: int, end_line: int
) -> tuple[Range, Range]:
    """Split ``start_line..end_line`` into one comment block followed by one code block.

    Blank lines are skipped; both ranges cover whole lines.
    """
    if start_line < 0 or end_line >= document.line_count or start_line > end_line:
        raise LinkError(f"lines {start_line}-{end_line} are outside the document")
    comment_span: tuple[int, int] | None = None
    code_span: tuple[int, int] | None = None
    for line in range(start_line, end_line + 1):
        if line in comment_lines:
            if code_span is not None:
                raise LinkError(
                    "multiple comment blocks detected, expected one comment block followed by a code block"
                )
            comment_span = (comment_span[0] if comment_span else line, line)
        elif document.line_at(line).strip():
            if comment_span is None:
                raise LinkError("code seen before comment, expected a comment first")
            code_span = (code_span[0] if code_span else line, line)
    if comment_span is None:
        raise LinkError("no comment block found in selection")
    if code_span is None:
        raise LinkError("no code block found in selection")
    return whole_lines(document, *comment_span), whole_lines(document, *code_span)
