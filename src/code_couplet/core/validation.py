"""Compare stored pin values with live document text.

``validate`` performs no I/O and never mutates the schema. Callers open every
document it needs first (see ``code_paths_for``) and pass snapshots in.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Literal

from code_couplet.core.text import TextDocument
from code_couplet.errors import OutOfBoundsRangeError
from code_couplet.models import Comment, ErrorType, Finding, Location, MoveFix, PinText, Range, SchemaFile
from code_couplet.store.paths import resolve_code_path

logger = logging.getLogger(__name__)


def classify_mismatch(comment_matches: bool, code_matches: bool) -> ErrorType:
    if comment_matches and code_matches:
        return ErrorType.NONE
    if code_matches:
        return ErrorType.COMMENT_MISMATCH
    if comment_matches:
        return ErrorType.CODE_MISMATCH
    return ErrorType.BOTH_MISMATCH


def code_paths_for(schema: SchemaFile, comment_path: Path) -> set[Path]:
    """Every document other than ``comment_path`` that holds code for one of its pins."""
    paths = {resolve_code_path(comment_path, c.code_relative_path) for c in schema.comments}
    paths.discard(comment_path)
    return paths


def _read(document: TextDocument, range_: Range) -> str | None:
    try:
        return document.get_text(range_)
    except OutOfBoundsRangeError:
        return None


def validate_comment(
    comment: Comment,
    comment_document: TextDocument,
    code_document: TextDocument,
    *,
    comment_path: Path,
    code_path: Path,
) -> Finding | None:
    actual_comment = _read(comment_document, comment.comment_range)
    actual_code = _read(code_document, comment.code_range)
    comment_matches = actual_comment == comment.comment_value
    code_matches = actual_code == comment.code_value
    error_type = classify_mismatch(comment_matches, code_matches)
    if error_type is ErrorType.NONE:
        return None

    out_of_bounds: list[Literal["comment", "code"]] = []
    if actual_comment is None:
        out_of_bounds.append("comment")
    if actual_code is None:
        out_of_bounds.append("code")

    # First occurrence wins, even when the value appears more than once.
    move_fix = MoveFix(
        comment=None if comment_matches else comment_document.find(comment.comment_value),
        code=None if code_matches else code_document.find(comment.code_value),
    )
    return Finding(
        comment_id=comment.id,
        error_type=error_type,
        comment_location=Location(path=str(comment_path), range=comment.comment_range.model_copy(deep=True)),
        code_location=Location(path=str(code_path), range=comment.code_range.model_copy(deep=True)),
        actual=PinText(comment=actual_comment or "", code=actual_code or ""),
        expected=PinText(comment=comment.comment_value, code=comment.code_value),
        move_fix=move_fix if move_fix.comment is not None or move_fix.code is not None else None,
        out_of_bounds=out_of_bounds,
    )


def validate(
    comment_document: TextDocument,
    schema: SchemaFile,
    *,
    comment_path: Path,
    code_documents: Mapping[Path, TextDocument] | None = None,
    should_cancel: Callable[[], bool] | None = None,
) -> list[Finding]:
    """Return one finding per drifted pin, in schema order.

    ``should_cancel`` is polled between pins; when it returns True the findings
    gathered so far are returned.
    """
    code_documents = code_documents or {}
    findings: list[Finding] = []
    for comment in schema.comments:
        if should_cancel is not None and should_cancel():
            logger.debug("Validation of %s cancelled after %d finding(s)", comment_path, len(findings))
            break
        code_path = resolve_code_path(comment_path, comment.code_relative_path)
        if code_path == comment_path:
            code_document = comment_document
        else:
            try:
                code_document = code_documents[code_path]
            except KeyError:
                raise KeyError(f"no document supplied for code path {code_path}") from None
        finding = validate_comment(
            comment,
            comment_document,
            code_document,
            comment_path=comment_path,
            code_path=code_path,
        )
        if finding is not None:
            findings.append(finding)
    return findings
