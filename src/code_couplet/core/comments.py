"""Find which lines of a source file are comments."""

from __future__ import annotations

import logging
from typing import cast

from tree_sitter import Node
from tree_sitter_language_pack import SupportedLanguage, get_parser

logger = logging.getLogger(__name__)


def _comment_rows_from_tree(source_bytes: bytes, language: str) -> set[int]:
    parser = get_parser(cast(SupportedLanguage, language))
    tree = parser.parse(source_bytes)
    lines = source_bytes.split(b"\n")
    rows: set[int] = set()
    stack: list[Node] = [tree.root_node]
    while stack:
        node = stack.pop()
        if "comment" in node.type:
            start_row, start_col = node.start_point[0], node.start_point[1]
            # Trailing comments after code do not make the line a comment line.
            if lines[start_row][:start_col].strip():
                continue
            rows.update(range(start_row, node.end_point[0] + 1))
            continue
        stack.extend(node.children)
    return rows


def _comment_rows_from_token(source: str, line_comment: str) -> set[int]:
    return {row for row, line in enumerate(source.split("\n")) if line.lstrip().startswith(line_comment)}


def find_comment_lines(source: str, language: str | None, line_comment: str | None = None) -> set[int]:
    """Rows whose first non-blank text is a comment.

    Uses the tree-sitter grammar for ``language`` when one is available and
    falls back to matching the single-line comment token otherwise.
    """
    if language is not None:
        try:
            return _comment_rows_from_tree(source.encode("utf-8"), language)
        except (LookupError, ValueError):
            logger.debug("No tree-sitter grammar for %s, using comment token", language)
    if not line_comment:
        return set()
    return _comment_rows_from_token(source, line_comment)
