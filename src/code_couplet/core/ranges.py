"""Keep tracked ranges in place while the text around them is edited.

Each edit replaces ``edited_range`` with ``inserted_text``. Every tracked range is
then classified against the edit:

* after the edit (starts at or after its end): shifted by the net line delta,
  and by the column delta too when it starts on the edit's last line;
* before the edit (ends at or before its start): left alone;
* overlapping: collapsed to an empty range at the edit start and flagged for
  revalidation. No correction is guessed here; the validator's move detection
  is what recovers such pins.
"""

from __future__ import annotations

import logging
from collections.abc import Hashable, Iterable, Sequence
from dataclasses import dataclass, field
from enum import Enum

from code_couplet.core.text import utf16_len
from code_couplet.models import Position, Range, TextEdit

logger = logging.getLogger(__name__)


class EditRelation(str, Enum):
    BEFORE = "before"
    AFTER = "after"
    OVERLAPPING = "overlapping"


@dataclass
class TrackedRange:
    key: Hashable
    range: Range


@dataclass
class TranslationResult:
    updated: set[Hashable] = field(default_factory=set)
    needs_revalidation: set[Hashable] = field(default_factory=set)

    @property
    def was_updated(self) -> bool:
        return bool(self.updated)

    def merge(self, other: TranslationResult) -> None:
        self.updated |= other.updated
        self.needs_revalidation |= other.needs_revalidation


def count_new_lines(text: str) -> int:
    return text.count("\n")


def last_line_length(text: str) -> int:
    return utf16_len(text[text.rfind("\n") + 1 :])


def inserted_end(edit: TextEdit) -> Position:
    """Where the end of ``edit.edited_range`` lands once the edit is applied."""
    start = edit.edited_range.start
    lines = count_new_lines(edit.inserted_text)
    tail = last_line_length(edit.inserted_text)
    if lines == 0:
        return Position(line=start.line, char=start.char + tail)
    return Position(line=start.line + lines, char=tail)


def classify(edit: TextEdit, range_: Range) -> EditRelation:
    if range_.start.as_tuple() >= edit.edited_range.end.as_tuple():
        return EditRelation.AFTER
    if range_.end.as_tuple() <= edit.edited_range.start.as_tuple():
        return EditRelation.BEFORE
    return EditRelation.OVERLAPPING


def _shift(position: Position, old_end: Position, new_end: Position) -> Position:
    line_delta = new_end.line - old_end.line
    if position.line == old_end.line:
        return Position(line=position.line + line_delta, char=position.char + new_end.char - old_end.char)
    return Position(line=position.line + line_delta, char=position.char)


def translate_ranges(edit: TextEdit, tracked: Sequence[TrackedRange]) -> TranslationResult:
    """Apply one edit to ``tracked``, mutating each range in place."""
    result = TranslationResult()
    old_end = edit.edited_range.end
    new_end = inserted_end(edit)
    for item in tracked:
        relation = classify(edit, item.range)
        if relation is EditRelation.BEFORE:
            continue
        if relation is EditRelation.AFTER:
            start = _shift(item.range.start, old_end, new_end)
            end = _shift(item.range.end, old_end, new_end)
            if start == item.range.start and end == item.range.end:
                continue
            item.range.start = start
            item.range.end = end
            result.updated.add(item.key)
        else:
            anchor = edit.edited_range.start
            item.range.start = anchor.model_copy()
            item.range.end = anchor.model_copy()
            result.updated.add(item.key)
            result.needs_revalidation.add(item.key)
    if result.needs_revalidation:
        logger.debug("Edit overlapped %d tracked range(s)", len(result.needs_revalidation))
    return result


def apply_edits(edits: Iterable[TextEdit], tracked: Sequence[TrackedRange]) -> TranslationResult:
    """Apply a batch of edits in order; each edit sees the ranges left by the previous one."""
    result = TranslationResult()
    for edit in edits:
        result.merge(translate_ranges(edit, tracked))
    return result
