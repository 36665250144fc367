"""Immutable text snapshots addressed by line and UTF-16 column."""

from __future__ import annotations

from bisect import bisect_right

from code_couplet.errors import OutOfBoundsRangeError
from code_couplet.models import Position, Range, TextEdit


def _units(ch: str) -> int:
    return 2 if ord(ch) > 0xFFFF else 1


def utf16_len(text: str) -> int:
    return sum(_units(ch) for ch in text)


def _utf16_to_index(text: str, units: int) -> int | None:
    """Map a UTF-16 unit count onto a code point index of ``text``.

    None when the count runs past the end or lands inside a surrogate pair.
    """
    seen = 0
    for idx, ch in enumerate(text):
        if seen >= units:
            return idx if seen == units else None
        seen += _units(ch)
    return len(text) if units == seen else None


class TextDocument:
    """A snapshot of a document's text.

    Lines are split on ``\\n`` only. Columns and offsets count UTF-16 code units,
    matching editor coordinates. Positions outside the text raise
    ``OutOfBoundsRangeError`` instead of being clamped.
    """

    def __init__(self, text: str, path: str | None = None) -> None:
        self._text = text
        self.path = path
        self._line_starts = [0]
        for idx, ch in enumerate(text):
            if ch == "\n":
                self._line_starts.append(idx + 1)
        self._astral = any(ord(ch) > 0xFFFF for ch in text)

    @property
    def text(self) -> str:
        return self._text

    @property
    def line_count(self) -> int:
        return len(self._line_starts)

    @property
    def length(self) -> int:
        return utf16_len(self._text) if self._astral else len(self._text)

    def line_at(self, line: int) -> str:
        if line < 0 or line >= self.line_count:
            raise IndexError(f"line {line} is outside a document of {self.line_count} line(s)")
        start = self._line_starts[line]
        end = self._line_starts[line + 1] - 1 if line + 1 < self.line_count else len(self._text)
        return self._text[start:end]

    def line_length(self, line: int) -> int:
        return utf16_len(self.line_at(line))

    def _index_at(self, position: Position, range_: Range) -> int:
        if position.line >= self.line_count:
            raise OutOfBoundsRangeError(range_, self.line_count)
        line_text = self.line_at(position.line)
        column = _utf16_to_index(line_text, position.char) if self._astral else position.char
        if column is None or column > len(line_text):
            raise OutOfBoundsRangeError(range_, self.line_count)
        return self._line_starts[position.line] + column

    def _position_at_index(self, index: int) -> Position:
        line = bisect_right(self._line_starts, index) - 1
        prefix = self._text[self._line_starts[line] : index]
        return Position(line=line, char=utf16_len(prefix) if self._astral else len(prefix))

    def check_range(self, range_: Range) -> None:
        self._index_at(range_.start, range_)
        self._index_at(range_.end, range_)

    def get_text(self, range_: Range | None = None) -> str:
        if range_ is None:
            return self._text
        start = self._index_at(range_.start, range_)
        end = self._index_at(range_.end, range_)
        return self._text[start:end]

    def offset_at(self, position: Position) -> int:
        index = self._index_at(position, Range(start=position, end=position))
        return utf16_len(self._text[:index]) if self._astral else index

    def position_at(self, offset: int) -> Position:
        if offset < 0 or offset > self.length:
            raise ValueError(f"offset {offset} is outside a document of length {self.length}")
        index = _utf16_to_index(self._text, offset) if self._astral else offset
        if index is None:
            raise ValueError(f"offset {offset} falls inside a surrogate pair")
        return self._position_at_index(index)

    def find(self, value: str) -> Range | None:
        """Range of the first exact occurrence of ``value``, or None."""
        if not value:
            return None
        index = self._text.find(value)
        if index < 0:
            return None
        return Range(start=self._position_at_index(index), end=self._position_at_index(index + len(value)))

    def apply_edit(self, edit: TextEdit) -> TextDocument:
        start = self._index_at(edit.edited_range.start, edit.edited_range)
        end = self._index_at(edit.edited_range.end, edit.edited_range)
        return TextDocument(self._text[:start] + edit.inserted_text + self._text[end:], path=self.path)
