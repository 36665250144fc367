"""Tests for TextDocument line/column arithmetic."""

import pytest

from code_couplet.core.text import TextDocument, utf16_len
from code_couplet.errors import OutOfBoundsRangeError
from code_couplet.models import Position, TextEdit, make_range


class TestLines:
    def test_line_count_counts_trailing_empty_line(self) -> None:
        assert TextDocument("a\nb").line_count == 2
        assert TextDocument("a\nb\n").line_count == 3
        assert TextDocument("").line_count == 1

    def test_line_at(self) -> None:
        doc = TextDocument("first\nsecond\n")
        assert doc.line_at(1) == "second"
        assert doc.line_at(2) == ""

    def test_line_at_out_of_range(self) -> None:
        with pytest.raises(IndexError):
            TextDocument("one").line_at(1)

    def test_carriage_return_is_a_column(self) -> None:
        doc = TextDocument("ab\r\ncd")
        assert doc.line_length(0) == 3
        assert doc.get_text(make_range(0, 0, 0, 3)) == "ab\r"
        assert doc.get_text(make_range(1, 0, 1, 2)) == "cd"


class TestGetText:
    def test_whole_text_without_range(self) -> None:
        assert TextDocument("x\ny").get_text() == "x\ny"

    def test_multi_line_range(self) -> None:
        doc = TextDocument("// add one\nfoo();\nbar();")
        assert doc.get_text(make_range(0, 3, 1, 3)) == "add one\nfoo"

    def test_range_ending_at_line_end(self) -> None:
        doc = TextDocument("abc\ndef")
        assert doc.get_text(make_range(0, 0, 0, 3)) == "abc"

    def test_char_past_line_end_raises(self) -> None:
        doc = TextDocument("abc\ndef")
        with pytest.raises(OutOfBoundsRangeError):
            doc.get_text(make_range(0, 0, 0, 4))

    def test_line_past_end_raises(self) -> None:
        doc = TextDocument("abc")
        with pytest.raises(OutOfBoundsRangeError) as exc_info:
            doc.get_text(make_range(3, 0, 3, 1))
        assert exc_info.value.line_count == 1
        assert exc_info.value.error_code == "OUT_OF_BOUNDS_RANGE"


class TestUtf16:
    def test_astral_characters_take_two_units(self) -> None:
        assert utf16_len("\U0001f600") == 2
        assert utf16_len("é") == 1

    def test_columns_after_emoji(self) -> None:
        doc = TextDocument("\U0001f600x = 1")
        assert doc.get_text(make_range(0, 2, 0, 3)) == "x"
        assert doc.line_length(0) == 7

    def test_column_inside_surrogate_pair_is_out_of_bounds(self) -> None:
        doc = TextDocument("\U0001f600")
        with pytest.raises(OutOfBoundsRangeError):
            doc.get_text(make_range(0, 0, 0, 3))

    def test_column_splitting_surrogate_pair_is_out_of_bounds(self) -> None:
        doc = TextDocument("\U0001f600x")
        with pytest.raises(OutOfBoundsRangeError):
            doc.get_text(make_range(0, 1, 0, 3))
        with pytest.raises(OutOfBoundsRangeError):
            doc.get_text(make_range(0, 0, 0, 1))

    def test_offset_splitting_surrogate_pair_raises(self) -> None:
        doc = TextDocument("\U0001f600x")
        assert doc.position_at(2) == Position(line=0, char=2)
        with pytest.raises(ValueError):
            doc.position_at(1)

    def test_offset_and_position_round_trip(self) -> None:
        doc = TextDocument("a\U0001f600\nbc")
        position = Position(line=1, char=1)
        offset = doc.offset_at(position)
        assert offset == 5
        assert doc.position_at(offset) == position

    def test_find_reports_utf16_columns(self) -> None:
        doc = TextDocument("\U0001f600 foo();")
        assert doc.find("foo();") == make_range(0, 3, 0, 9)


class TestPositionAt:
    def test_position_at_line_start(self) -> None:
        doc = TextDocument("ab\ncd")
        assert doc.position_at(3) == Position(line=1, char=0)

    def test_position_at_end(self) -> None:
        doc = TextDocument("ab\ncd")
        assert doc.position_at(5) == Position(line=1, char=2)

    @pytest.mark.parametrize("offset", [-1, 6])
    def test_position_at_outside_raises(self, offset: int) -> None:
        with pytest.raises(ValueError):
            TextDocument("ab\ncd").position_at(offset)


class TestFind:
    def test_first_occurrence_wins(self) -> None:
        doc = TextDocument("foo();\nbar();\nfoo();")
        assert doc.find("foo();") == make_range(0, 0, 0, 6)

    def test_multi_line_value(self) -> None:
        doc = TextDocument("x\n// a\n// b\ny")
        assert doc.find("// a\n// b") == make_range(1, 0, 2, 4)

    def test_missing_value(self) -> None:
        assert TextDocument("abc").find("xyz") is None

    def test_case_sensitive(self) -> None:
        assert TextDocument("FOO").find("foo") is None

    def test_empty_value_is_never_found(self) -> None:
        assert TextDocument("abc").find("") is None


class TestApplyEdit:
    def test_replaces_range(self) -> None:
        doc = TextDocument("hello world")
        edited = doc.apply_edit(TextEdit(edited_range=make_range(0, 6, 0, 11), inserted_text="there"))
        assert edited.text == "hello there"
        assert doc.text == "hello world"

    def test_inserts_lines(self) -> None:
        doc = TextDocument("a\nb")
        edited = doc.apply_edit(TextEdit(edited_range=make_range(1, 0, 1, 0), inserted_text="x\ny\n"))
        assert edited.text == "a\nx\ny\nb"
        assert edited.line_count == 4
