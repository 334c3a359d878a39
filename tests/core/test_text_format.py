"""Text Format tests: sizes, numbered lines and truncation."""

from agentweb.core.text_format import format_file_size, number_lines, truncate


def test_format_file_size_units():
    assert format_file_size(500) == "500B"
    assert format_file_size(2048) == "2.0K"
    assert format_file_size(5 * 1024 ** 2) == "5.0M"
    assert format_file_size(3 * 1024 ** 3) == "3.0G"


def test_number_lines_aligns_to_widest_number():
    assert number_lines(["a", "b"], first_line=9) == " 9 │ a\n10 │ b"


def test_truncate_marks_the_cut():
    assert truncate("abc", 5) == "abc"
    assert truncate("abcdef", 3) == "abc\n... (truncated)"
