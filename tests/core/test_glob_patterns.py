"""Glob Patterns tests: `**`, `*`, `?`, root anchoring, case folding and literal metacharacters."""

import pytest

from agentweb.core.glob_patterns import glob_match, name_match


@pytest.mark.parametrize("path", ["a.py", "src/a.py", "src/deep/er/a.py"])
def test_double_star_slash_matches_any_depth(path):
    assert glob_match("**/*.py", path)


def test_single_star_stays_in_one_segment():
    assert glob_match("*.py", "a.py")
    assert not glob_match("*.py", "src/a.py")


def test_question_mark_is_one_character():
    assert glob_match("?.txt", "a.txt")
    assert not glob_match("?.txt", "ab.txt")


def test_matching_ignores_case():
    assert glob_match("src/*.ts", "SRC/App.TS")
    assert glob_match("**/README.MD", "docs/readme.md")


def test_braces_are_literal():
    assert glob_match("{a,b}.txt", "{a,b}.txt")
    assert not glob_match("{a,b}.txt", "a.txt")


def test_patterns_are_anchored_at_the_root():
    assert glob_match("src/*.py", "src/a.py")
    assert not glob_match("src/*.py", "lib/src/a.py")
    assert glob_match("/src/*.py", "src/a.py")


def test_regex_metacharacters_are_literal():
    assert glob_match("a+b(1).txt", "a+b(1).txt")
    assert not glob_match("a.b", "axb")


def test_backslash_paths_are_normalized():
    assert glob_match("src/**", "src\\lib\\x.c")


def test_name_match():
    assert name_match("*.log", "server.log")
    assert not name_match("*.log", "server.log.1")
