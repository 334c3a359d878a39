"""Glob Patterns: tool glob patterns matched with pathspec's gitwildmatch rules.

Invariants:
    - `**` matches across directory separators, `*` and `?` never do
    - Patterns are anchored at the search root: `*.py` matches top-level files only
    - Matching is case-insensitive, against `/`-separated paths relative to the root
    - Regex metacharacters and braces are literal

Design Decisions:
    - pathspec over fnmatch: fnmatch's `*` crosses separators and has no `**`
    - A leading `/` is added before compiling: a bare gitwildmatch pattern would
      otherwise match at any depth, like a .gitignore line
"""

from functools import lru_cache

import pathspec

from agentweb.core.errors import ToolValidationError


@lru_cache(maxsize=256)
def compile_glob(pattern: str) -> pathspec.PathSpec:
    folded = pattern.lower()
    anchored = folded if folded.startswith("/") else "/" + folded
    try:
        return pathspec.PathSpec.from_lines("gitwildmatch", [anchored])
    except ValueError as e:
        raise ToolValidationError(f"Invalid glob pattern '{pattern}': {e}", "pattern") from e


def glob_match(pattern: str, relative_path: str) -> bool:
    return compile_glob(pattern).match_file(relative_path.replace("\\", "/").lower())


def name_match(pattern: str, name: str) -> bool:
    """Match a bare file name (no directory part) against a glob."""
    return compile_glob(pattern).match_file(name.lower())
