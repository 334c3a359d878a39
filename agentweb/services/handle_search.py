"""Search Handlers: Glob, Grep, Find.

Invariants:
    - The search root is sandbox-validated; the walk never follows directory symlinks,
      so it cannot leave the root
    - Dependency and build directories (SKIP_DIRS) are never descended into
    - Result counts are capped (Glob 500, Grep 1000 matches / 50 per file, Find limit)
    - Walks run in a worker thread (asyncio.to_thread); the event loop is never blocked

Design Decisions:
    - One walk() generator shared by every tool: pruning rules live in one place
    - Grep only opens files that look like text (extension or well-known name) and
      skips files over 1 MB: binary noise is never sent to the model
"""

import asyncio
import logging
import os
import re
import time
from collections.abc import Iterator

from agentweb.core.domain_types import ToolResult
from agentweb.core.errors import ToolValidationError
from agentweb.core.find_filters import SizeFilter, TimeFilter, parse_size, parse_time
from agentweb.core.glob_patterns import glob_match, name_match
from agentweb.core.path_sandbox import relative_display
from agentweb.core.text_format import format_file_size, format_mtime, truncate
from agentweb.services.tool_input import (
    clamped_int, optional_str, require_str, sandboxed_path,
)

logger = logging.getLogger(__name__)

SKIP_DIRS = frozenset({"node_modules", "__pycache__", "dist", "build", ".git"})
WALK_MAX_DEPTH = 20

GLOB_MAX_RESULTS = 500

GREP_MAX_FILE_BYTES = 1024 * 1024
GREP_MAX_PER_FILE = 50
GREP_MAX_TOTAL = 1000
GREP_LINE_CHARS = 200
GREP_SHOWN_PER_FILE = 10

TEXT_EXTENSIONS = frozenset({
    ".py", ".pyi", ".js", ".jsx", ".ts", ".tsx", ".mjs", ".cjs", ".json", ".md",
    ".txt", ".rst", ".html", ".htm", ".css", ".scss", ".less", ".xml", ".yaml",
    ".yml", ".toml", ".ini", ".cfg", ".conf", ".sh", ".bash", ".zsh", ".sql",
    ".c", ".h", ".cpp", ".hpp", ".cc", ".java", ".kt", ".go", ".rs", ".rb",
    ".php", ".swift", ".cs", ".vue", ".svelte", ".lua", ".r", ".csv", ".log",
})
TEXT_NAMES = frozenset({
    "Makefile", "Dockerfile", "README", "LICENSE", "Procfile", "Gemfile",
    ".gitignore", ".dockerignore", ".editorconfig",
})

FIND_TYPES = ("file", "directory", "all")


def walk(
    root: str, max_depth: int = WALK_MAX_DEPTH, include_hidden: bool = False,
) -> Iterator[tuple[os.DirEntry, int]]:
    """Depth-first (entry, depth) pairs under root; root's children have depth 1."""
    yield from _visit(root, 1, max_depth, include_hidden)


def _visit(
    directory: str, depth: int, max_depth: int, include_hidden: bool,
) -> Iterator[tuple[os.DirEntry, int]]:
    try:
        with os.scandir(directory) as it:
            entries = sorted(it, key=lambda e: e.name.lower())
    except OSError as e:
        logger.debug("Skipping unreadable directory", extra={"path": directory, "error": str(e)})
        return
    for entry in entries:
        if not include_hidden and entry.name.startswith("."):
            continue
        is_dir = entry.is_dir(follow_symlinks=False)
        if is_dir and entry.name in SKIP_DIRS:
            continue
        yield entry, depth
        if is_dir and depth < max_depth:
            yield from _visit(entry.path, depth + 1, max_depth, include_hidden)


def _rel(path: str, root: str) -> str:
    return os.path.relpath(path, root).replace(os.sep, "/")


def is_text_file(name: str) -> bool:
    return name in TEXT_NAMES or os.path.splitext(name)[1].lower() in TEXT_EXTENSIONS


def _search_root(input_data: dict, working_dir: str) -> str:
    return sandboxed_path(optional_str(input_data, "path") or ".", working_dir)


# -- Glob ---------------------------------------------------------------------

def glob_files(root: str, pattern: str) -> tuple[list[str], bool]:
    found: list[str] = []
    for entry, _ in walk(root):
        if entry.is_file(follow_symlinks=False) and glob_match(pattern, _rel(entry.path, root)):
            found.append(entry.path)
            if len(found) >= GLOB_MAX_RESULTS:
                return found, True
    return found, False


# -- Grep ---------------------------------------------------------------------

def grep_files(
    target: str, regex: re.Pattern, name_glob: str | None,
) -> tuple[dict[str, list[tuple[int, str]]], bool]:
    """Matches per file path, in walk order, plus whether the total cap was hit."""
    if os.path.isfile(target):
        candidates: Iterator[str] = iter([target])
    else:
        candidates = (
            entry.path for entry, _ in walk(target)
            if entry.is_file(follow_symlinks=False)
            and is_text_file(entry.name)
            and (name_glob is None or name_match(name_glob, entry.name))
        )

    results: dict[str, list[tuple[int, str]]] = {}
    total = 0
    for path in candidates:
        try:
            if os.path.getsize(path) > GREP_MAX_FILE_BYTES:
                continue
            with open(path, encoding="utf-8", errors="ignore") as f:
                lines = f.read().splitlines()
        except OSError:
            continue
        hits: list[tuple[int, str]] = []
        for number, line in enumerate(lines, start=1):
            if regex.search(line):
                hits.append((number, truncate(line.strip(), GREP_LINE_CHARS, "...")))
                total += 1
                if len(hits) >= GREP_MAX_PER_FILE or total >= GREP_MAX_TOTAL:
                    break
        if hits:
            results[path] = hits
        if total >= GREP_MAX_TOTAL:
            return results, True
    return results, False


# -- Find ---------------------------------------------------------------------

def find_entries(
    root: str,
    name_glob: str | None,
    kind: str,
    size: SizeFilter | None,
    mtime: TimeFilter | None,
    max_depth: int,
    limit: int,
) -> tuple[list[tuple[os.DirEntry, os.stat_result]], bool]:
    now = time.time()
    found: list[tuple[os.DirEntry, os.stat_result]] = []
    for entry, _ in walk(root, max_depth, include_hidden=True):
        is_dir = entry.is_dir(follow_symlinks=False)
        if (kind == "file" and is_dir) or (kind == "directory" and not is_dir):
            continue
        if name_glob and not name_match(name_glob, entry.name):
            continue
        try:
            stat = entry.stat(follow_symlinks=False)
        except OSError:
            continue
        # a size filter only ever matches files
        if size and (is_dir or not size.matches(stat.st_size)):
            continue
        if mtime and not mtime.matches(stat.st_mtime, now):
            continue
        found.append((entry, stat))
        if len(found) >= limit:
            return found, True
    return found, False


class SearchHandlers:
    """Read-only search tools. All blocking work runs in a worker thread."""

    async def glob(self, working_dir: str, input_data: dict) -> ToolResult:
        pattern = require_str(input_data, "pattern")
        root = _search_root(input_data, working_dir)
        if not os.path.isdir(root):
            return ToolResult.error(f"Not a directory: {relative_display(root, working_dir)}")

        found, capped = await asyncio.to_thread(glob_files, root, pattern)
        if not found:
            return ToolResult(f"No files found matching pattern: {pattern}")
        lines = [relative_display(p, working_dir) for p in found]
        header = f"Found {len(found)} files matching '{pattern}'"
        if capped:
            header += f" (showing first {GLOB_MAX_RESULTS})"
        return ToolResult(header + ":\n" + "\n".join(lines))

    async def grep(self, working_dir: str, input_data: dict) -> ToolResult:
        pattern = require_str(input_data, "pattern")
        try:
            regex = re.compile(pattern, re.IGNORECASE)
        except re.error as e:
            raise ToolValidationError(f"Invalid regular expression: {e}", "pattern")
        mode = optional_str(input_data, "output_mode") or "content"
        if mode not in ("content", "files_with_matches", "count"):
            raise ToolValidationError(
                "'output_mode' must be content, files_with_matches or count", "output_mode",
            )
        target = _search_root(input_data, working_dir)
        if not os.path.exists(target):
            return ToolResult.error(f"Path not found: {relative_display(target, working_dir)}")

        results, capped = await asyncio.to_thread(
            grep_files, target, regex, optional_str(input_data, "glob"),
        )
        if not results:
            return ToolResult(f"No matches found for pattern: {pattern}")

        total = sum(len(hits) for hits in results.values())
        header = f"Found {total} matches in {len(results)} files"
        if capped:
            header += f" (stopped at {GREP_MAX_TOTAL} matches)"

        if mode == "files_with_matches":
            body = [relative_display(p, working_dir) for p in results]
        elif mode == "count":
            ranked = sorted(results.items(), key=lambda item: len(item[1]), reverse=True)
            body = [f"{len(hits):>5}  {relative_display(p, working_dir)}" for p, hits in ranked]
        else:
            body = []
            for path, hits in results.items():
                body.append(relative_display(path, working_dir))
                body.extend(f"  {n}: {text}" for n, text in hits[:GREP_SHOWN_PER_FILE])
                if len(hits) > GREP_SHOWN_PER_FILE:
                    body.append(f"  ... and {len(hits) - GREP_SHOWN_PER_FILE} more matches")
        return ToolResult(header + ":\n" + "\n".join(body))

    async def find(self, working_dir: str, input_data: dict) -> ToolResult:
        kind = optional_str(input_data, "type") or "all"
        if kind not in FIND_TYPES:
            raise ToolValidationError("'type' must be file, directory or all", "type")
        size_spec = optional_str(input_data, "size")
        mtime_spec = optional_str(input_data, "mtime")
        size = parse_size(size_spec) if size_spec else None
        mtime = parse_time(mtime_spec) if mtime_spec else None
        max_depth = clamped_int(input_data, "max_depth", 10, 1, 20)
        limit = clamped_int(input_data, "limit", 100, 1, 500)
        name_glob = optional_str(input_data, "name")

        root = _search_root(input_data, working_dir)
        if not os.path.isdir(root):
            return ToolResult.error(f"Not a directory: {relative_display(root, working_dir)}")

        found, capped = await asyncio.to_thread(
            find_entries, root, name_glob, kind, size, mtime, max_depth, limit,
        )
        shown_root = relative_display(root, working_dir)
        if not found:
            return ToolResult(f"No entries found in {shown_root}")

        lines = []
        for entry, stat in found:
            is_dir = entry.is_dir(follow_symlinks=False)
            size_col = "-" if is_dir else format_file_size(stat.st_size)
            name = relative_display(entry.path, working_dir) + ("/" if is_dir else "")
            lines.append(f"{'d' if is_dir else 'f'}  {size_col:>8}  {format_mtime(stat.st_mtime)}  {name}")
        header = f"Found {len(found)} entries in {shown_root}"
        if capped:
            header += f" (limit {limit} reached)"
        return ToolResult(header + ":\n" + "\n".join(lines))
