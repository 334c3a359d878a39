"""File Handlers: Read, Write, Edit, MultiEdit.

Invariants:
    - Every path goes through sandboxed_path() before any I/O
    - Files over 10 MB are neither read nor written
    - Line endings are preserved: files are read and written with newline=""
    - MultiEdit is all-or-nothing: on any failed edit the file is left byte-identical

Design Decisions:
    - Edits validate against the progressively modified content, the same view the
      model has when it plans a sequence of replacements
    - Nothing is written until every edit in a MultiEdit batch succeeded
      (ADR: atomic batch, no rollback logic needed)
"""

import logging
import os

from agentweb.core.domain_types import ToolResult
from agentweb.core.errors import ToolValidationError
from agentweb.core.path_sandbox import relative_display
from agentweb.core.text_format import RULE, format_file_size, number_lines
from agentweb.services.tool_input import (
    clamped_int, optional_bool, require_str, sandboxed_path,
)

logger = logging.getLogger(__name__)

MAX_FILE_BYTES = 10 * 1024 * 1024
PREVIEW_LINES = 10


def read_text(path: str) -> str:
    with open(path, encoding="utf-8", errors="replace", newline="") as f:
        return f.read()


def write_text(path: str, content: str) -> None:
    with open(path, "w", encoding="utf-8", newline="") as f:
        f.write(content)


def check_regular_file(path: str, working_dir: str) -> ToolResult | None:
    """Error result when `path` is not a readable regular file within the size cap."""
    shown = relative_display(path, working_dir)
    if not os.path.exists(path):
        return ToolResult.error(f"File not found: {shown}")
    if os.path.isdir(path):
        return ToolResult.error(f"{shown} is a directory. Use Ls to list it.")
    size = os.path.getsize(path)
    if size > MAX_FILE_BYTES:
        return ToolResult.error(
            f"{shown} is too large ({format_file_size(size)}, limit 10.0M). "
            "Use Grep or Read with offset/limit on a smaller file."
        )
    return None


def _preview(content: str) -> str:
    lines = content.splitlines()[:PREVIEW_LINES]
    return number_lines(lines) if lines else "(empty file)"


class FileHandlers:
    """Plain file read/write/replace tools."""

    async def read(self, working_dir: str, input_data: dict) -> ToolResult:
        raw = require_str(input_data, "file_path")
        path = sandboxed_path(raw, working_dir)
        problem = check_regular_file(path, working_dir)
        if problem:
            return problem

        shown = relative_display(path, working_dir)
        lines = read_text(path).splitlines()
        total = len(lines)
        if total == 0:
            return ToolResult(f"File: {shown} (empty)")

        offset = clamped_int(input_data, "offset", 1, 1, 10**9)
        limit = clamped_int(input_data, "limit", total, 1, 10**9)
        if offset > total:
            return ToolResult.error(
                f"offset {offset} is past the end of {shown} ({total} lines)"
            )
        selected = lines[offset - 1:offset - 1 + limit]
        last = offset + len(selected) - 1
        header = f"File: {shown}\nLines {offset}-{last} of {total}\n{RULE}\n"
        return ToolResult(header + number_lines(selected, offset))

    async def write(self, working_dir: str, input_data: dict) -> ToolResult:
        raw = require_str(input_data, "file_path")
        content = require_str(input_data, "content", allow_empty=True)
        path = sandboxed_path(raw, working_dir)
        shown = relative_display(path, working_dir)

        size = len(content.encode("utf-8"))
        if size > MAX_FILE_BYTES:
            return ToolResult.error(
                f"Content is too large ({format_file_size(size)}, limit 10.0M)"
            )
        if os.path.isdir(path):
            return ToolResult.error(f"{shown} is a directory")

        existed = os.path.exists(path)
        parent = os.path.dirname(path)
        if parent:
            os.makedirs(parent, exist_ok=True)
        write_text(path, content)

        verb = "Updated" if existed else "Created"
        line_count = len(content.splitlines())
        logger.info("File written", extra={"path": shown, "bytes": size})
        return ToolResult(f"{verb} file: {shown} ({line_count} lines, {size} bytes)")

    async def edit(self, working_dir: str, input_data: dict) -> ToolResult:
        raw = require_str(input_data, "file_path")
        old = require_str(input_data, "old_string")
        new = require_str(input_data, "new_string", allow_empty=True)
        replace_all = optional_bool(input_data, "replace_all")
        path = sandboxed_path(raw, working_dir)
        problem = check_regular_file(path, working_dir)
        if problem:
            return problem
        if old == new:
            return ToolResult.error("old_string and new_string are identical")

        shown = relative_display(path, working_dir)
        content = read_text(path)
        count = content.count(old)
        if count == 0:
            return ToolResult.error(
                f"old_string not found in {shown}. The file starts with:\n"
                f"{_preview(content)}"
            )

        if replace_all:
            updated = content.replace(old, new)
            replaced = count
        else:
            updated = content.replace(old, new, 1)
            replaced = 1
        write_text(path, updated)
        suffix = f" ({count - replaced} more occurrences left)" if count > replaced else ""
        return ToolResult(f"Edited {shown}: replaced {replaced} occurrence(s){suffix}")

    async def multi_edit(self, working_dir: str, input_data: dict) -> ToolResult:
        raw = require_str(input_data, "file_path")
        edits = input_data.get("edits")
        if not isinstance(edits, list) or not edits:
            raise ToolValidationError("'edits' must be a non-empty list", "edits")
        path = sandboxed_path(raw, working_dir)
        problem = check_regular_file(path, working_dir)
        if problem:
            return problem

        shown = relative_display(path, working_dir)
        content = read_text(path)
        applied: list[str] = []
        failures: list[str] = []
        for number, edit in enumerate(edits, start=1):
            if not isinstance(edit, dict):
                failures.append(f"Edit {number}: not an object")
                continue
            old = edit.get("old_string")
            new = edit.get("new_string")
            if not isinstance(old, str) or not old or not isinstance(new, str):
                failures.append(f"Edit {number}: old_string and new_string are required")
                continue
            count = content.count(old)
            if count == 0:
                failures.append(f"Edit {number}: old_string not found")
                continue
            if count > 1:
                failures.append(
                    f"Edit {number}: old_string matches {count} times, it must be unique"
                )
                continue
            line = content[:content.index(old)].count("\n") + 1
            content = content.replace(old, new, 1)
            applied.append(f"  Edit {number}: line {line}")

        if failures:
            return ToolResult.error(
                f"MultiEdit on {shown} rejected, no edits were applied:\n"
                + "\n".join(failures)
            )
        write_text(path, content)
        return ToolResult(
            f"Applied {len(applied)} edits to {shown}:\n" + "\n".join(applied)
        )
