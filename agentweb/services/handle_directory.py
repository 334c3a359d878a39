"""Directory Handlers: Ls and FileTree.

Invariants:
    - Listings are ordered directories first, then files, each by case-insensitive name
    - Hidden entries are shown only when asked for
    - FileTree depth is clamped to 1-5 and never descends into SKIP_DIRS
"""

import asyncio
import os

from agentweb.core.domain_types import ToolResult
from agentweb.core.path_sandbox import relative_display
from agentweb.core.text_format import format_file_size, format_mtime
from agentweb.services.handle_search import SKIP_DIRS
from agentweb.services.tool_input import (
    clamped_int, optional_bool, optional_str, sandboxed_path,
)

TREE_MAX_ENTRIES = 1000


def sorted_entries(directory: str, include_hidden: bool) -> list[os.DirEntry]:
    with os.scandir(directory) as it:
        entries = [e for e in it if include_hidden or not e.name.startswith(".")]
    return sorted(
        entries,
        key=lambda e: (not e.is_dir(follow_symlinks=False), e.name.lower()),
    )


def render_tree(root: str, max_depth: int, include_hidden: bool) -> tuple[list[str], int, int]:
    """Box-drawing lines for everything under root, plus directory and file counts."""
    lines: list[str] = []
    counts = {"dirs": 0, "files": 0}

    def visit(directory: str, prefix: str, depth: int) -> None:
        try:
            entries = sorted_entries(directory, include_hidden)
        except OSError:
            lines.append(f"{prefix}└── [unreadable]")
            return
        entries = [e for e in entries if not (e.is_dir(follow_symlinks=False) and e.name in SKIP_DIRS)]
        for position, entry in enumerate(entries):
            if len(lines) >= TREE_MAX_ENTRIES:
                return
            last = position == len(entries) - 1
            branch = "└── " if last else "├── "
            is_dir = entry.is_dir(follow_symlinks=False)
            lines.append(f"{prefix}{branch}{entry.name}{'/' if is_dir else ''}")
            if is_dir:
                counts["dirs"] += 1
                if depth < max_depth:
                    visit(entry.path, prefix + ("    " if last else "│   "), depth + 1)
            else:
                counts["files"] += 1

    visit(root, "", 1)
    return lines, counts["dirs"], counts["files"]


class DirectoryHandlers:

    async def ls(self, working_dir: str, input_data: dict) -> ToolResult:
        root = sandboxed_path(optional_str(input_data, "path") or ".", working_dir)
        shown = relative_display(root, working_dir)
        if not os.path.exists(root):
            return ToolResult.error(f"Directory not found: {shown}")
        if not os.path.isdir(root):
            return ToolResult.error(f"{shown} is a file. Use Read to view it.")

        entries = sorted_entries(root, optional_bool(input_data, "all"))
        if not entries:
            return ToolResult(f"Directory: {shown}\n(empty directory)")

        if not optional_bool(input_data, "long"):
            names = [e.name + ("/" if e.is_dir(follow_symlinks=False) else "") for e in entries]
            return ToolResult(f"Directory: {shown}\n" + "\n".join(names))

        lines = []
        for entry in entries:
            stat = entry.stat(follow_symlinks=False)
            is_dir = entry.is_dir(follow_symlinks=False)
            size = "-" if is_dir else format_file_size(stat.st_size)
            lines.append(
                f"{'d' if is_dir else '-'}  {size:>8}  {format_mtime(stat.st_mtime)}  "
                f"{entry.name}{'/' if is_dir else ''}"
            )
        return ToolResult(f"Directory: {shown} (total {len(entries)})\n" + "\n".join(lines))

    async def file_tree(self, working_dir: str, input_data: dict) -> ToolResult:
        root = sandboxed_path(optional_str(input_data, "path") or ".", working_dir)
        shown = relative_display(root, working_dir)
        if not os.path.isdir(root):
            return ToolResult.error(f"Not a directory: {shown}")

        max_depth = clamped_int(input_data, "max_depth", 3, 1, 5)
        lines, dirs, files = await asyncio.to_thread(
            render_tree, root, max_depth, optional_bool(input_data, "include_hidden"),
        )
        footer = f"\n\n{dirs} directories, {files} files"
        if len(lines) >= TREE_MAX_ENTRIES:
            footer += f" (output stopped at {TREE_MAX_ENTRIES} entries)"
        name = os.path.basename(root.rstrip(os.sep)) or root
        return ToolResult(f"{name}/\n" + "\n".join(lines) + footer)
