"""Diff Handler: unified diff between two files inside the working directory."""

import asyncio

from agentweb.core.domain_types import ToolResult
from agentweb.core.line_diff import compute_diff, format_unified
from agentweb.core.path_sandbox import relative_display
from agentweb.services.handle_file import check_regular_file, read_text
from agentweb.services.tool_input import require_str, sandboxed_path


class DiffHandlers:

    async def diff(self, working_dir: str, input_data: dict) -> ToolResult:
        # both paths are validated before either file is opened
        first = sandboxed_path(require_str(input_data, "file1"), working_dir)
        second = sandboxed_path(require_str(input_data, "file2"), working_dir)
        for path in (first, second):
            problem = check_regular_file(path, working_dir)
            if problem:
                return problem

        old_label = relative_display(first, working_dir)
        new_label = relative_display(second, working_dir)
        result = await asyncio.to_thread(
            compute_diff, read_text(first), read_text(second), input_data.get("context"),
        )
        if result.identical:
            return ToolResult(f"{result.summary}: {old_label} and {new_label} (0 hunks)")
        return ToolResult(
            f"{format_unified(result, old_label, new_label)}\n\n"
            f"{len(result.hunks)} hunks, {result.summary}"
        )
