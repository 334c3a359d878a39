"""Notebook Handlers: NotebookEdit on Jupyter .ipynb files.

Invariants:
    - Only the `cells` array is changed; notebook metadata is preserved as loaded
    - Code cells always carry `execution_count` and `outputs`; markdown cells never do
    - Inserting into a missing file creates a new nbformat 4.5 notebook
    - Cell `source` is stored as a list of lines with their line endings

Design Decisions:
    - Plain json over nbformat: the tool touches one array, and nbformat validation
      would reject notebooks the user's editor accepts
"""

import json
import os

from agentweb.core.errors import ToolValidationError
from agentweb.core.domain_types import ToolResult
from agentweb.core.path_sandbox import relative_display
from agentweb.services.handle_file import read_text, write_text
from agentweb.services.tool_input import (
    optional_str, require_int, require_str, sandboxed_path,
)

ACTIONS = ("update", "insert", "delete")
CELL_TYPES = ("code", "markdown")


def new_notebook() -> dict:
    return {
        "cells": [],
        "metadata": {
            "kernelspec": {"display_name": "Python 3", "language": "python", "name": "python3"},
            "language_info": {"name": "python"},
        },
        "nbformat": 4,
        "nbformat_minor": 5,
    }


def split_source(source: str) -> list[str]:
    return source.splitlines(keepends=True)


def shape_cell(cell: dict, cell_type: str) -> dict:
    """Set the cell type and add or drop the code-only fields to match it."""
    cell["cell_type"] = cell_type
    cell.setdefault("metadata", {})
    if cell_type == "code":
        cell.setdefault("execution_count", None)
        cell.setdefault("outputs", [])
    else:
        cell.pop("execution_count", None)
        cell.pop("outputs", None)
    return cell


class NotebookHandlers:

    async def notebook_edit(self, working_dir: str, input_data: dict) -> ToolResult:
        raw = require_str(input_data, "file_path")
        action = require_str(input_data, "action")
        if action not in ACTIONS:
            raise ToolValidationError(
                f"'action' must be one of {', '.join(ACTIONS)}", "action",
            )
        index = require_int(input_data, "cell_index")
        cell_type = optional_str(input_data, "cell_type")
        if cell_type is not None and cell_type not in CELL_TYPES:
            raise ToolValidationError("'cell_type' must be code or markdown", "cell_type")

        path = sandboxed_path(raw, working_dir)
        shown = relative_display(path, working_dir)
        if not path.lower().endswith(".ipynb"):
            return ToolResult.error(f"{shown} is not a Jupyter notebook (.ipynb)")

        if os.path.exists(path):
            try:
                notebook = json.loads(read_text(path))
            except json.JSONDecodeError as e:
                return ToolResult.error(f"{shown} is not valid notebook JSON: {e}")
        elif action == "insert":
            notebook = new_notebook()
        else:
            return ToolResult.error(f"Notebook not found: {shown}")

        cells = notebook.get("cells") if isinstance(notebook, dict) else None
        if not isinstance(cells, list):
            return ToolResult.error(f"{shown} has no cells array")

        if action == "insert":
            if not 0 <= index <= len(cells):
                return ToolResult.error(
                    f"cell_index {index} out of range for insert (0-{len(cells)})"
                )
            source = input_data.get("source") or ""
            cell = shape_cell({"metadata": {}, "source": split_source(source)}, cell_type or "code")
            cells.insert(index, cell)
            message = f"Inserted {cell['cell_type']} cell at index {index} in {shown}"
        else:
            if not 0 <= index < len(cells):
                return ToolResult.error(
                    f"cell_index {index} out of range (notebook has {len(cells)} cells)"
                )
            if action == "delete":
                removed = cells.pop(index)
                message = f"Deleted {removed.get('cell_type', 'unknown')} cell {index} from {shown}"
            else:
                source = require_str(input_data, "source", allow_empty=True)
                cell = cells[index]
                shape_cell(cell, cell_type or cell.get("cell_type", "code"))
                cell["source"] = split_source(source)
                message = f"Updated {cell['cell_type']} cell {index} in {shown}"

        parent = os.path.dirname(path)
        if parent:
            os.makedirs(parent, exist_ok=True)
        write_text(path, json.dumps(notebook, indent=1, ensure_ascii=False) + "\n")
        return ToolResult(f"{message} ({len(cells)} cells total)")
