"""Define File Tools: Anthropic tool schemas for reading and changing files.

Invariants:
    - All schemas follow Anthropic tool_use format
    - Required fields enforced by schema and re-checked by the handler (model input is untrusted)
    - Paths may be relative to the working directory or absolute inside it

Design Decisions:
    - Tool schemas in dedicated files: explicit, no auto-discovery (ADR: ExMA anti-pattern)
    - MultiEdit is all-or-nothing: the description says so, the model plans accordingly
"""

TOOLS_FILE = [
    {
        "name": "Read",
        "description": (
            "Read a text file. Returns numbered lines. Use offset and limit "
            "to read a slice of a large file."
        ),
        "input_schema": {
            "type": "object",
            "properties": {
                "file_path": {
                    "type": "string",
                    "description": "File to read (relative to the working directory or absolute)",
                },
                "offset": {
                    "type": "integer",
                    "description": "First line to read, 1-based (default 1)",
                },
                "limit": {
                    "type": "integer",
                    "description": "Number of lines to read (default: to end of file)",
                },
            },
            "required": ["file_path"],
        },
    },
    {
        "name": "Write",
        "description": (
            "Write content to a file, creating it (and missing parent "
            "directories) or overwriting it."
        ),
        "input_schema": {
            "type": "object",
            "properties": {
                "file_path": {"type": "string", "description": "File to write"},
                "content": {"type": "string", "description": "Full new content"},
            },
            "required": ["file_path", "content"],
        },
    },
    {
        "name": "Edit",
        "description": (
            "Replace exact text in a file. Replaces the first occurrence, or "
            "every occurrence with replace_all. Read the file first."
        ),
        "input_schema": {
            "type": "object",
            "properties": {
                "file_path": {"type": "string", "description": "File to edit"},
                "old_string": {"type": "string", "description": "Exact text to find"},
                "new_string": {"type": "string", "description": "Replacement text"},
                "replace_all": {
                    "type": "boolean",
                    "description": "Replace every occurrence (default false)",
                },
            },
            "required": ["file_path", "old_string", "new_string"],
        },
    },
    {
        "name": "MultiEdit",
        "description": (
            "Apply several exact-text replacements to one file, in order. Each "
            "old_string must match exactly once in the content as modified by "
            "the edits before it. If any edit fails, none are applied."
        ),
        "input_schema": {
            "type": "object",
            "properties": {
                "file_path": {"type": "string", "description": "File to edit"},
                "edits": {
                    "type": "array",
                    "description": "Ordered edits",
                    "items": {
                        "type": "object",
                        "properties": {
                            "old_string": {"type": "string"},
                            "new_string": {"type": "string"},
                        },
                        "required": ["old_string", "new_string"],
                    },
                },
            },
            "required": ["file_path", "edits"],
        },
    },
    {
        "name": "NotebookEdit",
        "description": (
            "Edit a Jupyter notebook (.ipynb): update, insert or delete a cell "
            "by index. Inserting into a missing file creates a new notebook."
        ),
        "input_schema": {
            "type": "object",
            "properties": {
                "file_path": {"type": "string", "description": "Notebook path (.ipynb)"},
                "cell_index": {"type": "integer", "description": "Cell index, 0-based"},
                "action": {"type": "string", "enum": ["update", "insert", "delete"]},
                "cell_type": {
                    "type": "string",
                    "enum": ["code", "markdown"],
                    "description": "Cell type for insert/update",
                },
                "source": {"type": "string", "description": "Cell source for insert/update"},
            },
            "required": ["file_path", "cell_index", "action"],
        },
    },
    {
        "name": "Diff",
        "description": "Compare two files and show a unified diff.",
        "input_schema": {
            "type": "object",
            "properties": {
                "file1": {"type": "string", "description": "Original file"},
                "file2": {"type": "string", "description": "Changed file"},
                "context": {
                    "type": "integer",
                    "description": "Context lines around changes (default 3, max 10)",
                },
            },
            "required": ["file1", "file2"],
        },
    },
]
