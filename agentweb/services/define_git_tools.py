"""Define Git Tools: read-only repository inspection schemas.

Invariants:
    - No tool here mutates the repository
    - `path` is sandbox-validated like any file path
"""

TOOLS_GIT = [
    {
        "name": "GitStatus",
        "description": (
            "Show repository status: branch, ahead/behind, staged, unstaged, "
            "untracked and conflicted files."
        ),
        "input_schema": {
            "type": "object",
            "properties": {
                "path": {"type": "string", "description": "Repository path (default: working directory)"},
                "short": {"type": "boolean", "description": "Raw short format"},
            },
            "required": [],
        },
    },
    {
        "name": "GitDiff",
        "description": "Show changes in the working tree, the index, or against a commit.",
        "input_schema": {
            "type": "object",
            "properties": {
                "path": {"type": "string", "description": "Repository path"},
                "staged": {"type": "boolean", "description": "Only staged changes"},
                "file": {"type": "string", "description": "Limit to one file"},
                "commit": {"type": "string", "description": "Compare against this commit"},
            },
            "required": [],
        },
    },
    {
        "name": "GitLog",
        "description": "Show commit history.",
        "input_schema": {
            "type": "object",
            "properties": {
                "path": {"type": "string", "description": "Repository path"},
                "limit": {"type": "integer", "description": "Commits to show, default 10, max 50"},
                "oneline": {"type": "boolean", "description": "One line per commit"},
                "file": {"type": "string", "description": "History of one file"},
                "author": {"type": "string", "description": "Filter by author"},
            },
            "required": [],
        },
    },
]
