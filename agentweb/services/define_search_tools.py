"""Define Search Tools: Anthropic tool schemas for locating files and browsing directories.

Invariants:
    - All tools here are read-only and always enabled
    - Result counts are capped by the handlers; descriptions state the caps
"""

TOOLS_SEARCH = [
    {
        "name": "Glob",
        "description": (
            "Find files by glob pattern, e.g. \"**/*.py\" or \"src/**/test_*.py\". "
            "Hidden files and dependency/build directories are skipped. Max 500 results."
        ),
        "input_schema": {
            "type": "object",
            "properties": {
                "pattern": {"type": "string", "description": "Glob pattern"},
                "path": {
                    "type": "string",
                    "description": "Directory to search (default: working directory)",
                },
            },
            "required": ["pattern"],
        },
    },
    {
        "name": "Grep",
        "description": (
            "Search file contents with a case-insensitive regular expression. "
            "Only text files up to 1 MB are searched."
        ),
        "input_schema": {
            "type": "object",
            "properties": {
                "pattern": {"type": "string", "description": "Regular expression"},
                "path": {
                    "type": "string",
                    "description": "File or directory to search (default: working directory)",
                },
                "glob": {"type": "string", "description": "File name filter, e.g. \"*.ts\""},
                "output_mode": {
                    "type": "string",
                    "enum": ["content", "files_with_matches", "count"],
                    "description": "content (default), files_with_matches, or count",
                },
            },
            "required": ["pattern"],
        },
    },
    {
        "name": "Find",
        "description": (
            "Find files and directories by name, type, size and modification "
            "time. size: \"+1M\" (over 1 MB), \"-100K\" (under 100 KB), \"4K\" "
            "(about 4 KB). mtime: \"-7d\" (changed in the last 7 days), \"+1y\" "
            "(older than a year); units s m h d w M y."
        ),
        "input_schema": {
            "type": "object",
            "properties": {
                "path": {"type": "string", "description": "Start directory"},
                "name": {"type": "string", "description": "Name glob, e.g. \"*.log\""},
                "type": {"type": "string", "enum": ["file", "directory", "all"]},
                "size": {"type": "string", "description": "Size filter"},
                "mtime": {"type": "string", "description": "Modification time filter"},
                "max_depth": {"type": "integer", "description": "Default 10, max 20"},
                "limit": {"type": "integer", "description": "Default 100, max 500"},
            },
            "required": [],
        },
    },
    {
        "name": "Ls",
        "description": "List a directory. Directories first, then files by name.",
        "input_schema": {
            "type": "object",
            "properties": {
                "path": {"type": "string", "description": "Directory (default: working directory)"},
                "all": {"type": "boolean", "description": "Include hidden entries"},
                "long": {"type": "boolean", "description": "Show size and modification time"},
            },
            "required": [],
        },
    },
    {
        "name": "FileTree",
        "description": "Show a directory as a tree.",
        "input_schema": {
            "type": "object",
            "properties": {
                "path": {"type": "string", "description": "Directory (default: working directory)"},
                "max_depth": {"type": "integer", "description": "Default 3, max 5"},
                "include_hidden": {"type": "boolean", "description": "Include hidden entries"},
            },
            "required": [],
        },
    },
]
