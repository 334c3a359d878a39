"""Define Shell Tools: the Bash tool schema.

Invariants:
    - Bash is only offered when the deployment enables it (tools_bash)
    - The command runs with the session working directory as cwd
"""

TOOLS_SHELL = [
    {
        "name": "Bash",
        "description": (
            "Run a shell command in the working directory and return its "
            "output (stdout, then stderr) and exit code. Use for builds, tests "
            "and other commands. Destructive system-wide commands are refused."
        ),
        "input_schema": {
            "type": "object",
            "properties": {
                "command": {"type": "string", "description": "Command line to run"},
                "timeout": {
                    "type": "integer",
                    "description": "Timeout in milliseconds (default 30000)",
                },
            },
            "required": ["command"],
        },
    },
]
