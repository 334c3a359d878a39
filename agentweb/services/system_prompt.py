"""Agent System Prompt: working directory, tool guidance and project instructions.

Invariants:
    - The working directory is always stated explicitly
    - Only tools the deployment enables are advertised
    - Project instructions, when present, come last under "## Project instructions"

Design Decisions:
    - Markdown sections over XML tags: the prompt is short and read top to bottom
    - Restricted mode is stated in the prompt so the model does not plan edits it cannot make
"""

from agentweb.core.domain_types import ToolMode
from agentweb.services.tools_registry import ToolPolicy

IDENTITY = "You are a helpful coding assistant working inside the user's project."

_TOOL_LINES = (
    ("Read", "read a file (numbered lines, offset/limit for large files)"),
    ("Write", "create or overwrite a file"),
    ("Edit", "replace exact text in a file"),
    ("MultiEdit", "several replacements in one file, all or nothing"),
    ("NotebookEdit", "change cells of a Jupyter notebook"),
    ("Diff", "compare two files"),
    ("Bash", "run shell commands, tests and builds"),
    ("Glob", "find files by pattern"),
    ("Grep", "search file contents"),
    ("Find", "find files by name, size or modification time"),
    ("Ls", "list a directory"),
    ("FileTree", "show a directory tree"),
    ("WebFetch", "fetch a web page"),
    ("WebSearch", "search the web"),
    ("GitStatus", "repository status"),
    ("GitDiff", "repository changes"),
    ("GitLog", "commit history"),
    ("TodoRead", "read the task list of this conversation"),
    ("TodoWrite", "plan and track multi-step work"),
)

GUIDELINES = """\
## Guidelines

- Read a file before changing it.
- Use Glob and Grep to locate code instead of guessing paths.
- Use Edit or MultiEdit for targeted changes and Write for new files or rewrites.
- Use Bash for tests, builds and other commands.
- Call one tool at a time and look at its result before deciding the next step.

## Constraints

- File tools only work inside the working directory; system paths and files that look
  like secrets (.env, keys, credentials) are refused.
- Be careful with commands that delete or overwrite data.
- Keep answers short and clear."""


def build_tool_section(policy: ToolPolicy) -> str:
    enabled = policy.enabled_tool_names
    lines = ["## Tools", ""]
    lines += [f"- **{name}**: {what}" for name, what in _TOOL_LINES if name in enabled]
    if policy.mode == ToolMode.RESTRICTED:
        lines += [
            "",
            "This server runs in restricted mode: some tools that change files or run "
            "commands are disabled. Explain the change instead when you cannot make it.",
        ]
    return "\n".join(lines)


def build_system_prompt(
    working_dir: str, policy: ToolPolicy, project_instructions: str | None = None,
) -> str:
    sections = [
        IDENTITY,
        build_tool_section(policy),
        "## Working directory\n\n"
        f"Current working directory: {working_dir}\n\n"
        "All file paths are relative to this directory; absolute paths must stay inside it.",
        GUIDELINES,
    ]
    if project_instructions and project_instructions.strip():
        sections.append(f"## Project instructions\n\n{project_instructions.strip()}")
    return "\n\n".join(sections)
