"""Tools Registry: the static tool catalog and the deployment tool policy.

Invariants:
    - ALL_TOOLS holds every tool definition exactly once (19 tools)
    - Read-only tools are always enabled; file-system and shell tools follow settings
    - Mode is "full" only when both capabilities are on
    - tool_definitions() returns only enabled tools, in catalog order (stable for prompt caching)

Design Decisions:
    - Explicit imports from each define_*_tools.py: no auto-discovery (ADR: ExMA)
    - ToolPolicy is a frozen value built from Settings: the dispatcher and the runner
      see the same policy for a whole turn
"""

from dataclasses import dataclass

from agentweb.config import Settings
from agentweb.core.domain_types import ToolMode
from agentweb.services.define_file_tools import TOOLS_FILE
from agentweb.services.define_search_tools import TOOLS_SEARCH
from agentweb.services.define_shell_tools import TOOLS_SHELL
from agentweb.services.define_web_tools import TOOLS_WEB
from agentweb.services.define_git_tools import TOOLS_GIT
from agentweb.services.define_todo_tools import TOOLS_TODO

ALL_TOOLS: list[dict] = [
    *TOOLS_FILE, *TOOLS_SEARCH, *TOOLS_SHELL, *TOOLS_WEB, *TOOLS_GIT, *TOOLS_TODO,
]

TOOL_NAMES = frozenset(t["name"] for t in ALL_TOOLS)

READ_ONLY_TOOLS = frozenset({
    "Read", "Glob", "Grep", "Find", "Ls", "FileTree", "Diff",
    "WebFetch", "WebSearch", "GitStatus", "GitDiff", "GitLog", "TodoRead",
})
FILE_SYSTEM_TOOLS = frozenset({
    "Write", "Edit", "MultiEdit", "NotebookEdit", "TodoWrite",
})
SHELL_TOOLS = frozenset({"Bash"})

CONFIRMATION_TOOLS = frozenset({"Write", "Edit", "MultiEdit", "NotebookEdit", "Bash"})

_DISABLED_MESSAGES = {
    "Write": "File writing is disabled: this server runs in restricted mode and does not allow creating or changing files.",
    "Edit": "File editing is disabled: this server runs in restricted mode and does not allow changing file contents.",
    "MultiEdit": "File editing is disabled: this server runs in restricted mode and does not allow changing file contents.",
    "NotebookEdit": "Notebook editing is disabled: this server runs in restricted mode and does not allow changing files.",
    "Bash": "Command execution is disabled: this server runs in restricted mode and does not allow running shell commands.",
}


@dataclass(frozen=True)
class ToolPolicy:
    file_system: bool = True
    bash: bool = True

    @classmethod
    def from_settings(cls, settings: Settings) -> "ToolPolicy":
        return cls(file_system=settings.tools_file_system, bash=settings.tools_bash)

    @property
    def mode(self) -> ToolMode:
        return ToolMode.FULL if self.file_system and self.bash else ToolMode.RESTRICTED

    @property
    def enabled_tool_names(self) -> frozenset[str]:
        names = set(READ_ONLY_TOOLS)
        if self.file_system:
            names |= FILE_SYSTEM_TOOLS
        if self.bash:
            names |= SHELL_TOOLS
        return frozenset(names)

    def is_enabled(self, name: str) -> bool:
        return name in self.enabled_tool_names

    def disabled_message(self, name: str) -> str:
        return _DISABLED_MESSAGES.get(
            name, f"Tool '{name}' is disabled. Current tool mode: {self.mode.value}.",
        )

    def tool_definitions(self) -> list[dict]:
        enabled = self.enabled_tool_names
        return [t for t in ALL_TOOLS if t["name"] in enabled]


def requires_confirmation(name: str) -> bool:
    return name in CONFIRMATION_TOOLS


def describe_tool(name: str, tool_input: dict) -> str:
    """One-line human description of a pending tool call."""
    get = tool_input.get
    descriptions = {
        "Read": lambda: f"Read file: {get('file_path')}",
        "Write": lambda: f"Write file: {get('file_path')}",
        "Edit": lambda: f"Edit file: {get('file_path')}",
        "MultiEdit": lambda: f"Edit file ({len(get('edits') or [])} edits): {get('file_path')}",
        "NotebookEdit": lambda: f"{str(get('action', 'edit')).capitalize()} notebook cell {get('cell_index')}: {get('file_path')}",
        "Diff": lambda: f"Compare files: {get('file1')} and {get('file2')}",
        "Bash": lambda: f"Run command: {get('command')}",
        "Glob": lambda: f"Find files: {get('pattern')}",
        "Grep": lambda: f"Search content: {get('pattern')}",
        "Find": lambda: f"Find entries in: {get('path') or '.'}",
        "Ls": lambda: f"List directory: {get('path') or '.'}",
        "FileTree": lambda: f"Show tree: {get('path') or '.'}",
        "WebFetch": lambda: f"Fetch page: {get('url')}",
        "WebSearch": lambda: f"Search the web: {get('query')}",
        "GitStatus": lambda: "Show git status",
        "GitDiff": lambda: "Show git diff",
        "GitLog": lambda: "Show git log",
        "TodoRead": lambda: "Read task list",
        "TodoWrite": lambda: f"{str(get('action', 'update')).capitalize()} task",
    }
    render = descriptions.get(name)
    return render() if render else f"Run: {name}"
