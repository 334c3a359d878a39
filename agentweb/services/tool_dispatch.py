"""Tool Dispatch: explicit routing from tool_name to handler function.

Invariants:
    - Every tool->handler mapping is visible: no getattr magic, no auto-discovery
    - execute() never raises for tool failures: unknown tool, disabled tool, bad input,
      rejected path and unexpected exceptions all come back as is_error ToolResults
    - The policy check happens before the handler runs; a disabled tool does no I/O
    - Todo tools get the session id from the dispatcher, never from tool input
    - Every call is logged with tool_name and outcome

Design Decisions:
    - Explicit dict over getattr: every mapping visible in one place
      (ADR: ExMA no convention-over-config)
    - Split handlers by concern: max ~4 methods per class
      (ADR: ExMA no god objects)
    - One dispatcher per agent session: session-scoped state (todos) is bound once
    - asyncio.CancelledError is not caught: cancelling the request still cancels the tool
"""

import logging

import httpx

from agentweb.core.domain_types import ToolResult
from agentweb.core.errors import AgentWebError
from agentweb.services.handle_diff import DiffHandlers
from agentweb.services.handle_directory import DirectoryHandlers
from agentweb.services.handle_file import FileHandlers
from agentweb.services.handle_git import GitHandlers
from agentweb.services.handle_notebook import NotebookHandlers
from agentweb.services.handle_search import SearchHandlers
from agentweb.services.handle_shell import ShellHandlers
from agentweb.services.handle_todo import TodoHandlers
from agentweb.services.handle_web import WebHandlers
from agentweb.services.todo_store import TodoStore
from agentweb.services.tools_registry import ToolPolicy, describe_tool, requires_confirmation

logger = logging.getLogger(__name__)


class ToolDispatch:
    """Routes tool_name -> handler. Explicit registration, no auto-discovery."""

    def __init__(
        self,
        policy: ToolPolicy,
        session_id: str,
        todo_store: TodoStore,
        bash_timeout_ms: int = 30_000,
        web_timeout_seconds: float = 30.0,
        web_transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.policy = policy
        self._session_id = session_id
        files = FileHandlers()
        notebook = NotebookHandlers()
        diff = DiffHandlers()
        search = SearchHandlers()
        directory = DirectoryHandlers()
        shell = ShellHandlers(bash_timeout_ms)
        web = WebHandlers(web_timeout_seconds, web_transport)
        git = GitHandlers()
        todo = TodoHandlers(todo_store, session_id)

        # ADR: every mapping explicit, adding a tool requires editing this dict
        self._handlers = {
            # Files (6 tools)
            "Read": files.read,
            "Write": files.write,
            "Edit": files.edit,
            "MultiEdit": files.multi_edit,
            "NotebookEdit": notebook.notebook_edit,
            "Diff": diff.diff,

            # Search and directories (5 tools)
            "Glob": search.glob,
            "Grep": search.grep,
            "Find": search.find,
            "Ls": directory.ls,
            "FileTree": directory.file_tree,

            # Shell (1 tool)
            "Bash": shell.bash,

            # Web (2 tools)
            "WebFetch": web.web_fetch,
            "WebSearch": web.web_search,

            # Git (3 tools)
            "GitStatus": git.git_status,
            "GitDiff": git.git_diff,
            "GitLog": git.git_log,

            # Todo (2 tools)
            "TodoRead": todo.todo_read,
            "TodoWrite": todo.todo_write,
        }

    @property
    def tool_names(self) -> frozenset[str]:
        return frozenset(self._handlers)

    def tool_definitions(self) -> list[dict]:
        return self.policy.tool_definitions()

    def describe(self, tool_name: str, input_data: dict) -> str:
        return describe_tool(tool_name, input_data if isinstance(input_data, dict) else {})

    def requires_confirmation(self, tool_name: str) -> bool:
        return requires_confirmation(tool_name)

    async def execute(
        self, tool_name: str, input_data: dict, working_dir: str,
    ) -> ToolResult:
        """Route tool_name to its handler. Always returns a ToolResult."""
        handler = self._handlers.get(tool_name)
        if handler is None:
            result = ToolResult.error(f"Unknown tool: '{tool_name}'")
        elif not self.policy.is_enabled(tool_name):
            result = ToolResult.error(self.policy.disabled_message(tool_name))
        elif not isinstance(input_data, dict):
            result = ToolResult.error("Tool input must be a JSON object")
        else:
            result = await self._run(tool_name, handler, input_data, working_dir)
        self._log_tool_call(tool_name, result)
        return result

    async def _run(self, tool_name, handler, input_data: dict, working_dir: str) -> ToolResult:
        try:
            return await handler(working_dir, input_data)
        except AgentWebError as e:
            logger.info(
                f"Tool '{tool_name}' rejected input: {e.message}",
                extra={"session_id": self._session_id, "tool_name": tool_name, "error_code": e.code},
            )
            return ToolResult.error(e.message)
        except Exception as e:
            logger.exception(
                f"Tool '{tool_name}' failed",
                extra={"session_id": self._session_id, "tool_name": tool_name},
            )
            return ToolResult.error(f"Tool '{tool_name}' failed: {type(e).__name__}: {e}")

    def _log_tool_call(self, tool_name: str, result: ToolResult) -> None:
        logger.info(
            f"Tool call {tool_name}: {'error' if result.is_error else 'ok'}",
            extra={"session_id": self._session_id, "tool_name": tool_name},
        )
