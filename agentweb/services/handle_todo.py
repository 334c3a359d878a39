"""Todo Handlers: TodoRead and TodoWrite over the session's TodoStore.

Invariants:
    - The session id comes from the dispatcher, never from tool input
    - create requires subject; update and delete require an existing id
"""

from agentweb.core.domain_types import TodoStatus, ToolResult
from agentweb.core.errors import ToolValidationError
from agentweb.services.todo_store import TodoItem, TodoStore
from agentweb.services.tool_input import clamped_int, optional_str, require_str

WRITE_ACTIONS = ("create", "update", "delete")


def _status(input_data: dict) -> TodoStatus | None:
    raw = optional_str(input_data, "status")
    if raw is None:
        return None
    try:
        return TodoStatus(raw)
    except ValueError:
        raise ToolValidationError(
            "'status' must be pending, in_progress or completed", "status",
        )


def _blocked_by(input_data: dict) -> list[str] | None:
    value = input_data.get("blocked_by")
    if value is None:
        return None
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ToolValidationError("'blocked_by' must be a list of task ids", "blocked_by")
    return value


def format_item(item: TodoItem) -> str:
    lines = [f"[{item.id}] {item.subject}", f"    status: {item.status.value}"]
    if item.description:
        lines.append(f"    description: {item.description}")
    if item.blocked_by:
        lines.append(f"    blocked by: {', '.join(item.blocked_by)}")
    lines.append(
        f"    created: {item.created_at:%Y-%m-%d %H:%M} | updated: {item.updated_at:%Y-%m-%d %H:%M}"
    )
    return "\n".join(lines)


class TodoHandlers:

    def __init__(self, store: TodoStore, session_id: str):
        self.store = store
        self.session_id = session_id

    async def todo_read(self, working_dir: str, input_data: dict) -> ToolResult:
        status = _status(input_data)
        limit = clamped_int(input_data, "limit", 50, 1, 100)
        items = self.store.list_items(self.session_id, status)
        stats = self.store.stats(self.session_id)

        lines = [
            "Tasks",
            "═" * 40,
            f"Total: {stats.total} | pending: {stats.pending} | "
            f"in progress: {stats.in_progress} | completed: {stats.completed}",
            "",
        ]
        if not items:
            lines.append(f'No tasks with status "{status.value}"' if status else "No tasks")
        for item in items[:limit]:
            lines.append(format_item(item))
            lines.append("")
        if len(items) > limit:
            lines.append(f"... {len(items) - limit} more tasks not shown")
        return ToolResult("\n".join(lines).rstrip())

    async def todo_write(self, working_dir: str, input_data: dict) -> ToolResult:
        action = require_str(input_data, "action")
        if action not in WRITE_ACTIONS:
            raise ToolValidationError("'action' must be create, update or delete", "action")

        if action == "create":
            subject = require_str(input_data, "subject")
            item = self.store.create(
                self.session_id, subject,
                description=optional_str(input_data, "description"),
                blocked_by=_blocked_by(input_data),
            )
            return ToolResult(f"Created task:\n{format_item(item)}")

        todo_id = require_str(input_data, "id")
        if action == "delete":
            if not self.store.delete(self.session_id, todo_id):
                return ToolResult.error(f"Task not found: {todo_id}")
            return ToolResult(f"Deleted task {todo_id}")

        changes: dict = {}
        for key in ("subject", "description"):
            value = optional_str(input_data, key)
            if value is not None:
                changes[key] = value
        status = _status(input_data)
        if status is not None:
            changes["status"] = status
        blocked_by = _blocked_by(input_data)
        if blocked_by is not None:
            changes["blocked_by"] = blocked_by
        if not changes:
            return ToolResult.error("Nothing to update: give subject, description, status or blocked_by")

        item = self.store.update(self.session_id, todo_id, **changes)
        if item is None:
            return ToolResult.error(f"Task not found: {todo_id}")
        return ToolResult(f"Updated task:\n{format_item(item)}")
