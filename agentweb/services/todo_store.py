"""Todo Store: per-session task lists for the TodoRead/TodoWrite tools.

Invariants:
    - Ids are "todo-N", N counting from 1 per session and never reused
    - Listing order is creation order
    - Every mutation refreshes updated_at; created_at never changes
    - One lock guards all sessions (tools of different sessions may run concurrently)

Design Decisions:
    - In-memory and process-local: task lists are scratch space for one conversation,
      they are not part of the persisted message history
    - Owned object injected into the dispatcher, not module-level maps
"""

import threading
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone

from agentweb.core.domain_types import TodoStatus


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class TodoItem:
    id: str
    subject: str
    description: str | None = None
    status: TodoStatus = TodoStatus.PENDING
    blocked_by: tuple[str, ...] = ()
    created_at: datetime = field(default_factory=_now)
    updated_at: datetime = field(default_factory=_now)


@dataclass(frozen=True)
class TodoStats:
    total: int
    pending: int
    in_progress: int
    completed: int


class TodoStore:

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._items: dict[str, dict[str, TodoItem]] = {}
        self._counters: dict[str, int] = {}

    def create(
        self,
        session_id: str,
        subject: str,
        description: str | None = None,
        blocked_by: list[str] | None = None,
    ) -> TodoItem:
        with self._lock:
            counter = self._counters.get(session_id, 0) + 1
            self._counters[session_id] = counter
            item = TodoItem(
                id=f"todo-{counter}",
                subject=subject,
                description=description,
                blocked_by=tuple(blocked_by or ()),
            )
            self._items.setdefault(session_id, {})[item.id] = item
            return item

    def get(self, session_id: str, todo_id: str) -> TodoItem | None:
        with self._lock:
            return self._items.get(session_id, {}).get(todo_id)

    def update(self, session_id: str, todo_id: str, **changes) -> TodoItem | None:
        """Apply subject/description/status/blocked_by changes; None when unknown."""
        with self._lock:
            items = self._items.get(session_id, {})
            current = items.get(todo_id)
            if current is None:
                return None
            if "blocked_by" in changes:
                changes["blocked_by"] = tuple(changes["blocked_by"] or ())
            updated = replace(current, **changes, updated_at=_now())
            items[todo_id] = updated
            return updated

    def delete(self, session_id: str, todo_id: str) -> bool:
        with self._lock:
            return self._items.get(session_id, {}).pop(todo_id, None) is not None

    def list_items(self, session_id: str, status: TodoStatus | None = None) -> list[TodoItem]:
        with self._lock:
            items = list(self._items.get(session_id, {}).values())
        if status is not None:
            items = [item for item in items if item.status == status]
        return items

    def stats(self, session_id: str) -> TodoStats:
        items = self.list_items(session_id)
        return TodoStats(
            total=len(items),
            pending=sum(1 for i in items if i.status == TodoStatus.PENDING),
            in_progress=sum(1 for i in items if i.status == TodoStatus.IN_PROGRESS),
            completed=sum(1 for i in items if i.status == TodoStatus.COMPLETED),
        )

    def clear(self, session_id: str) -> None:
        with self._lock:
            self._items.pop(session_id, None)
            self._counters.pop(session_id, None)
