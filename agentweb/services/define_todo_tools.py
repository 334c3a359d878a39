"""Define Todo Tools: session-scoped task list schemas.

Invariants:
    - The session id is injected by the dispatcher, never supplied by the model
    - TodoWrite actions: create (subject required), update and delete (id required)
"""

TOOLS_TODO = [
    {
        "name": "TodoRead",
        "description": "List this session's tasks with their status, plus totals.",
        "input_schema": {
            "type": "object",
            "properties": {
                "status": {
                    "type": "string",
                    "enum": ["pending", "in_progress", "completed"],
                    "description": "Only tasks with this status",
                },
                "limit": {"type": "integer", "description": "Default 50, max 100"},
            },
            "required": [],
        },
    },
    {
        "name": "TodoWrite",
        "description": (
            "Create, update or delete a task in this session's list. Use it to "
            "plan multi-step work and to mark progress."
        ),
        "input_schema": {
            "type": "object",
            "properties": {
                "action": {"type": "string", "enum": ["create", "update", "delete"]},
                "id": {"type": "string", "description": "Task id (update/delete)"},
                "subject": {"type": "string", "description": "Short title (create)"},
                "description": {"type": "string"},
                "status": {
                    "type": "string",
                    "enum": ["pending", "in_progress", "completed"],
                },
                "blocked_by": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "Ids of tasks that must finish first",
                },
            },
            "required": ["action"],
        },
    },
]
