"""Tool Input: validation of untrusted tool arguments coming from the model.

Invariants:
    - Every accessor either returns a value of the declared type or raises ToolValidationError
    - sandboxed_path() is the only way a handler turns a model-supplied path into an
      absolute one; it raises PathValidationError before any I/O happens
    - Integer options are clamped, never rejected, when they are numeric but out of range

Design Decisions:
    - Raise, don't return: the dispatcher converts AgentWebError into an is_error
      ToolResult at one boundary (ADR: ToolResult never raised past the dispatcher)
"""

from agentweb.core.errors import PathValidationError, ToolValidationError
from agentweb.core.path_sandbox import resolve_path, validate_path


def require_str(data: dict, key: str, allow_empty: bool = False) -> str:
    value = data.get(key)
    if not isinstance(value, str):
        raise ToolValidationError(f"'{key}' is required and must be a string", key)
    if not allow_empty and value == "":
        raise ToolValidationError(f"'{key}' must not be empty", key)
    return value


def optional_str(data: dict, key: str) -> str | None:
    value = data.get(key)
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise ToolValidationError(f"'{key}' must be a string", key)
    return value


def optional_bool(data: dict, key: str, default: bool = False) -> bool:
    value = data.get(key)
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes")
    return bool(value)


def require_int(data: dict, key: str) -> int:
    value = data.get(key)
    if value is None or isinstance(value, bool):
        raise ToolValidationError(f"'{key}' is required and must be an integer", key)
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ToolValidationError(f"'{key}' must be an integer, got {value!r}", key)


def clamped_int(data: dict, key: str, default: int, low: int, high: int) -> int:
    if data.get(key) is None:
        return default
    return max(low, min(high, require_int(data, key)))


def sandboxed_path(raw: str, working_dir: str) -> str:
    """Resolve a model-supplied path and reject it unless the sandbox allows it."""
    absolute = resolve_path(raw, working_dir)
    check = validate_path(raw, working_dir)
    if not check.valid:
        raise PathValidationError(check.error or "Access denied", raw)
    return absolute
