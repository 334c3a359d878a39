"""Path Sandbox: resolves and validates every filesystem path a tool touches.

Invariants:
    - Checks run in a fixed order: containment, system denylist, sensitive file name
    - A path whose form relative to working_dir starts with a `..` segment, is absolute,
      or sits on another drive is rejected for every working_dir
    - Denylist matches whole path components (/etc rejects /etc/passwd, not /etcetera)
    - validate_path() never touches the filesystem beyond path normalization

Design Decisions:
    - One strict policy for all file tools (containment + denylist + sensitive names);
      the looser denylist-only variant is not offered (ADR: single chokepoint)
    - os.path over pathlib here: relpath/commonpath semantics on both POSIX and Windows,
      and ntpath can be exercised from POSIX tests
    - Sensitive-name patterns compiled once at import time
"""

import ntpath
import os
import re
from dataclasses import dataclass
from types import ModuleType

POSIX_DENYLIST = (
    "/bin", "/sbin", "/usr/bin", "/usr/sbin", "/etc", "/var", "/root",
)

WINDOWS_DENYLIST = (
    "C:\\Windows",
    "C:\\Program Files",
    "C:\\Program Files (x86)",
    "C:\\ProgramData",
)

SENSITIVE_PATTERNS = tuple(
    re.compile(p, re.IGNORECASE)
    for p in (
        r"\.env$",
        r"\.key$",
        r"\.pem$",
        r"\.p12$",
        r"\.pfx$",
        r"password",
        r"secret",
        r"credential",
        r"private.*key",
    )
)


@dataclass(frozen=True)
class PathValidation:
    valid: bool
    error: str | None = None


_OK = PathValidation(valid=True)


def resolve_path(path: str, working_dir: str, pathmod: ModuleType = os.path) -> str:
    """Absolute paths are normalized as-is; relative ones are joined to working_dir."""
    if pathmod.isabs(path):
        return pathmod.normpath(path)
    return pathmod.normpath(pathmod.join(working_dir, path))


def validate_path(
    path: str, working_dir: str, pathmod: ModuleType = os.path,
) -> PathValidation:
    """Validate a (resolved or raw) path against the sandbox rooted at working_dir."""
    absolute = resolve_path(path, working_dir, pathmod)
    root = pathmod.normpath(working_dir)

    if _escapes(absolute, root, pathmod):
        return PathValidation(
            False, f"Access denied: '{path}' is outside the working directory",
        )

    denied = _denylisted_root(absolute, pathmod)
    if denied is not None:
        return PathValidation(
            False, f"Access denied: '{path}' is inside protected system path {denied}",
        )

    name = pathmod.basename(absolute)
    for pattern in SENSITIVE_PATTERNS:
        if pattern.search(name):
            return PathValidation(
                False, f"Access denied: '{name}' looks like a sensitive file",
            )
    return _OK


def _escapes(absolute: str, root: str, pathmod: ModuleType) -> bool:
    try:
        rel = pathmod.relpath(absolute, root)
    except ValueError:
        # different drives on Windows
        return True
    if pathmod.isabs(rel):
        return True
    first = rel.replace("\\", "/").split("/", 1)[0]
    return first == ".."


def _denylisted_root(absolute: str, pathmod: ModuleType) -> str | None:
    is_windows = pathmod is ntpath
    denylist = WINDOWS_DENYLIST if is_windows else POSIX_DENYLIST
    candidate = pathmod.normcase(absolute) if is_windows else absolute
    sep = pathmod.sep
    for entry in denylist:
        prefix = pathmod.normcase(entry) if is_windows else entry
        if candidate == prefix or candidate.startswith(prefix.rstrip(sep) + sep):
            return entry
    return None


def relative_display(path: str, working_dir: str) -> str:
    """Path shown to the model: relative when inside working_dir, else as given."""
    try:
        rel = os.path.relpath(path, working_dir)
    except ValueError:
        return path
    return path if rel.startswith("..") else rel

