"""Text Formatting: small pure helpers shared by tool output renderers."""

from datetime import datetime

RULE = "─" * 50


def format_file_size(size: float) -> str:
    for unit in ("B", "K", "M"):
        if size < 1024:
            return f"{int(size)}{unit}" if unit == "B" else f"{size:.1f}{unit}"
        size /= 1024
    return f"{size:.1f}G"


def number_lines(lines: list[str], first_line: int = 1) -> str:
    """Render lines as `  12 │ text`, numbers right-aligned to the widest one."""
    width = len(str(first_line + len(lines) - 1)) if lines else 1
    return "\n".join(
        f"{str(first_line + k).rjust(width)} │ {line}" for k, line in enumerate(lines)
    )


def truncate(text: str, limit: int, marker: str = "\n... (truncated)") -> str:
    if len(text) <= limit:
        return text
    return text[:limit] + marker


def format_mtime(timestamp: float) -> str:
    return datetime.fromtimestamp(timestamp).strftime("%Y-%m-%d %H:%M")

