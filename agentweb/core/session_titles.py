"""Session Titles: fallback titles from the first message and cleanup of model-written ones.

Invariants:
    - fallback_title(): newlines flattened, at most 50 chars, "..." marks a cut
    - clean_model_title(): accepts 2..30 chars only, strips wrapping quotes and
      trailing punctuation (ASCII and CJK), returns None when nothing usable is left
"""

import re

DEFAULT_TITLE = "New Chat"
MAX_TITLE_CHARS = 50
MODEL_TITLE_MIN = 2
MODEL_TITLE_MAX = 30

TITLE_SYSTEM_PROMPT = (
    "You generate chat titles. Given the user's message, reply with a concise "
    "title of 2 to 20 words or characters in the user's language. No "
    "punctuation, no quotes, no prefix. Output only the title text."
)

_LEADING = re.compile(r"^[\"'“”‘’「『]+")
_TRAILING = re.compile(r"[\"'“”‘’」』。，！？.!?,]+$")


def fallback_title(message: str) -> str:
    trimmed = message.strip().replace("\r\n", " ").replace("\n", " ")
    if len(trimmed) <= MAX_TITLE_CHARS:
        return trimmed
    return trimmed[:MAX_TITLE_CHARS - 3] + "..."


def clean_model_title(text: str | None) -> str | None:
    if not text:
        return None
    text = text.strip()
    if not (MODEL_TITLE_MIN <= len(text) <= MODEL_TITLE_MAX):
        return None
    cleaned = _TRAILING.sub("", _LEADING.sub("", text)).strip()
    return cleaned or None
