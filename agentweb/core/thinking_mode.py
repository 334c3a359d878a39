"""Thinking Mode: decides per round whether extended thinking is requested.

Invariants:
    - should_use_thinking() is pure: same text, same answer
    - Only the most recent user-authored text is considered (tool_result turns are skipped)

Design Decisions:
    - Cheap heuristic over a classifier call: runs on every round, must cost nothing
    - Keyword list carries English and Chinese intents (the UI ships both)
"""

from collections.abc import Sequence

from agentweb.schemas.message import Message, TextBlock

LONG_MESSAGE_CHARS = 100

THINKING_KEYWORDS = (
    "debug", "调试",
    "implement", "实现",
    "analyze", "analysis", "分析",
    "optimize", "optimization", "优化",
    "refactor", "重构",
    "bug", "error", "错误", "报错", "异常",
    "explain", "解释",
    "why", "为什么",
    "how", "怎么", "如何",
    "code", "代码",
    "function", "函数",
    "algorithm", "算法",
    "design", "设计",
    "architecture", "架构",
    "performance", "性能",
    "complex", "复杂",
)


def should_use_thinking(text: str) -> bool:
    """True when the user's text looks like it needs deliberate reasoning."""
    if len(text) > LONG_MESSAGE_CHARS:
        return True
    if "`" in text:
        return True
    lowered = text.lower()
    return any(keyword in lowered for keyword in THINKING_KEYWORDS)


def last_user_text(messages: Sequence[Message]) -> str:
    """Text of the latest user message that carries any text blocks."""
    for message in reversed(messages):
        if message.role != "user":
            continue
        texts = [b.content for b in message.content if isinstance(b, TextBlock)]
        if texts:
            return "\n".join(texts)
    return ""
