"""Line Diff: LCS-based line edit script rendered as unified-diff hunks.

Invariants:
    - The edit script is derived from an O(n*m) longest-common-subsequence table
    - Context radius is clamped to 0..10 (default 3)
    - Hunks whose context windows touch or overlap are merged
    - Identical inputs produce zero hunks

Design Decisions:
    - Own LCS instead of difflib: difflib's SequenceMatcher is heuristic (junk handling,
      autojunk) and may differ from a minimal edit script on repetitive files
    - When both directions tie during backtracking the insertion is emitted first, so
      deletions precede insertions in the forward script
"""

from dataclasses import dataclass, field

DEFAULT_CONTEXT = 3
MAX_CONTEXT = 10


@dataclass(frozen=True)
class DiffLine:
    op: str  # " " | "-" | "+"
    text: str
    old_no: int | None
    new_no: int | None


@dataclass
class Hunk:
    old_start: int
    old_count: int
    new_start: int
    new_count: int
    lines: list[DiffLine] = field(default_factory=list)

    @property
    def header(self) -> str:
        return f"@@ -{self.old_start},{self.old_count} +{self.new_start},{self.new_count} @@"


@dataclass
class DiffResult:
    hunks: list[Hunk]
    additions: int
    deletions: int

    @property
    def identical(self) -> bool:
        return not self.hunks

    @property
    def summary(self) -> str:
        if self.identical:
            return "Files are identical"
        return f"{self.additions} additions, {self.deletions} deletions"


def clamp_context(context: int | None) -> int:
    if context is None:
        return DEFAULT_CONTEXT
    return max(0, min(MAX_CONTEXT, int(context)))


def edit_script(old: list[str], new: list[str]) -> list[DiffLine]:
    """Full line script (equal, delete, insert) from the LCS table."""
    n, m = len(old), len(new)
    dp = [[0] * (m + 1) for _ in range(n + 1)]
    for i in range(1, n + 1):
        for j in range(1, m + 1):
            if old[i - 1] == new[j - 1]:
                dp[i][j] = dp[i - 1][j - 1] + 1
            else:
                dp[i][j] = max(dp[i - 1][j], dp[i][j - 1])

    script: list[DiffLine] = []
    i, j = n, m
    while i > 0 or j > 0:
        if i > 0 and j > 0 and old[i - 1] == new[j - 1]:
            script.append(DiffLine(" ", old[i - 1], i, j))
            i -= 1
            j -= 1
        elif j > 0 and (i == 0 or dp[i][j - 1] >= dp[i - 1][j]):
            script.append(DiffLine("+", new[j - 1], None, j))
            j -= 1
        else:
            script.append(DiffLine("-", old[i - 1], i, None))
            i -= 1
    script.reverse()
    return script


def build_hunks(script: list[DiffLine], context: int = DEFAULT_CONTEXT) -> list[Hunk]:
    changes = [k for k, line in enumerate(script) if line.op != " "]
    if not changes:
        return []

    ranges: list[list[int]] = []
    for k in changes:
        start, end = max(0, k - context), min(len(script) - 1, k + context)
        if ranges and start <= ranges[-1][1] + 1:
            ranges[-1][1] = max(ranges[-1][1], end)
        else:
            ranges.append([start, end])

    return [_make_hunk(script[start:end + 1], script, start) for start, end in ranges]


def _make_hunk(lines: list[DiffLine], script: list[DiffLine], offset: int) -> Hunk:
    old_start = _first_number(script, offset, "old_no")
    new_start = _first_number(script, offset, "new_no")
    old_count = sum(1 for line in lines if line.op != "+")
    new_count = sum(1 for line in lines if line.op != "-")
    # unified diff convention: an empty side points at the line before it
    if old_count == 0:
        old_start -= 1
    if new_count == 0:
        new_start -= 1
    return Hunk(old_start, old_count, new_start, new_count, list(lines))


def _first_number(script: list[DiffLine], offset: int, attr: str) -> int:
    """1-based line number where the hunk starts on one side."""
    for line in script[offset:]:
        value = getattr(line, attr)
        if value is not None:
            return value
    # nothing left on this side: position after the last numbered line
    for line in reversed(script[:offset]):
        value = getattr(line, attr)
        if value is not None:
            return value + 1
    return 1


def compute_diff(old_text: str, new_text: str, context: int | None = None) -> DiffResult:
    old_lines = old_text.split("\n")
    new_lines = new_text.split("\n")
    script = edit_script(old_lines, new_lines)
    hunks = build_hunks(script, clamp_context(context))
    return DiffResult(
        hunks=hunks,
        additions=sum(1 for line in script if line.op == "+"),
        deletions=sum(1 for line in script if line.op == "-"),
    )


def format_unified(result: DiffResult, old_label: str, new_label: str) -> str:
    out = [f"--- {old_label}", f"+++ {new_label}"]
    for hunk in result.hunks:
        out.append(hunk.header)
        out.extend(f"{line.op}{line.text}" for line in hunk.lines)
    return "\n".join(out)
