"""Git Handlers: GitStatus, GitDiff, GitLog.

Invariants:
    - git runs as a subprocess with an argv list (no shell) and cwd = the validated repo path
    - Every tool first checks `git rev-parse --git-dir`; a non-repository is an is_error result
    - Model-supplied refs and file names never start with "-", so they cannot become options
    - A repository without commits is not an error for GitLog
    - Output is capped (DIFF_LIMIT) before it reaches the model

Design Decisions:
    - Porcelain v1 with --branch for status: stable, documented, one line per entry
    - Log records are split on an explicit separator line: subjects and bodies may
      contain anything else
"""

import asyncio
import logging
from dataclasses import dataclass, field

from agentweb.core.domain_types import ToolResult
from agentweb.core.errors import ToolValidationError
from agentweb.core.path_sandbox import relative_display
from agentweb.core.text_format import RULE, truncate
from agentweb.services.tool_input import (
    clamped_int, optional_bool, optional_str, sandboxed_path,
)

logger = logging.getLogger(__name__)

GIT_TIMEOUT_SECONDS = 30
DIFF_LIMIT = 50_000
LOG_SEPARATOR = "---COMMIT_SEPARATOR---"
LOG_FORMAT = f"--format=%H%n%h%n%an%n%ae%n%ci%n%cr%n%s%n%b%n{LOG_SEPARATOR}"
CONFLICT_CODES = frozenset({"UU", "AA", "DD", "AU", "UA", "DU", "UD"})


@dataclass(frozen=True)
class GitOutput:
    stdout: str
    stderr: str
    exit_code: int

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


async def run_git(args: list[str], cwd: str) -> GitOutput:
    try:
        proc = await asyncio.create_subprocess_exec(
            "git", *args,
            cwd=cwd,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        return GitOutput("", f"git is not available: {e}", 127)
    try:
        out, err = await asyncio.wait_for(proc.communicate(), GIT_TIMEOUT_SECONDS)
    except asyncio.TimeoutError:
        proc.kill()
        await proc.wait()
        return GitOutput("", f"git timed out after {GIT_TIMEOUT_SECONDS}s", 124)
    finally:
        if proc.returncode is None:
            proc.kill()
    return GitOutput(
        out.decode("utf-8", errors="replace").strip(),
        err.decode("utf-8", errors="replace").strip(),
        proc.returncode or 0,
    )


@dataclass
class StatusSummary:
    branch: str = "unknown"
    ahead: int = 0
    behind: int = 0
    staged: list[str] = field(default_factory=list)
    modified: list[str] = field(default_factory=list)
    deleted: list[str] = field(default_factory=list)
    renamed: list[str] = field(default_factory=list)
    untracked: list[str] = field(default_factory=list)
    conflicted: list[str] = field(default_factory=list)

    @property
    def clean(self) -> bool:
        return not (
            self.staged or self.modified or self.deleted
            or self.renamed or self.untracked or self.conflicted
        )


_STAGED_LABELS = {"A": "new file", "M": "modified", "D": "deleted", "C": "copied", "T": "type changed"}


def parse_status(porcelain: str) -> StatusSummary:
    """Parse `git status --porcelain=v1 --branch` output."""
    summary = StatusSummary()
    for line in porcelain.splitlines():
        if not line:
            continue
        if line.startswith("## "):
            header = line[3:]
            if header.startswith("No commits yet on "):
                summary.branch = header[len("No commits yet on "):].split("...")[0]
            else:
                summary.branch = header.split("...")[0].split(" ")[0]
            if "[" in header:
                tracking = header[header.index("[") + 1:header.rindex("]")]
                for part in tracking.split(","):
                    words = part.split()
                    if len(words) == 2 and words[0] in ("ahead", "behind"):
                        setattr(summary, words[0], int(words[1]))
            continue

        code, path = line[:2], line[3:]
        index_status, work_status = code[0], code[1]
        if code in CONFLICT_CODES:
            summary.conflicted.append(path)
            continue
        if code == "??":
            summary.untracked.append(path)
            continue
        if index_status == "R":
            summary.renamed.append(path)
        elif index_status in _STAGED_LABELS:
            summary.staged.append(f"{_STAGED_LABELS[index_status]}: {path}")
        if work_status == "M":
            summary.modified.append(path)
        elif work_status == "D":
            summary.deleted.append(path)
    return summary


def format_status(summary: StatusSummary) -> str:
    lines = [f"Branch: {summary.branch}"]
    tracking = []
    if summary.ahead:
        tracking.append(f"ahead by {summary.ahead} commits")
    if summary.behind:
        tracking.append(f"behind by {summary.behind} commits")
    if tracking:
        lines.append("  " + ", ".join(tracking))
    lines.append("")

    sections = (
        ("Conflicts:", "!", summary.conflicted),
        ("Staged changes:", "+", summary.staged),
        ("Modified (not staged):", "M", summary.modified),
        ("Deleted (not staged):", "D", summary.deleted),
        ("Renamed:", "R", summary.renamed),
        ("Untracked files:", "?", summary.untracked),
    )
    for title, marker, entries in sections:
        if entries:
            lines.append(title)
            lines.extend(f"  {marker} {entry}" for entry in entries)
            lines.append("")
    if summary.clean:
        lines.append("Working tree clean")
    return "\n".join(lines).strip()


@dataclass(frozen=True)
class Commit:
    hash: str
    short_hash: str
    author: str
    email: str
    date: str
    relative_date: str
    subject: str
    body: str


def parse_log(stdout: str) -> list[Commit]:
    commits = []
    for block in stdout.split(LOG_SEPARATOR):
        lines = block.strip("\n").split("\n")
        if len(lines) < 7:
            continue
        commits.append(Commit(*lines[:7], body="\n".join(lines[7:]).strip()))
    return commits


def format_log(commits: list[Commit]) -> str:
    lines: list[str] = []
    for commit in commits:
        lines.append(RULE)
        lines.append(f"commit {commit.short_hash} ({commit.hash[:12]})")
        lines.append(f"Author: {commit.author} <{commit.email}>")
        lines.append(f"Date:   {commit.date} ({commit.relative_date})")
        lines.append("")
        lines.append(f"    {commit.subject}")
        if commit.body:
            lines.append("")
            lines.extend(f"    {body_line}" for body_line in commit.body.split("\n"))
        lines.append("")
    return "\n".join(lines).rstrip()


def _safe_arg(data: dict, key: str) -> str | None:
    value = optional_str(data, key)
    if value is not None and value.startswith("-"):
        raise ToolValidationError(f"'{key}' must not start with '-'", key)
    return value


class GitHandlers:

    async def _repo(self, working_dir: str, input_data: dict) -> tuple[str | None, ToolResult | None]:
        repo = sandboxed_path(optional_str(input_data, "path") or ".", working_dir)
        check = await run_git(["rev-parse", "--git-dir"], repo)
        if not check.ok:
            shown = relative_display(repo, working_dir)
            return None, ToolResult.error(f'"{shown}" is not a git repository')
        return repo, None

    async def git_status(self, working_dir: str, input_data: dict) -> ToolResult:
        repo, problem = await self._repo(working_dir, input_data)
        if problem:
            return problem
        short = optional_bool(input_data, "short")
        result = await run_git(["status", "--porcelain=v1", "--branch"], repo)
        if not result.ok:
            return ToolResult.error(f"git status failed: {result.stderr or result.stdout}")
        if short:
            return ToolResult(result.stdout or "Working tree clean")
        return ToolResult(format_status(parse_status(result.stdout)))

    async def git_diff(self, working_dir: str, input_data: dict) -> ToolResult:
        staged = optional_bool(input_data, "staged")
        commit = _safe_arg(input_data, "commit")
        file = _safe_arg(input_data, "file")
        repo, problem = await self._repo(working_dir, input_data)
        if problem:
            return problem

        args = ["diff", "--no-color"]
        if staged:
            args.append("--staged")
        if commit:
            args.append(commit)
        if file:
            args += ["--", file]
        result = await run_git(args, repo)
        if not result.ok:
            return ToolResult.error(f"git diff failed: {result.stderr or result.stdout}")

        if staged:
            title = "Staged changes"
        elif commit:
            title = f"Changes against {commit}"
        else:
            title = "Working tree changes"
        if file:
            title += f" (file: {file})"
        body = truncate(result.stdout, DIFF_LIMIT) if result.stdout else "No differences"
        return ToolResult(f"{title}\n\n{body}")

    async def git_log(self, working_dir: str, input_data: dict) -> ToolResult:
        limit = clamped_int(input_data, "limit", 10, 1, 50)
        oneline = optional_bool(input_data, "oneline")
        author = _safe_arg(input_data, "author")
        file = _safe_arg(input_data, "file")
        repo, problem = await self._repo(working_dir, input_data)
        if problem:
            return problem

        args = ["log", "--oneline" if oneline else LOG_FORMAT, "-n", str(limit)]
        if author:
            args.append(f"--author={author}")
        if file:
            args += ["--", file]
        result = await run_git(args, repo)
        if not result.ok:
            if "does not have any commits" in result.stderr:
                return ToolResult("Repository has no commits yet")
            return ToolResult.error(f"git log failed: {result.stderr or result.stdout}")

        if oneline:
            return ToolResult(result.stdout or "No commits")
        commits = parse_log(result.stdout)
        return ToolResult(format_log(commits) if commits else "No commits")
