"""Find Filters: the size/time mini-grammar behind the Find tool.

Grammar:
    size := [+|-] NUMBER [. NUMBER] [B|K|M|G|T]      e.g. "+1M", "-500K", "2048"
    time := [+|-] INTEGER (s|m|h|d|w|M|y)            e.g. "-7d", "+1y", "30m"

Invariants:
    - Parsing is separate from matching: parse_* returns a (comparator, magnitude) filter
      or raises ToolValidationError; matches() is a pure predicate
    - Size units are 1024-based; no sign means "about equal" (strictly within 1%)
    - Time: "-" (default) means modified within the window, "+" means older than it;
      M = 30 days, y = 365 days
    - Units are case-insensitive for size, case-sensitive for time (m = minute, M = month)

Design Decisions:
    - Explicit grammar + frozen dataclasses over ad hoc string slicing: each rule
      testable without touching the filesystem
"""

import re
from dataclasses import dataclass
from enum import Enum

from agentweb.core.errors import ToolValidationError

_SIZE_RE = re.compile(r"^([+-]?)(\d+(?:\.\d+)?)\s*([BKMGT])?$", re.IGNORECASE)
_TIME_RE = re.compile(r"^([+-]?)(\d+)\s*([smhdwMy])$")

SIZE_UNITS = {
    "B": 1,
    "K": 1024,
    "M": 1024 ** 2,
    "G": 1024 ** 3,
    "T": 1024 ** 4,
}

TIME_UNITS = {
    "s": 1,
    "m": 60,
    "h": 3600,
    "d": 86_400,
    "w": 7 * 86_400,
    "M": 30 * 86_400,
    "y": 365 * 86_400,
}

EQUAL_TOLERANCE = 0.01
RECENT_WINDOW_SECONDS = 60


class Comparator(str, Enum):
    GREATER = "+"
    LESS = "-"
    EQUAL = "="


def _comparator(sign: str, default: Comparator) -> Comparator:
    return Comparator(sign) if sign else default


@dataclass(frozen=True)
class SizeFilter:
    comparator: Comparator
    bytes: float

    def matches(self, size: int) -> bool:
        if self.comparator == Comparator.GREATER:
            return size > self.bytes
        if self.comparator == Comparator.LESS:
            return size < self.bytes
        return abs(size - self.bytes) < self.bytes * EQUAL_TOLERANCE


@dataclass(frozen=True)
class TimeFilter:
    """Age filter; `seconds` is the window length."""
    comparator: Comparator
    seconds: int

    def matches(self, mtime: float, now: float) -> bool:
        age = now - mtime
        if self.comparator == Comparator.LESS:
            return age <= self.seconds
        if self.comparator == Comparator.GREATER:
            return age > self.seconds
        return abs(age - self.seconds) <= RECENT_WINDOW_SECONDS


def parse_size(spec: str) -> SizeFilter:
    """Parse "+1M" style size filters."""
    match = _SIZE_RE.match(spec.strip())
    if not match:
        raise ToolValidationError(
            f"Invalid size filter '{spec}'. Use e.g. +1M, -500K, 100B",
            "size",
        )
    sign, number, unit = match.groups()
    multiplier = SIZE_UNITS[(unit or "B").upper()]
    return SizeFilter(_comparator(sign, Comparator.EQUAL), float(number) * multiplier)


def parse_time(spec: str) -> TimeFilter:
    """Parse "-7d" style modification-time filters."""
    match = _TIME_RE.match(spec.strip())
    if not match:
        raise ToolValidationError(
            f"Invalid time filter '{spec}'. Use e.g. -7d, +1M, -2h",
            "mtime",
        )
    sign, amount, unit = match.groups()
    return TimeFilter(_comparator(sign, Comparator.LESS), int(amount) * TIME_UNITS[unit])
