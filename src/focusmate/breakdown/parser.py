# src/focusmate/breakdown/parser.py

from __future__ import annotations

"""
Breakdown parser.

Turns the free-form text a model produced into an ordered list of
(step description, estimated minutes). The model is asked for
"1. Action (X min)" lines but drifts, so several shapes are accepted,
tried in priority order per line:

1. "1. Action (5 min)" / "Step 1: Action (5 min)"
2. "- [Action] (5 min)"
3. "- Action (5 min)"
4. any unindented line with a "(5 min)" somewhere in it

Indented sub-bullets are clarifying detail and never become steps. Steps
that still carry the prompt's "[Clear action]" placeholder are dropped.
An empty result is a normal outcome, not an error.
"""

import logging
import re
from collections.abc import Iterator
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

PLACEHOLDER_PHRASE = "clear action"

_SUB_BULLET_RE = re.compile(r"^\s+(?:\*|-|•)")
# "<N>." or "<label>:"; a label never starts with a bullet or bracket.
_NUMBERED_RE = re.compile(
    r"^(?:\d+\.|[^\s:()\[\]*•-][^:()\[\]]*:)\s+([^()]+?)\s*\((\d+)\s*min\)",
    re.IGNORECASE,
)
_BRACKET_RE = re.compile(r"^-\s*\[([^\]]+)\]\s*\((\d+)\s*min\)", re.IGNORECASE)
_BULLET_RE = re.compile(r"^-\s+([^()]+?)\s*\((\d+)\s*min\)", re.IGNORECASE)
_FALLBACK_RE = re.compile(r"^\S.*?\((\d+)\s*min\)", re.IGNORECASE)
_MINUTES_PAREN_RE = re.compile(r"\s*\(\d+\s*min\)", re.IGNORECASE)

_STRICT_PATTERNS = (
    ("numbered", _NUMBERED_RE),
    ("bracket", _BRACKET_RE),
    ("bullet", _BULLET_RE),
)


@dataclass(frozen=True, slots=True)
class ParsedBreakdown:
    steps: list[str] = field(default_factory=list)
    minutes: list[int] = field(default_factory=list)

    @property
    def total_minutes(self) -> int:
        return sum(self.minutes)

    def __len__(self) -> int:
        return len(self.steps)

    def __bool__(self) -> bool:
        return bool(self.steps)

    def __iter__(self) -> Iterator[tuple[str, int]]:
        return iter(zip(self.steps, self.minutes))


def _is_placeholder(text: str) -> bool:
    return PLACEHOLDER_PHRASE in text.lower()


def _match_line(line: str) -> tuple[str, int] | None:
    """
    Extract (text, minutes) from one line, or None.

    The first pattern that matches decides the line, even when its text is
    then rejected as a placeholder.
    """
    for kind, pattern in _STRICT_PATTERNS:
        m = pattern.match(line)
        if m is None:
            continue
        text = m.group(1).strip()
        if _is_placeholder(text):
            logger.debug("Skipped %s placeholder: %r", kind, text)
            return None
        return text, int(m.group(2))

    m = _FALLBACK_RE.match(line)
    if m is not None:
        text = _MINUTES_PAREN_RE.sub("", line, count=1).strip()
        if text and len(text) > 3 and not _is_placeholder(text):
            return text, int(m.group(1))

    return None


def parse_breakdown(text: str) -> ParsedBreakdown:
    """Parse model output into index-aligned step and minute lists."""
    steps: list[str] = []
    minutes: list[int] = []

    lines = [line for line in (text or "").splitlines() if line.strip()]
    for idx, line in enumerate(lines):
        if _SUB_BULLET_RE.match(line):
            logger.debug("Line %d: skipped sub-bullet", idx)
            continue

        hit = _match_line(line)
        if hit is None:
            logger.debug("Line %d: no step in %r", idx, line[:80])
            continue

        steps.append(hit[0])
        minutes.append(hit[1])

    if not steps and lines:
        logger.warning("No steps parsed from %d lines of model output", len(lines))
    else:
        logger.debug("Parsed %d steps (%d min total)", len(steps), sum(minutes))

    return ParsedBreakdown(steps=steps, minutes=minutes)
