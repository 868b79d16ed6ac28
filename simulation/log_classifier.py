"""Classify play-by-play lines for renderers that only see the string log."""

from __future__ import annotations

import enum
import re
from typing import Iterable, Optional, Sequence


class LineKind(str, enum.Enum):
    ROUND_HEADER = "round_header"
    OPENING = "opening"
    MISS = "miss"
    CONNECT = "connect"
    SOLID_STRIKE = "solid_strike"
    CRITICAL = "critical"
    TAKEDOWN_DEFENDED = "takedown_defended"
    TAKEDOWN = "takedown"
    SUBMISSION_ESCAPED = "submission_escaped"
    SUBMISSION_FINISH = "submission_finish"
    GROUND_AND_POUND = "ground_and_pound"
    STOPPAGE = "stoppage"
    END_OF_ROUND = "end_of_round"
    DECISION_MARKER = "decision_marker"
    DRAW = "draw"
    DECISION_WIN = "decision_win"
    BLANK = "blank"
    UNKNOWN = "unknown"


_ROUND_RE = re.compile(r"^\[Round (\d+)\]$")
_END_RE = re.compile(r"^End of Round \d+$")
_SUB_FINISH_RE = re.compile(r" locks in an? [A-Z ]+! .+ taps!$")
_HOLD_RE = re.compile(r"^locks in an? [A-Z ]+! (.+) taps!$")
_ENTER_SUFFIX = " enters the cage"

_OPENING_LINES = {"The referee gives final instructions", "Fight!"}

# Phrases that follow the actor's name and end the line
_ACTOR_PHRASES: dict[str, LineKind] = {
    "swarms with punches! The referee stops it!": LineKind.STOPPAGE,
    "wins by decision!": LineKind.DECISION_WIN,
    "secures a takedown": LineKind.TAKEDOWN,
    "lands ground and pound": LineKind.GROUND_AND_POUND,
    "enters the cage": LineKind.OPENING,
    "connects": LineKind.CONNECT,
    "misses": LineKind.MISS,
}

# Phrases that also name the target
_TARGET_PHRASES: list[tuple[str, LineKind]] = [
    ("attempts a submission but {target} escapes", LineKind.SUBMISSION_ESCAPED),
    ("shoots but {target} defends", LineKind.TAKEDOWN_DEFENDED),
    ("lands a solid strike on {target}", LineKind.SOLID_STRIKE),
]

# Without names: lines with a fixed tail go first, then bare suffixes,
# then the one phrase that ends in the defender's name
_TAILED_RES: list[tuple[re.Pattern, LineKind]] = [
    (re.compile(r"^.+ attempts a submission but .+ escapes$"), LineKind.SUBMISSION_ESCAPED),
    (re.compile(r"^.+ shoots but .+ defends$"), LineKind.TAKEDOWN_DEFENDED),
]
_SOLID_INFIX = " lands a solid strike on "


def competitor_names(log: Iterable[str]) -> tuple[str, ...]:
    """Names announced by the opening ``<name> enters the cage`` lines."""
    return tuple(
        line[:-len(_ENTER_SUFFIX)] for line in log
        if line.endswith(_ENTER_SUFFIX) and len(line) > len(_ENTER_SUFFIX)
    )


def _classify_with_names(line: str, names: Sequence[str]) -> Optional[LineKind]:
    # Longest first so "Bo" never shadows "Bo Jackson"
    for actor in sorted(names, key=len, reverse=True):
        if not line.startswith(actor + " "):
            continue
        rest = line[len(actor) + 1:]
        if rest in _ACTOR_PHRASES:
            return _ACTOR_PHRASES[rest]
        for target in names:
            if target == actor:
                continue
            for template, kind in _TARGET_PHRASES:
                if rest == template.format(target=target):
                    return kind
            hold = _HOLD_RE.match(rest)
            if hold and hold.group(1) == target:
                return LineKind.SUBMISSION_FINISH
    return None


def classify_line(line: str, names: Optional[Sequence[str]] = None) -> LineKind:
    """Categorize one log line.

    Passing the competitors' ``names`` anchors each phrase on the exact
    actor and target, so names that contain engine phrases still classify
    correctly. Without names the line shape alone is used.
    """
    if not line.strip():
        return LineKind.BLANK
    if _ROUND_RE.match(line):
        return LineKind.ROUND_HEADER
    if line.startswith("[CRITICAL]"):
        return LineKind.CRITICAL
    if line == "[Decision]":
        return LineKind.DECISION_MARKER
    if line == "Split Decision... DRAW!":
        return LineKind.DRAW
    if _END_RE.match(line):
        return LineKind.END_OF_ROUND
    if line in _OPENING_LINES:
        return LineKind.OPENING
    if names:
        kind = _classify_with_names(line, names)
        if kind is not None:
            return kind
    if _SUB_FINISH_RE.search(line):
        return LineKind.SUBMISSION_FINISH
    for pattern, kind in _TAILED_RES:
        if pattern.match(line):
            return kind
    for phrase, kind in _ACTOR_PHRASES.items():
        if line.endswith(" " + phrase):
            return kind
    if _SOLID_INFIX in line:
        return LineKind.SOLID_STRIKE
    return LineKind.UNKNOWN


def round_number(line: str) -> Optional[int]:
    match = _ROUND_RE.match(line)
    return int(match.group(1)) if match else None


def is_fight_over(line: str, names: Optional[Sequence[str]] = None) -> bool:
    return classify_line(line, names) in (
        LineKind.STOPPAGE, LineKind.SUBMISSION_FINISH,
        LineKind.DRAW, LineKind.DECISION_WIN,
    )
