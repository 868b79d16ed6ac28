"""Profile normalization and budget rules for FightBook fighters.

Stored fighters come in two shapes: the 6-stat format produced by the visual
creator (``striking, speed, power, grappling, stamina, chin``) and the full
skills format submitted by CLI agents. Both are converted into the engine's
nine-stat SkillProfile here.
"""

from __future__ import annotations

import re
from typing import Any, Mapping

from simulation.fight_engine import DEFAULT_STAT, SkillProfile


class ProfileError(ValueError):
    """Raised for structurally invalid profile input."""


# ---------------------------------------------------------------------------
# Key normalization
# ---------------------------------------------------------------------------

SNAKE_TO_CAMEL: dict[str, str] = {
    "punch_speed": "punchSpeed",
    "punch_power": "punchPower",
    "head_movement": "headMovement",
    "kick_power": "kickPower",
    "takedown_defense": "takedownDefense",
    "clinch_control": "clinchControl",
    "submission_defense": "submissionDefense",
    "ground_and_pound": "groundAndPound",
    "guard_passing": "guardPassing",
    "top_control": "topControl",
    "bottom_game": "bottomGame",
    "fight_iq": "fightIQ",
    "ring_generalship": "ringGeneralship",
    "finishing_instinct": "finishingInstinct",
    "defensive_tendency": "defensiveTendency",
}

# Stats subject to the 20-95 range and the point budget
PHYSICAL_STATS = (
    "striking", "punchSpeed", "kickPower", "headMovement", "footwork", "combinations",
    "wrestling", "takedownDefense", "clinchControl", "trips", "throws",
    "submissions", "submissionDefense", "groundAndPound", "guardPassing", "sweeps",
    "topControl", "bottomGame", "cardio", "chin", "recovery", "strength", "flexibility",
    # 6-stat web format
    "grappling", "stamina", "power", "speed",
)

STAT_MIN = 20
STAT_MAX = 95
POINT_BASE = 30
POINT_BUDGET = 1200
WEB_FORMAT_STAT_COUNT = 6

NAME_MAX_LENGTH = 30
NAME_MIN_LENGTH = 2

TEMPLATE_STATS = (
    "striking", "punchSpeed", "strength", "wrestling", "submissions",
    "cardio", "chin", "headMovement", "takedownDefense",
)


def normalize_stat_keys(raw: Mapping[str, Any]) -> dict[str, Any]:
    if not isinstance(raw, Mapping):
        raise ProfileError("stats must be an object")
    return {SNAKE_TO_CAMEL.get(k, k): v for k, v in raw.items()}


def sanitize_name(name: str) -> str:
    return re.sub(r"[<>\"']", "", name.strip()[:NAME_MAX_LENGTH])


# ---------------------------------------------------------------------------
# Conversion
# ---------------------------------------------------------------------------

def _or_default(stats: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        value = stats.get(key)
        if isinstance(value, str):
            try:
                value = float(value)
            except ValueError:
                continue
        if value and not isinstance(value, bool):
            return value
    return DEFAULT_STAT


def to_skill_profile(fighter_id: Any, name: str, stats: Mapping[str, Any] | None) -> SkillProfile:
    """Convert a stored stat blob into an engine profile.

    Falsy stat values (missing, 0, empty) read as the average.
    """
    stats = normalize_stat_keys(stats or {})

    if "grappling" in stats:
        speed = _or_default(stats, "speed")
        grappling = _or_default(stats, "grappling")
        return SkillProfile(
            id=fighter_id,
            name=name,
            striking=_or_default(stats, "striking"),
            punch_speed=speed,
            punch_power=_or_default(stats, "power"),
            wrestling=grappling,
            submissions=round(grappling * 0.8),
            cardio=_or_default(stats, "stamina"),
            chin=_or_default(stats, "chin"),
            head_movement=round(speed * 0.8),
            takedown_defense=round(grappling * 0.7),
        )

    return SkillProfile(
        id=fighter_id,
        name=name,
        striking=_or_default(stats, "striking"),
        punch_speed=_or_default(stats, "punchSpeed"),
        punch_power=_or_default(stats, "strength", "punchPower"),
        wrestling=_or_default(stats, "wrestling"),
        submissions=_or_default(stats, "submissions"),
        cardio=_or_default(stats, "cardio"),
        chin=_or_default(stats, "chin"),
        head_movement=_or_default(stats, "headMovement"),
        takedown_defense=_or_default(stats, "takedownDefense"),
    )


# ---------------------------------------------------------------------------
# Budget validation
# ---------------------------------------------------------------------------

def points_spent(stats: Mapping[str, Any]) -> int:
    total = 0
    for stat in PHYSICAL_STATS:
        value = stats.get(stat)
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            total += max(0, value - POINT_BASE)
    return total


def validate_stats(stats: Mapping[str, Any]) -> list[str]:
    """Return a list of human-readable problems; empty means valid."""
    stats = normalize_stat_keys(stats)
    errors: list[str] = []
    total = 0
    present = 0

    for stat in PHYSICAL_STATS:
        value = stats.get(stat)
        if value is None:
            continue
        present += 1
        try:
            n = float(value)
        except (TypeError, ValueError):
            errors.append(f"{stat}: must be a number")
            continue
        if isinstance(value, bool) or n != n:
            errors.append(f"{stat}: must be a number")
            continue
        shown = int(n) if n.is_integer() else n
        if n < STAT_MIN:
            errors.append(f"{stat}: minimum is {STAT_MIN} (got {shown})")
        if n > STAT_MAX:
            errors.append(f"{stat}: maximum is {STAT_MAX} (got {shown})")
        total += max(0, n - POINT_BASE)

    if present > WEB_FORMAT_STAT_COUNT and total > POINT_BUDGET:
        errors.append(f"Over budget: {total:g} / {POINT_BUDGET} points used")
    return errors


# ---------------------------------------------------------------------------
# Skills file parsing
# ---------------------------------------------------------------------------

_LINE_RE = re.compile(r"^[\s>*#-]*([A-Za-z_][A-Za-z0-9_ ]*?)\s*[:=]\s*(.+?)\s*$")
_TEXT_FIELDS = {"name", "nickname"}

# Lowercased label -> canonical camelCase stat key
_KNOWN_KEYS: dict[str, str] = {
    key.lower(): key
    for key in (*PHYSICAL_STATS, *TEMPLATE_STATS, *SNAKE_TO_CAMEL.values(), "punchPower")
}
_KNOWN_KEYS.update(SNAKE_TO_CAMEL)


def _field_key(label: str) -> str:
    key = label.strip().replace(" ", "_")
    lowered = key.lower()
    if lowered in _TEXT_FIELDS:
        return lowered
    return _KNOWN_KEYS.get(lowered, key)


def parse_profile_text(text: str) -> dict[str, Any]:
    """Parse a skills file of ``key: value`` lines into a flat dict.

    Markdown bullets, headings, and bold markers around keys are tolerated.
    Lines that do not hold a number (other than name/nickname) are skipped.
    """
    parsed: dict[str, Any] = {}
    for raw in text.splitlines():
        match = _LINE_RE.match(raw.replace("**", ""))
        if not match:
            continue
        key = _field_key(match.group(1))
        value = match.group(2)
        if key in _TEXT_FIELDS:
            parsed[key] = value.strip("\"'")
            continue
        try:
            number = float(value)
        except ValueError:
            continue
        parsed[key] = int(number) if number.is_integer() else number
    return parsed


def render_profile_template(name: str) -> str:
    lines = [f"# {name}", "", f"name: {name}", ""]
    lines += [f"{stat}: {DEFAULT_STAT}" for stat in TEMPLATE_STATS]
    return "\n".join(lines) + "\n"
