"""
Combat resolution engine for FightBook.

Completely decoupled from Flask and the database: takes two skill profiles,
returns a MatchResult with the full play-by-play log.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import Any, Mapping, Optional

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

KO = "KO"
TKO = "TKO"
SUB = "SUB"
DEC = "DEC"
METHODS = (KO, TKO, SUB, DEC)

DRAW = "DRAW"

MAX_ROUNDS = 3
MIN_EXCHANGES = 6
MAX_EXCHANGES = 10

ROUND_STAMINA_RECOVERY = 20
STRIKE_STAMINA_COST = 3
EXCHANGE_STAMINA_COST = 1

CRITICAL_CHANCE = 0.15
CRITICAL_MULTIPLIER = 1.5
SOLID_STRIKE_THRESHOLD = 15
HEAD_DAMAGE_SHARE = 0.7
BODY_DAMAGE_SHARE = 0.4

STOPPAGE_THRESHOLD = 20
STOPPAGE_CHANCE = 0.4

SUBMISSION_ATTEMPT_CHANCE = 0.3
GROUND_AND_POUND_RANGE = (10, 20)
SUBMISSIONS = ("guillotine", "rear naked choke", "armbar", "triangle")

DRAW_MARGIN = 5
DECISION_JITTER = 10

DEFAULT_STAT = 50
STAT_NAMES = (
    "striking", "punch_speed", "punch_power", "wrestling", "submissions",
    "cardio", "chin", "head_movement", "takedown_defense",
)

_CAMEL_KEYS = {
    "punchSpeed": "punch_speed",
    "punchPower": "punch_power",
    "headMovement": "head_movement",
    "takedownDefense": "takedown_defense",
}


class InvalidMatchError(ValueError):
    """Raised when a match cannot be built from the given pairing."""


# ---------------------------------------------------------------------------
# Data transfer objects
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SkillProfile:
    """Immutable skill snapshot supplied by the caller for one competitor."""
    id: Any
    name: str
    striking: Optional[float] = DEFAULT_STAT
    punch_speed: Optional[float] = DEFAULT_STAT
    punch_power: Optional[float] = DEFAULT_STAT
    wrestling: Optional[float] = DEFAULT_STAT
    submissions: Optional[float] = DEFAULT_STAT
    # cardio and chin are carried but not read by the current formulas
    cardio: Optional[float] = DEFAULT_STAT
    chin: Optional[float] = DEFAULT_STAT
    head_movement: Optional[float] = DEFAULT_STAT
    takedown_defense: Optional[float] = DEFAULT_STAT

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SkillProfile":
        """Build a profile from a record with camelCase or snake_case stat keys.

        Stats may sit at the top level or under a nested ``stats`` mapping.
        Missing or null stats become the average value.
        """
        source = dict(data)
        nested = source.pop("stats", None)
        if isinstance(nested, Mapping):
            source.update(nested)

        stats = {}
        for key, value in source.items():
            attr = _CAMEL_KEYS.get(key, key)
            if attr in STAT_NAMES and value is not None:
                stats[attr] = value
        return cls(id=source.get("id"), name=source.get("name"), **stats)


@dataclass
class CompetitorState:
    """Per-match depleting resources for one competitor."""
    profile: SkillProfile
    health: float = 100.0
    head_health: float = 100.0
    stamina: float = 100.0

    @property
    def name(self) -> str:
        return self.profile.name

    def stat(self, attr: str) -> float:
        value = getattr(self.profile, attr, None)
        try:
            value = float(value)
        except (TypeError, ValueError):
            return float(DEFAULT_STAT)
        if value != value:  # NaN
            return float(DEFAULT_STAT)
        return max(0.0, min(100.0, value))

    def recover(self, amount: float = ROUND_STAMINA_RECOVERY) -> None:
        self.stamina = min(100.0, self.stamina + amount)


@dataclass(frozen=True)
class MatchEvent:
    """Structured record of one logged action."""
    index: int
    kind: str  # strike | takedown | submission | finish
    actor: str
    target: str
    description: str
    damage: float = 0.0


@dataclass(frozen=True)
class MatchResult:
    """Full match outcome."""
    winner: str
    method: str
    finish_round: int
    log: tuple[str, ...] = ()
    events: tuple[MatchEvent, ...] = ()

    @property
    def is_draw(self) -> bool:
        return self.winner == DRAW

    @property
    def is_finish(self) -> bool:
        return self.method in (KO, TKO, SUB)

    def to_dict(self) -> dict:
        return {
            "winner": self.winner,
            "method": self.method,
            "round": self.finish_round,
            "log": list(self.log),
            "events": [
                {
                    "time": e.index,
                    "type": e.kind,
                    "actor": e.actor,
                    "target": e.target,
                    "description": e.description,
                    "damage": round(e.damage, 2),
                }
                for e in self.events
            ],
        }


class MatchLog:
    """Append-only play-by-play plus the structured events behind it."""

    def __init__(self) -> None:
        self.lines: list[str] = []
        self.events: list[MatchEvent] = []

    def line(self, text: str) -> None:
        self.lines.append(text)

    def event(self, kind: str, actor: CompetitorState, target: CompetitorState,
              text: str, damage: float = 0.0) -> None:
        self.events.append(MatchEvent(
            index=len(self.lines), kind=kind, actor=actor.name,
            target=target.name, description=text, damage=damage,
        ))
        self.lines.append(text)


# ---------------------------------------------------------------------------
# Core engine
# ---------------------------------------------------------------------------

def validate_pairing(a: SkillProfile, b: SkillProfile) -> None:
    """Raise InvalidMatchError unless a and b are two distinct, named competitors."""
    for profile in (a, b):
        if not isinstance(profile.name, str) or not profile.name.strip():
            raise InvalidMatchError(f"competitor {profile.id!r} has no name")
    if a is b or (a.id is not None and a.id == b.id):
        raise InvalidMatchError("a competitor cannot fight themselves")
    if a.name == b.name:
        raise InvalidMatchError(f"both competitors are named {a.name!r}")


def simulate_match(
    profile_a: SkillProfile,
    profile_b: SkillProfile,
    rng: Optional[random.Random] = None,
    seed: Optional[int] = None,
) -> MatchResult:
    """Run a full three-round match and return its result and play-by-play."""
    validate_pairing(profile_a, profile_b)
    if rng is None:
        rng = random.Random(seed)

    a = CompetitorState(profile_a)
    b = CompetitorState(profile_b)
    record = MatchLog()
    logger.debug("match start: %s vs %s", a.name, b.name)

    # Opening
    record.line("[Round 1]")
    record.line(f"{a.name} enters the cage")
    record.line(f"{b.name} enters the cage")
    record.line("The referee gives final instructions")
    record.line("Fight!")
    record.line("")

    for round_num in range(1, MAX_ROUNDS + 1):
        if round_num > 1:
            record.line("")
            record.line(f"[Round {round_num}]")
            a.recover()
            b.recover()

        finish = _simulate_round(a, b, rng, record)
        if finish is not None:
            winner, method = finish
            logger.debug("match over: %s by %s in round %d", winner.name, method, round_num)
            return MatchResult(
                winner=winner.name,
                method=method,
                finish_round=round_num,
                log=tuple(record.lines),
                events=tuple(record.events),
            )
        record.line(f"End of Round {round_num}")

    # Decision
    record.line("")
    record.line("[Decision]")
    winner_name, score_a, score_b = judges_decision(a, b, rng)
    if winner_name == DRAW:
        record.line("Split Decision... DRAW!")
    else:
        record.line(f"{winner_name} wins by decision!")
    logger.debug("decision: %s (%.1f - %.1f)", winner_name, score_a, score_b)

    return MatchResult(
        winner=winner_name,
        method=DEC,
        finish_round=MAX_ROUNDS,
        log=tuple(record.lines),
        events=tuple(record.events),
    )


def _simulate_round(
    a: CompetitorState, b: CompetitorState,
    rng: random.Random, record: MatchLog,
) -> Optional[tuple[CompetitorState, str]]:
    budget = rng.randint(MIN_EXCHANGES, MAX_EXCHANGES)
    for _ in range(budget):
        finish = resolve_exchange(a, b, rng, record)
        if finish is not None:
            return finish
    return None


# ---------------------------------------------------------------------------
# Exchange
# ---------------------------------------------------------------------------

def resolve_exchange(
    a: CompetitorState, b: CompetitorState,
    rng: random.Random, record: MatchLog,
) -> Optional[tuple[CompetitorState, str]]:
    """Resolve one attacker/defender interaction.

    Returns ``(winner, method)`` when the exchange ends the match, else None.
    """
    if rng.random() < 0.5:
        attacker, defender = a, b
    else:
        attacker, defender = b, a

    takedown_chance = attacker.stat("wrestling") / 200
    if rng.random() < takedown_chance:
        finish = _process_takedown(attacker, defender, rng, record)
    else:
        finish = _process_strike(attacker, defender, rng, record)
    if finish is not None:
        return finish

    a.stamina -= EXCHANGE_STAMINA_COST
    b.stamina -= EXCHANGE_STAMINA_COST
    return None


def _process_strike(
    attacker: CompetitorState, defender: CompetitorState,
    rng: random.Random, record: MatchLog,
) -> Optional[tuple[CompetitorState, str]]:
    if rng.random() * 100 >= _land_chance(attacker, defender):
        record.event("strike", attacker, defender, f"{attacker.name} misses")
        return None

    base = (attacker.stat("punch_power") / 5) * rng.uniform(0.8, 1.2)
    if rng.random() < CRITICAL_CHANCE:
        dmg = base * CRITICAL_MULTIPLIER
        record.event("strike", attacker, defender,
                     f"[CRITICAL] {attacker.name} lands a massive shot! {defender.name} is hurt!", dmg)
    elif base > SOLID_STRIKE_THRESHOLD:
        dmg = base
        record.event("strike", attacker, defender,
                     f"{attacker.name} lands a solid strike on {defender.name}", dmg)
    else:
        dmg = base
        record.event("strike", attacker, defender, f"{attacker.name} connects", dmg)

    defender.head_health -= dmg * HEAD_DAMAGE_SHARE
    defender.health -= dmg * BODY_DAMAGE_SHARE
    attacker.stamina -= STRIKE_STAMINA_COST

    if defender.head_health < STOPPAGE_THRESHOLD and rng.random() < STOPPAGE_CHANCE:
        record.event("finish", attacker, defender,
                     f"{attacker.name} swarms with punches! The referee stops it!")
        return attacker, (KO if defender.head_health <= 0 else TKO)
    return None


def _process_takedown(
    attacker: CompetitorState, defender: CompetitorState,
    rng: random.Random, record: MatchLog,
) -> Optional[tuple[CompetitorState, str]]:
    if rng.random() * 100 >= _takedown_success_chance(attacker, defender):
        record.event("takedown", attacker, defender,
                     f"{attacker.name} shoots but {defender.name} defends")
        return None

    record.event("takedown", attacker, defender, f"{attacker.name} secures a takedown")

    if rng.random() < SUBMISSION_ATTEMPT_CHANCE:
        if rng.random() * 100 < _submission_chance(attacker, defender):
            hold = rng.choice(SUBMISSIONS)
            record.event("submission", attacker, defender,
                         f"{attacker.name} locks in a {hold.upper()}! {defender.name} taps!")
            return attacker, SUB
        record.event("submission", attacker, defender,
                     f"{attacker.name} attempts a submission but {defender.name} escapes")
        return None

    # Ground and pound is never checked for a stoppage in the same exchange.
    dmg = rng.uniform(*GROUND_AND_POUND_RANGE)
    defender.head_health -= dmg
    record.event("strike", attacker, defender, f"{attacker.name} lands ground and pound", dmg)
    return None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _land_chance(attacker: CompetitorState, defender: CompetitorState) -> float:
    accuracy = (attacker.stat("striking") + attacker.stat("punch_speed")) / 2
    return accuracy - defender.stat("head_movement") * 0.3


def _takedown_success_chance(attacker: CompetitorState, defender: CompetitorState) -> float:
    return attacker.stat("wrestling") - defender.stat("takedown_defense") * 0.5


def _submission_chance(attacker: CompetitorState, defender: CompetitorState) -> float:
    return attacker.stat("submissions") - defender.stat("wrestling") * 0.3


# ---------------------------------------------------------------------------
# Judges' decision
# ---------------------------------------------------------------------------

def judges_decision(
    a: CompetitorState, b: CompetitorState, rng: random.Random,
) -> tuple[str, float, float]:
    score_a = (a.health + a.stamina) / 2 + rng.uniform(0, DECISION_JITTER)
    score_b = (b.health + b.stamina) / 2 + rng.uniform(0, DECISION_JITTER)

    if abs(score_a - score_b) < DRAW_MARGIN:
        return DRAW, score_a, score_b
    winner = a if score_a > score_b else b
    return winner.name, score_a, score_b
