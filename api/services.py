"""Business logic for the FightBook Flask API."""

from __future__ import annotations

import json
import logging
from typing import Any, Mapping, Optional

from sqlalchemy import func, select, update

import config
from api.rate_limit import RateLimiter
from models.database import Base, create_db_engine, create_session_factory
from models.models import Fight, Fighter, FightMethod
from simulation.fight_engine import InvalidMatchError, SkillProfile, simulate_match
from simulation.profiles import (
    NAME_MIN_LENGTH, ProfileError, normalize_stat_keys, sanitize_name,
    to_skill_profile, validate_stats,
)

logger = logging.getLogger(__name__)

MAX_FIGHTS_PAGE = 100


# ---------------------------------------------------------------------------
# Module-level state
# ---------------------------------------------------------------------------

_SessionFactory = None
_fighter_limiter: Optional[RateLimiter] = None
_fight_limiter: Optional[RateLimiter] = None


def init_db(
    db_url: str,
    fighter_limiter: Optional[RateLimiter] = None,
    fight_limiter: Optional[RateLimiter] = None,
) -> None:
    global _SessionFactory
    engine = create_db_engine(db_url)
    Base.metadata.create_all(engine)
    _SessionFactory = create_session_factory(engine)
    configure_limiters(fighter_limiter, fight_limiter)


def configure_limiters(
    fighter_limiter: Optional[RateLimiter] = None,
    fight_limiter: Optional[RateLimiter] = None,
) -> None:
    global _fighter_limiter, _fight_limiter
    if fighter_limiter is None:
        fighter_limiter = RateLimiter(config.FIGHTER_RATE_LIMIT, config.FIGHTER_RATE_WINDOW)
    if fight_limiter is None:
        fight_limiter = RateLimiter(config.FIGHT_RATE_LIMIT, config.FIGHT_RATE_WINDOW)
    _fighter_limiter = fighter_limiter
    _fight_limiter = fight_limiter


def _error(message: str, status: int = 400, **extra: Any) -> dict:
    return {"error": message, "status": status, **extra}


def _rate_limited(limiter: RateLimiter, key: str, message: str) -> Optional[dict]:
    decision = limiter.check(key)
    if decision.allowed:
        return None
    logger.warning("rate limit hit for %s", key)
    return _error(message, 429, retry_after=decision.retry_after)


# ---------------------------------------------------------------------------
# Fighters
# ---------------------------------------------------------------------------

def list_fighters(limit: int = 100) -> list[dict]:
    with _SessionFactory() as session:
        q = select(Fighter).order_by(Fighter.win_count.desc(), Fighter.name).limit(limit)
        return [_fighter_dict(f) for f in session.execute(q).scalars().all()]


def get_fighter(fighter_id: str) -> Optional[dict]:
    with _SessionFactory() as session:
        f = session.get(Fighter, fighter_id)
        return _fighter_dict(f) if f else None


def register_fighter(
    name: Any,
    stats: Any = None,
    metadata: Any = None,
    requester: str = "unknown",
) -> dict:
    limited = _rate_limited(
        _fighter_limiter, f"fighters:{requester}",
        "Rate limit exceeded. Try again in a minute.",
    )
    if limited:
        return limited

    if not name or not isinstance(name, str):
        return _error("name is required")
    clean_name = sanitize_name(name)
    if len(clean_name) < NAME_MIN_LENGTH:
        return _error(f"Name must be at least {NAME_MIN_LENGTH} characters")

    try:
        normalized = normalize_stat_keys(stats if stats is not None else {})
    except ProfileError as exc:
        return _error(str(exc))
    problems = validate_stats(normalized)
    if problems:
        return _error("Stats validation failed", details=problems)

    with _SessionFactory() as session:
        existing = session.execute(
            select(Fighter.id).where(func.lower(Fighter.name) == clean_name.lower()).limit(1)
        ).first()
        if existing:
            return _error(f'Fighter name "{clean_name}" is already taken', 409)

        fighter = Fighter(
            name=clean_name,
            stats=json.dumps(normalized),
            fighter_metadata=json.dumps(metadata if isinstance(metadata, dict) else {}),
        )
        session.add(fighter)
        session.commit()
        logger.info("registered fighter %s (%s)", fighter.name, fighter.id)
        return _fighter_dict(fighter)


def delete_fighter(fighter_id: str) -> dict:
    with _SessionFactory() as session:
        fighter = session.get(Fighter, fighter_id)
        if not fighter:
            return _error("Fighter not found", 404)
        # Fight history keeps the names; detach the ids
        for column in (Fight.fighter_a_id, Fight.fighter_b_id, Fight.winner_id):
            session.execute(update(Fight).where(column == fighter_id).values({column: None}))
        session.delete(fighter)
        session.commit()
        logger.info("deleted fighter %s", fighter_id)
        return {"deleted": fighter_id}


def _fighter_dict(f: Fighter) -> dict:
    return {
        "id": f.id,
        "name": f.name,
        "stats": f.stats_dict(),
        "metadata": f.metadata_dict(),
        "win_count": f.win_count or 0,
        "loss_count": f.loss_count or 0,
        "total_fights": f.total_fights or 0,
        "record": f.record,
        "created_at": f.created_at.isoformat() if f.created_at else None,
    }


# ---------------------------------------------------------------------------
# Fights
# ---------------------------------------------------------------------------

def list_fights(limit: int = 50) -> list[dict]:
    limit = max(1, min(limit, MAX_FIGHTS_PAGE))
    with _SessionFactory() as session:
        q = select(Fight).order_by(Fight.created_at.desc(), Fight.id.desc()).limit(limit)
        return [_fight_dict(f) for f in session.execute(q).scalars().all()]


def get_fight(fight_id: int) -> Optional[dict]:
    with _SessionFactory() as session:
        f = session.get(Fight, fight_id)
        return _fight_dict(f) if f else None


def run_fight(
    fighter_a_id: Any,
    fighter_b_id: Any,
    requester: str = "unknown",
    seed: Optional[int] = None,
) -> dict:
    if not fighter_a_id or not fighter_b_id:
        return _error("fighter1_id and fighter2_id required")

    limited = _rate_limited(
        _fight_limiter, f"fights:{requester}",
        "Rate limit: too many fights. Try again later.",
    )
    if limited:
        return limited

    with _SessionFactory() as session:
        fa = session.get(Fighter, fighter_a_id)
        if not fa:
            return _error("Fighter 1 not found", 404)
        fb = session.get(Fighter, fighter_b_id)
        if not fb:
            return _error("Fighter 2 not found", 404)

        try:
            result = simulate_match(
                to_skill_profile(fa.id, fa.name, fa.stats_dict()),
                to_skill_profile(fb.id, fb.name, fb.stats_dict()),
                seed=seed,
            )
        except InvalidMatchError as exc:
            return _error(str(exc))

        if result.winner == fa.name:
            winner, loser = fa, fb
        elif result.winner == fb.name:
            winner, loser = fb, fa
        else:
            winner = loser = None

        fight = Fight(
            fighter_a_id=fa.id,
            fighter_b_id=fb.id,
            winner_id=winner.id if winner else None,
            fighter_a_name=fa.name,
            fighter_b_name=fb.name,
            winner_name=result.winner,
            method=FightMethod(result.method),
            round=result.finish_round,
            log=json.dumps(list(result.log)),
            requester=requester,
        )
        session.add(fight)

        for f in (fa, fb):
            f.total_fights = (f.total_fights or 0) + 1
        if winner:
            winner.win_count = (winner.win_count or 0) + 1
            loser.loss_count = (loser.loss_count or 0) + 1

        session.commit()
        logger.info(
            "fight %s: %s vs %s -> %s by %s (R%d)",
            fight.id, fa.name, fb.name, result.winner, result.method, result.finish_round,
        )
        return _fight_dict(fight)


def simulate_practice(
    profile_a: Any,
    profile_b: Any,
    requester: str = "unknown",
    seed: Optional[int] = None,
) -> dict:
    """Run a match between two inline profiles without touching the database."""
    if not isinstance(profile_a, Mapping) or not isinstance(profile_b, Mapping):
        return _error("fighter1 and fighter2 profiles required")

    limited = _rate_limited(
        _fight_limiter, f"fights:{requester}",
        "Rate limit: too many fights. Try again later.",
    )
    if limited:
        return limited

    a = SkillProfile.from_dict({"id": "fighter_1", **profile_a})
    b = SkillProfile.from_dict({"id": "fighter_2", **profile_b})
    try:
        result = simulate_match(a, b, seed=seed)
    except InvalidMatchError as exc:
        return _error(str(exc))

    payload = result.to_dict()
    payload.update({"fighter1": a.name, "fighter2": b.name})
    return payload


def _fight_dict(f: Fight) -> dict:
    return {
        "id": f.id,
        "fighter1_id": f.fighter_a_id,
        "fighter2_id": f.fighter_b_id,
        "fighter1": f.fighter_a_name,
        "fighter2": f.fighter_b_name,
        "winner": f.winner_name,
        "winner_id": f.winner_id,
        "method": f.method.value if hasattr(f.method, "value") else f.method,
        "round": f.round,
        "fight_log": f.log_lines(),
        "created_at": f.created_at.isoformat() if f.created_at else None,
    }
