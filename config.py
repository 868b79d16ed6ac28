"""Environment-driven settings for FightBook."""

import os
from pathlib import Path

from dotenv import load_dotenv, find_dotenv

ROOT = Path(__file__).resolve().parent

# Local development: pick up a `.env` next to this file, else search upwards from cwd
env_path = ROOT / ".env"
if env_path.exists():
    load_dotenv(dotenv_path=str(env_path), override=False)
else:
    found = find_dotenv(usecwd=True)
    if found:
        load_dotenv(dotenv_path=found, override=False)


def _safe_int_env(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _safe_float_env(name: str, default: float) -> float:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


DB_URL = (os.getenv("FIGHTBOOK_DB_URL") or f"sqlite:///{ROOT / 'fightbook.db'}").strip()

# Empty disables the admin DELETE endpoint entirely
ADMIN_SECRET = (os.getenv("ADMIN_SECRET") or "").strip()

# Registration: 5 fighters per minute per requester
FIGHTER_RATE_LIMIT = _safe_int_env("FIGHTER_RATE_LIMIT", 5)
FIGHTER_RATE_WINDOW = _safe_float_env("FIGHTER_RATE_WINDOW", 60.0)

# Fights: 20 per hour per requester
FIGHT_RATE_LIMIT = _safe_int_env("FIGHT_RATE_LIMIT", 20)
FIGHT_RATE_WINDOW = _safe_float_env("FIGHT_RATE_WINDOW", 3600.0)

LOG_LEVEL = (os.getenv("FIGHTBOOK_LOG_LEVEL") or "INFO").strip().upper()

VERSION = "1.2.0"
