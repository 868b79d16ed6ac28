"""SQLAlchemy ORM models for FightBook."""

from __future__ import annotations

import enum
import json
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    Column, DateTime, Enum, ForeignKey, Index, Integer, String, Text,
    CheckConstraint,
)
from sqlalchemy.orm import relationship, Mapped

from .database import Base


def _new_id() -> str:
    return uuid.uuid4().hex


def _utcnow() -> datetime:
    # Stored naive; SQLite drops tzinfo on the way back
    return datetime.now(timezone.utc).replace(tzinfo=None)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class FightMethod(str, enum.Enum):
    KO = "KO"
    TKO = "TKO"
    SUB = "SUB"
    DEC = "DEC"


# ---------------------------------------------------------------------------
# Fighter
# ---------------------------------------------------------------------------

class Fighter(Base):
    """A registered fighter and its stored skill blob."""

    __tablename__ = "fighters"

    id: Mapped[str] = Column(String(32), primary_key=True, default=_new_id)
    name: Mapped[str] = Column(String(30), nullable=False, unique=True)
    # JSON-encoded stat mapping, camelCase keys
    stats: Mapped[str] = Column(Text, default="{}")
    fighter_metadata: Mapped[Optional[str]] = Column("metadata", Text, default="{}")

    win_count: Mapped[int] = Column(Integer, default=0)
    loss_count: Mapped[int] = Column(Integer, default=0)
    total_fights: Mapped[int] = Column(Integer, default=0)
    created_at: Mapped[datetime] = Column(DateTime, default=_utcnow)

    __table_args__ = (
        Index("ix_fighter_win_count", "win_count"),
        CheckConstraint("win_count >= 0"),
        CheckConstraint("loss_count >= 0"),
    )

    def stats_dict(self) -> dict:
        try:
            return json.loads(self.stats or "{}")
        except (json.JSONDecodeError, TypeError):
            return {}

    def metadata_dict(self) -> dict:
        try:
            return json.loads(self.fighter_metadata or "{}")
        except (json.JSONDecodeError, TypeError):
            return {}

    @property
    def draw_count(self) -> int:
        return max(0, (self.total_fights or 0) - (self.win_count or 0) - (self.loss_count or 0))

    @property
    def record(self) -> str:
        return f"{self.win_count or 0}-{self.loss_count or 0}-{self.draw_count}"

    def __repr__(self) -> str:
        return f"<Fighter {self.name} ({self.record})>"


# ---------------------------------------------------------------------------
# Fight
# ---------------------------------------------------------------------------

class Fight(Base):
    """A resolved match between two registered fighters."""

    __tablename__ = "fights"

    id: Mapped[int] = Column(Integer, primary_key=True, autoincrement=True)
    fighter_a_id: Mapped[Optional[str]] = Column(
        String(32), ForeignKey("fighters.id", ondelete="SET NULL"), nullable=True
    )
    fighter_b_id: Mapped[Optional[str]] = Column(
        String(32), ForeignKey("fighters.id", ondelete="SET NULL"), nullable=True
    )
    # Null on a draw
    winner_id: Mapped[Optional[str]] = Column(String(32), nullable=True)
    fighter_a_name: Mapped[str] = Column(String(30), nullable=False)
    fighter_b_name: Mapped[str] = Column(String(30), nullable=False)
    winner_name: Mapped[str] = Column(String(30), nullable=False)
    method: Mapped[str] = Column(Enum(FightMethod), nullable=False)
    round: Mapped[int] = Column(Integer, nullable=False)
    log: Mapped[str] = Column(Text, default="[]")
    requester: Mapped[Optional[str]] = Column(String(64), nullable=True)
    created_at: Mapped[datetime] = Column(DateTime, default=_utcnow)

    fighter_a: Mapped[Optional["Fighter"]] = relationship("Fighter", foreign_keys=[fighter_a_id])
    fighter_b: Mapped[Optional["Fighter"]] = relationship("Fighter", foreign_keys=[fighter_b_id])

    __table_args__ = (
        Index("ix_fight_fighter_a", "fighter_a_id"),
        Index("ix_fight_fighter_b", "fighter_b_id"),
        Index("ix_fight_requester_created", "requester", "created_at"),
        CheckConstraint("round BETWEEN 1 AND 3"),
    )

    def log_lines(self) -> list[str]:
        try:
            return json.loads(self.log or "[]")
        except (json.JSONDecodeError, TypeError):
            return []

    def __repr__(self) -> str:
        return f"<Fight {self.fighter_a_name} vs {self.fighter_b_name}: {self.winner_name} by {self.method}>"
