from sqlalchemy import (
    Column,
    String,
    DateTime,
    ForeignKey,
    Integer,
    Boolean,
    Index,
    CheckConstraint,
)
from sqlalchemy.sql import func

from .config import DEFAULT_RATING
from .db import Base
from .time_utils import utcnow


class Player(Base):
    """A registered player and the cached aggregate of their ledger."""

    __tablename__ = "player"
    id = Column(String, primary_key=True)
    name = Column(String, nullable=False)
    rating = Column(Integer, nullable=False, default=DEFAULT_RATING)
    matches_played = Column(Integer, nullable=False, default=0)
    wins = Column(Integer, nullable=False, default=0)
    losses = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        Index("uq_player_name_lower", func.lower(name), unique=True),
        Index("ix_player_rating", "rating"),
    )


class Match(Base):
    __tablename__ = "match"
    id = Column(String, primary_key=True)
    team_a_player_1_id = Column(String, ForeignKey("player.id"), nullable=False)
    team_a_player_2_id = Column(String, ForeignKey("player.id"), nullable=False)
    team_b_player_1_id = Column(String, ForeignKey("player.id"), nullable=False)
    team_b_player_2_id = Column(String, ForeignKey("player.id"), nullable=False)
    winning_team = Column(String(1), nullable=False)  # "A" | "B"
    created_at = Column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        CheckConstraint("winning_team IN ('A', 'B')", name="ck_match_winning_team"),
        Index("ix_match_created_at", "created_at"),
    )

    @property
    def team_a(self) -> tuple[str, str]:
        return (self.team_a_player_1_id, self.team_a_player_2_id)

    @property
    def team_b(self) -> tuple[str, str]:
        return (self.team_b_player_1_id, self.team_b_player_2_id)

    @property
    def player_ids(self) -> tuple[str, str, str, str]:
        return self.team_a + self.team_b


class RatingHistory(Base):
    """One player's rating transition caused by one match.

    ``won`` is the authoritative outcome: wins and losses are counted from it,
    not from the sign of ``rating_change``, which can be 0 for a lopsided win
    or loss.
    """

    __tablename__ = "rating_history"
    id = Column(String, primary_key=True)
    player_id = Column(String, ForeignKey("player.id"), nullable=False)
    match_id = Column(String, ForeignKey("match.id"), nullable=False)
    rating_before = Column(Integer, nullable=False)
    rating_after = Column(Integer, nullable=False)
    rating_change = Column(Integer, nullable=False)
    won = Column(Boolean, nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        Index("ix_rating_history_player_created", "player_id", "created_at"),
        Index("ix_rating_history_match", "match_id"),
    )
