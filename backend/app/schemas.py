from typing import List, Optional
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field, field_validator


class PlayerCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=50)

    model_config = ConfigDict(extra="forbid")

    @field_validator("name", mode="before")
    @classmethod
    def _validate_name(cls, value: str) -> str:
        if not isinstance(value, str):
            raise TypeError("name must be a string")
        trimmed = value.strip()
        if not trimmed:
            raise ValueError("name must not be empty")
        return trimmed


class PlayerRename(PlayerCreate):
    pass


class PlayerOut(BaseModel):
    id: str
    name: str
    rating: int
    matchesPlayed: int
    wins: int
    losses: int
    createdAt: Optional[datetime] = None


class PlayerNameOut(BaseModel):
    id: str
    name: str


class MatchCreate(BaseModel):
    # Presence and distinctness are checked by the match recorder so that
    # every malformed request is reported the same way.
    teamAPlayer1Id: Optional[str] = None
    teamAPlayer2Id: Optional[str] = None
    teamBPlayer1Id: Optional[str] = None
    teamBPlayer2Id: Optional[str] = None
    winningTeam: Optional[str] = None


class RatingChangeOut(BaseModel):
    playerId: str
    ratingBefore: int
    ratingAfter: int
    ratingChange: int
    won: bool


class MatchRecordedOut(BaseModel):
    matchId: str
    winningTeam: str
    createdAt: datetime
    deltas: List[int]
    changes: List[RatingChangeOut]


class MatchOut(BaseModel):
    id: str
    teamAPlayer1Id: str
    teamAPlayer2Id: str
    teamBPlayer1Id: str
    teamBPlayer2Id: str
    winningTeam: str
    createdAt: datetime


class MatchDetailOut(MatchOut):
    players: List[PlayerNameOut] = Field(default_factory=list)
    changes: List[RatingChangeOut] = Field(default_factory=list)


class RatingHistoryOut(BaseModel):
    id: str
    playerId: str
    matchId: str
    ratingBefore: int
    ratingAfter: int
    ratingChange: int
    won: bool
    createdAt: datetime


class StreakSummary(BaseModel):
    current: int
    longestWin: int
    longestLoss: int


class RatingPointOut(BaseModel):
    matchId: str
    playedAt: datetime
    rating: int
    ratingChange: int
    cumulativeWins: int
    cumulativeLosses: int
    winRate: float


class PlayerStatsOut(BaseModel):
    player: PlayerOut
    winRate: float
    peakRating: int
    streaks: StreakSummary
    progression: List[RatingPointOut]
