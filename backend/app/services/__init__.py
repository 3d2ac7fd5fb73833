"""Internal application services: rating math, ledger and match lifecycle."""

from .rating import compute_delta, expected_score
from .ledger import PlayerSnapshot, RatingChange, recompute_player, snapshot_from_entries
from .matches import MatchRecorded, record_match, retract_match
from .players import create_player, remove_player, rename_player
from .stats import compute_streaks, rating_progression, win_rate

__all__ = [
    "compute_delta",
    "expected_score",
    "PlayerSnapshot",
    "RatingChange",
    "recompute_player",
    "snapshot_from_entries",
    "MatchRecorded",
    "record_match",
    "retract_match",
    "create_player",
    "remove_player",
    "rename_player",
    "compute_streaks",
    "rating_progression",
    "win_rate",
]
