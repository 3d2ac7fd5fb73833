from typing import Any, Sequence

from ..exceptions import InvalidMatchRequest, ValidationError

WINNING_TEAMS = ("A", "B")
MAX_NAME_LENGTH = 50


def normalize_player_name(name: Any) -> str:
    """Return ``name`` trimmed, rejecting blank or oversized names."""

    if not isinstance(name, str):
        raise ValidationError("name must be a string")
    trimmed = name.strip()
    if not trimmed:
        raise ValidationError("name must not be empty")
    if len(trimmed) > MAX_NAME_LENGTH:
        raise ValidationError(f"name must be at most {MAX_NAME_LENGTH} characters")
    return trimmed


def validate_match_request(player_ids: Sequence[Any], winning_team: Any) -> list[str]:
    """Validate the four participants and the winner of a 2v2 match.

    Rules:
    - Exactly four player ids, each a non-empty string
    - The four ids are pairwise distinct
    - ``winning_team`` is exactly ``"A"`` or ``"B"``

    Returns the trimmed ids in order ``[A1, A2, B1, B2]``. Whether the ids
    refer to existing players is checked later, against locked rows.
    """

    if len(player_ids) != 4:
        raise InvalidMatchRequest("a match needs exactly four players")

    cleaned: list[str] = []
    for pid in player_ids:
        if not isinstance(pid, str) or not pid.strip():
            raise InvalidMatchRequest("Missing player IDs")
        cleaned.append(pid.strip())

    if len(set(cleaned)) != len(cleaned):
        raise InvalidMatchRequest("Each player can only appear once in a match")

    if winning_team not in WINNING_TEAMS:
        raise InvalidMatchRequest("winningTeam must be 'A' or 'B'")

    return cleaned
