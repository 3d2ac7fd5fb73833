"""Elo rating math for 2v2 matches."""

import math

from ..config import K_FACTOR


def expected_score(player_rating: float, opponent_rating: float) -> float:
    """Return the logistic expected score of ``player_rating`` against one opponent."""

    return 1 / (1 + 10 ** ((opponent_rating - player_rating) / 400))


def round_half_up(value: float) -> int:
    """Round to the nearest integer, sending exact halves toward +infinity.

    Python's built-in ``round`` rounds halves to even, which would disagree
    with ratings already stored in the ledger.
    """

    return math.floor(value + 0.5)


def compute_delta(
    player_rating: int,
    opponent1_rating: int,
    opponent2_rating: int,
    won: bool,
    k: float = K_FACTOR,
) -> int:
    """Return the rating change for one player of a 2v2 match.

    The player is treated as individually facing both opponents: the expected
    score is the mean of the two pairwise expected scores. The new rating is
    rounded to an integer and the difference from ``player_rating`` returned.
    Ratings are not clamped.
    """

    expected = (
        expected_score(player_rating, opponent1_rating)
        + expected_score(player_rating, opponent2_rating)
    ) / 2
    actual = 1.0 if won else 0.0
    new_rating = round_half_up(player_rating + k * (actual - expected))
    return new_rating - player_rating
