from __future__ import annotations

from typing import Any, Dict, Sequence


def win_rate(wins: int, losses: int) -> float:
    """Return the share of decided matches won, ``0.0`` when none were played."""
    total = wins + losses
    return wins / total if total else 0.0


def compute_streaks(results: Sequence[bool]) -> Dict[str, int]:
    """Compute current, longest win, and longest loss streaks."""
    longest_win = longest_loss = 0
    curr_win = curr_loss = 0
    for r in results:
        if r:
            curr_win += 1
            curr_loss = 0
            longest_win = max(longest_win, curr_win)
        else:
            curr_loss += 1
            curr_win = 0
            longest_loss = max(longest_loss, curr_loss)
    current = 0
    if results:
        last = results[-1]
        count = 0
        for r in reversed(results):
            if r == last:
                count += 1
            else:
                break
        current = count if last else -count
    return {
        "current": current,
        "longestWin": longest_win,
        "longestLoss": longest_loss,
    }


def rating_progression(entries: Sequence[Any]) -> list[dict[str, Any]]:
    """Build a chart-ready series from ledger entries, oldest first.

    Each point carries the rating after the match together with the running
    win and loss counts and the win rate at that point in time.
    """
    points: list[dict[str, Any]] = []
    wins = losses = 0
    for entry in entries:
        if entry.won:
            wins += 1
        else:
            losses += 1
        points.append(
            {
                "matchId": entry.match_id,
                "playedAt": entry.created_at,
                "rating": entry.rating_after,
                "ratingChange": entry.rating_change,
                "cumulativeWins": wins,
                "cumulativeLosses": losses,
                "winRate": win_rate(wins, losses),
            }
        )
    return points
