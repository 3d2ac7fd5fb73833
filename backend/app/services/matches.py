"""Recording and retracting 2v2 matches."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Sequence

from sqlalchemy import delete, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import K_FACTOR
from ..exceptions import InvalidMatchRequest, MatchNotFound
from ..models import Match, RatingHistory
from ..time_utils import utcnow
from .ledger import (
    RatingChange,
    append_entries,
    apply_change,
    delete_match_entries,
    latest_entry_time,
    lock_players,
    match_entries,
    next_entry_time,
    recompute_player,
)
from .rating import compute_delta
from .transactions import run_for_players
from .validation import validate_match_request

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MatchRecorded:
    match_id: str
    winning_team: str
    created_at: datetime
    changes: list[RatingChange]

    @property
    def deltas(self) -> list[int]:
        """Rating deltas in ``A1, A2, B1, B2`` order."""
        return [change.rating_change for change in self.changes]


def compute_match_changes(
    ratings: dict[str, int],
    player_ids: Sequence[str],
    winning_team: str,
    *,
    k: float = K_FACTOR,
) -> list[RatingChange]:
    """Compute the four rating changes from one pre-match rating snapshot.

    ``player_ids`` is ``[A1, A2, B1, B2]``. Every delta is computed from
    ``ratings`` as given, never from a partially updated value.
    """

    team_a, team_b = list(player_ids[:2]), list(player_ids[2:])
    winners, losers = (team_a, team_b) if winning_team == "A" else (team_b, team_a)

    changes: list[RatingChange] = []
    for pid in player_ids:
        won = pid in winners
        opponents = losers if won else winners
        before = ratings[pid]
        delta = compute_delta(
            before, ratings[opponents[0]], ratings[opponents[1]], won, k
        )
        changes.append(
            RatingChange(
                player_id=pid,
                rating_before=before,
                rating_after=before + delta,
                rating_change=delta,
                won=won,
            )
        )
    return changes


async def record_match(
    session: AsyncSession,
    team_a1: str,
    team_a2: str,
    team_b1: str,
    team_b2: str,
    winning_team: str,
    *,
    k: float = K_FACTOR,
) -> MatchRecorded:
    """Record a match and apply its rating changes as one transaction."""

    player_ids = validate_match_request(
        [team_a1, team_a2, team_b1, team_b2], winning_team
    )

    async def _record(session: AsyncSession) -> MatchRecorded:
        players = await lock_players(session, player_ids)
        missing = [pid for pid in player_ids if pid not in players]
        if missing:
            raise InvalidMatchRequest("unknown players: " + ", ".join(missing))

        ratings = {pid: players[pid].rating for pid in player_ids}
        changes = compute_match_changes(ratings, player_ids, winning_team, k=k)

        # Ties on created_at would make the newest entry ambiguous on recompute.
        recorded_at = next_entry_time(
            utcnow(), await latest_entry_time(session, player_ids)
        )
        match = Match(
            id=uuid.uuid4().hex,
            team_a_player_1_id=player_ids[0],
            team_a_player_2_id=player_ids[1],
            team_b_player_1_id=player_ids[2],
            team_b_player_2_id=player_ids[3],
            winning_team=winning_team,
            created_at=recorded_at,
        )
        session.add(match)
        # The match row must exist before ledger rows reference it.
        await session.flush()

        append_entries(session, match.id, changes, recorded_at)
        for change in changes:
            apply_change(players[change.player_id], change)
        await session.flush()

        return MatchRecorded(
            match_id=match.id,
            winning_team=winning_team,
            created_at=recorded_at,
            changes=changes,
        )

    recorded = await run_for_players(
        session,
        player_ids,
        _record,
        name="record_match",
        context={"winning_team": winning_team},
    )
    logger.info(
        "Recorded match %s (team %s won): deltas %s",
        recorded.match_id,
        winning_team,
        recorded.deltas,
    )
    return recorded


async def _load_match(session: AsyncSession, match_id: str) -> Match | None:
    return (
        await session.execute(
            select(Match)
            .where(Match.id == match_id)
            .execution_options(populate_existing=True)
        )
    ).scalar_one_or_none()


async def retract_match(session: AsyncSession, match_id: str) -> list[str]:
    """Delete a match and its ledger entries, then rebuild the four snapshots.

    Returns the ids of the affected players that still exist. Raises
    :class:`MatchNotFound` if the match is unknown, including when a
    concurrent retraction removed it first.
    """

    match = await _load_match(session, match_id)
    if match is None:
        raise MatchNotFound(match_id)
    player_ids = list(match.player_ids)

    async def _retract(session: AsyncSession) -> list[str]:
        players = await lock_players(session, player_ids)
        match = await _load_match(session, match_id)
        if match is None:
            raise MatchNotFound(match_id)

        removed = await delete_match_entries(session, match_id)
        await session.execute(delete(Match).where(Match.id == match_id))
        logger.debug("Deleted %d ledger entries of match %s", removed, match_id)

        affected: list[str] = []
        for pid in player_ids:
            player = players.get(pid)
            if player is None:
                continue
            await recompute_player(session, player)
            affected.append(pid)
        await session.flush()
        return affected

    affected = await run_for_players(
        session,
        player_ids,
        _retract,
        name="retract_match",
        context={"match_id": match_id},
    )
    logger.info("Retracted match %s; recomputed players %s", match_id, affected)
    return affected


async def list_matches(
    session: AsyncSession,
    *,
    player_id: str | None = None,
    limit: int | None = None,
    offset: int = 0,
) -> list[Match]:
    """Return matches newest first, optionally only those ``player_id`` played."""

    stmt = select(Match)
    if player_id:
        stmt = stmt.where(
            or_(
                Match.team_a_player_1_id == player_id,
                Match.team_a_player_2_id == player_id,
                Match.team_b_player_1_id == player_id,
                Match.team_b_player_2_id == player_id,
            )
        )
    stmt = stmt.order_by(Match.created_at.desc(), Match.id.desc()).offset(offset)
    if limit is not None:
        stmt = stmt.limit(limit)
    return list((await session.execute(stmt)).scalars().all())


async def get_match(
    session: AsyncSession, match_id: str
) -> tuple[Match, list[RatingHistory]]:
    match = await _load_match(session, match_id)
    if match is None:
        raise MatchNotFound(match_id)
    entries = await match_entries(session, match_id)
    order = {pid: index for index, pid in enumerate(match.player_ids)}
    entries.sort(key=lambda entry: order.get(entry.player_id, len(order)))
    return match, entries
