"""Rating history ledger and the player snapshots cached from it.

Each recorded match appends exactly one :class:`~app.models.RatingHistory`
row per participant. A player's ``rating``, ``matches_played``, ``wins`` and
``losses`` columns are only ever a projection of those rows: recording a match
applies the new entries incrementally, and retracting one rebuilds the
snapshot from whatever entries survive.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable, Sequence

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import DEFAULT_RATING
from ..models import Match, Player, RatingHistory


@dataclass(frozen=True)
class RatingChange:
    player_id: str
    rating_before: int
    rating_after: int
    rating_change: int
    won: bool


@dataclass(frozen=True)
class PlayerSnapshot:
    rating: int
    matches_played: int
    wins: int
    losses: int


EMPTY_SNAPSHOT = PlayerSnapshot(rating=DEFAULT_RATING, matches_played=0, wins=0, losses=0)


def snapshot_from_entries(entries: Sequence[RatingHistory]) -> PlayerSnapshot:
    """Derive a player snapshot from their ledger, newest entry first."""

    if not entries:
        return EMPTY_SNAPSHOT
    wins = sum(1 for entry in entries if entry.won)
    return PlayerSnapshot(
        rating=entries[0].rating_after,
        matches_played=len(entries),
        wins=wins,
        losses=len(entries) - wins,
    )


def snapshot_of(player: Player) -> PlayerSnapshot:
    return PlayerSnapshot(
        rating=player.rating,
        matches_played=player.matches_played,
        wins=player.wins,
        losses=player.losses,
    )


def apply_snapshot(player: Player, snapshot: PlayerSnapshot) -> None:
    player.rating = snapshot.rating
    player.matches_played = snapshot.matches_played
    player.wins = snapshot.wins
    player.losses = snapshot.losses


def apply_change(player: Player, change: RatingChange) -> None:
    player.rating = change.rating_after
    player.matches_played += 1
    if change.won:
        player.wins += 1
    else:
        player.losses += 1


async def lock_players(
    session: AsyncSession, player_ids: Iterable[str]
) -> dict[str, Player]:
    """Load and row-lock ``player_ids``; unknown ids are simply absent.

    Rows are locked in id order. Databases without ``FOR UPDATE`` support
    (SQLite) ignore the clause and rely on their own write serialisation.
    """

    ids = sorted(set(player_ids))
    if not ids:
        return {}
    rows = (
        await session.execute(
            select(Player)
            .where(Player.id.in_(ids))
            .order_by(Player.id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
    ).scalars().all()
    return {player.id: player for player in rows}


def append_entries(
    session: AsyncSession,
    match_id: str,
    changes: Sequence[RatingChange],
    recorded_at: datetime,
) -> list[RatingHistory]:
    entries = [
        RatingHistory(
            id=uuid.uuid4().hex,
            player_id=change.player_id,
            match_id=match_id,
            rating_before=change.rating_before,
            rating_after=change.rating_after,
            rating_change=change.rating_change,
            won=change.won,
            created_at=recorded_at,
        )
        for change in changes
    ]
    session.add_all(entries)
    return entries


async def player_entries(session: AsyncSession, player_id: str) -> list[RatingHistory]:
    """Return ``player_id``'s ledger, newest first."""

    return list(
        (
            await session.execute(
                select(RatingHistory)
                .where(RatingHistory.player_id == player_id)
                .order_by(RatingHistory.created_at.desc(), RatingHistory.id.desc())
                .execution_options(populate_existing=True)
            )
        ).scalars().all()
    )


async def latest_entry_time(
    session: AsyncSession, player_ids: Iterable[str]
) -> datetime | None:
    """Return the newest ledger timestamp among ``player_ids``, if any."""

    return (
        await session.execute(
            select(func.max(RatingHistory.created_at)).where(
                RatingHistory.player_id.in_(list(player_ids))
            )
        )
    ).scalar()


def next_entry_time(now: datetime, latest: datetime | None) -> datetime:
    """Return ``now``, bumped past ``latest`` so ledger order follows recording order."""

    if latest is not None and now <= latest:
        return latest + timedelta(microseconds=1)
    return now


async def match_entries(session: AsyncSession, match_id: str) -> list[RatingHistory]:
    return list(
        (
            await session.execute(
                select(RatingHistory).where(RatingHistory.match_id == match_id)
            )
        ).scalars().all()
    )


async def delete_match_entries(session: AsyncSession, match_id: str) -> int:
    result = await session.execute(
        delete(RatingHistory).where(RatingHistory.match_id == match_id)
    )
    return result.rowcount or 0


async def delete_player_entries(session: AsyncSession, player_id: str) -> int:
    result = await session.execute(
        delete(RatingHistory).where(RatingHistory.player_id == player_id)
    )
    return result.rowcount or 0


async def recompute_player(session: AsyncSession, player: Player) -> PlayerSnapshot:
    """Rebuild ``player``'s snapshot from the entries remaining in the ledger.

    The snapshot is never adjusted by subtracting a removed delta: replaying
    the surviving ledger is what keeps ``matches_played == wins + losses ==
    len(ledger)`` true after out-of-order or repeated retractions.
    """

    snapshot = snapshot_from_entries(await player_entries(session, player.id))
    apply_snapshot(player, snapshot)
    return snapshot


@dataclass(frozen=True)
class SnapshotDrift:
    player_id: str
    cached: PlayerSnapshot
    derived: PlayerSnapshot


async def find_snapshot_drift(session: AsyncSession) -> list[SnapshotDrift]:
    """Return every player whose cached snapshot disagrees with their ledger."""

    players = (
        await session.execute(
            select(Player).order_by(Player.id).execution_options(populate_existing=True)
        )
    ).scalars().all()
    drift: list[SnapshotDrift] = []
    for player in players:
        derived = snapshot_from_entries(await player_entries(session, player.id))
        cached = snapshot_of(player)
        if cached != derived:
            drift.append(SnapshotDrift(player.id, cached, derived))
    return drift


async def incomplete_matches(session: AsyncSession) -> list[tuple[str, int]]:
    """Return ``(match_id, entry_count)`` for matches without exactly four entries."""

    counts = (
        select(Match.id, func.count(RatingHistory.id).label("entries"))
        .join(RatingHistory, RatingHistory.match_id == Match.id, isouter=True)
        .group_by(Match.id)
        .having(func.count(RatingHistory.id) != 4)
        .order_by(Match.id)
    )
    return [(row.id, row.entries) for row in (await session.execute(counts)).all()]
