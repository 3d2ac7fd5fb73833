"""Player lifecycle: registration, renaming, removal and statistics."""

from __future__ import annotations

import logging
import uuid
from typing import Any

from sqlalchemy import delete, exists, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from .. import config
from ..config import DEFAULT_RATING
from ..exceptions import (
    ConcurrencyConflict,
    MatchNotFound,
    PlayerAlreadyExists,
    PlayerNotFound,
)
from ..models import Match, Player, RatingHistory
from ..time_utils import utcnow
from .ledger import delete_player_entries, lock_players, player_entries
from .matches import list_matches, retract_match
from .stats import compute_streaks, rating_progression, win_rate
from .transactions import commit_or_raise, run_for_players
from .validation import normalize_player_name

logger = logging.getLogger(__name__)


def _participates(player_id: str):
    return or_(
        Match.team_a_player_1_id == player_id,
        Match.team_a_player_2_id == player_id,
        Match.team_b_player_1_id == player_id,
        Match.team_b_player_2_id == player_id,
    )


async def _name_taken(
    session: AsyncSession, name: str, *, exclude_id: str | None = None
) -> bool:
    stmt = select(Player.id).where(func.lower(Player.name) == name.lower())
    if exclude_id:
        stmt = stmt.where(Player.id != exclude_id)
    return (await session.execute(stmt)).first() is not None


async def get_player(session: AsyncSession, player_id: str) -> Player:
    player = (
        await session.execute(
            select(Player)
            .where(Player.id == player_id)
            .execution_options(populate_existing=True)
        )
    ).scalar_one_or_none()
    if player is None:
        raise PlayerNotFound(player_id)
    return player


async def list_players(session: AsyncSession) -> list[Player]:
    """Return every player, highest rating first."""

    return list(
        (
            await session.execute(
                select(Player).order_by(
                    Player.rating.desc(), func.lower(Player.name), Player.id
                )
            )
        ).scalars().all()
    )


async def create_player(session: AsyncSession, name: str) -> Player:
    name = normalize_player_name(name)
    if await _name_taken(session, name):
        raise PlayerAlreadyExists(name)

    player = Player(
        id=uuid.uuid4().hex,
        name=name,
        rating=DEFAULT_RATING,
        matches_played=0,
        wins=0,
        losses=0,
        created_at=utcnow(),
    )
    session.add(player)
    await commit_or_raise(
        session,
        name="create_player",
        on_integrity_error=lambda exc: PlayerAlreadyExists(name),
        context={"name": name},
    )
    logger.info("Created player %s (%r)", player.id, name)
    return player


async def rename_player(session: AsyncSession, player_id: str, new_name: str) -> Player:
    new_name = normalize_player_name(new_name)
    player = await get_player(session, player_id)
    if player.name == new_name:
        return player
    if await _name_taken(session, new_name, exclude_id=player_id):
        raise PlayerAlreadyExists(new_name)

    player.name = new_name
    await commit_or_raise(
        session,
        name="rename_player",
        on_integrity_error=lambda exc: PlayerAlreadyExists(new_name),
        context={"player_id": player_id, "name": new_name},
    )
    logger.info("Renamed player %s to %r", player_id, new_name)
    return player


async def remove_player(session: AsyncSession, player_id: str) -> None:
    """Remove a player together with every match they took part in.

    Each match is retracted in its own transaction so co-participants are
    recomputed before the player disappears. A match that is already gone is
    skipped, which makes an interrupted removal safe to run again.
    """

    await get_player(session, player_id)

    async def _delete_player(session: AsyncSession) -> bool:
        players = await lock_players(session, [player_id])
        if player_id not in players:
            raise PlayerNotFound(player_id)
        pending = (
            await session.execute(select(exists().where(_participates(player_id))))
        ).scalar()
        if pending:
            return False
        await delete_player_entries(session, player_id)
        await session.execute(delete(Player).where(Player.id == player_id))
        return True

    rounds = config.TRANSACTION_RETRIES + 1
    for _ in range(rounds):
        matches = await list_matches(session, player_id=player_id)
        match_ids = [m.id for m in matches]
        for match_id in match_ids:
            try:
                await retract_match(session, match_id)
            except MatchNotFound:
                logger.info(
                    "Match %s was already retracted while removing player %s",
                    match_id,
                    player_id,
                )

        removed = await run_for_players(
            session,
            [player_id],
            _delete_player,
            name="remove_player",
            context={"player_id": player_id, "retracted_matches": match_ids},
        )
        if removed:
            logger.info(
                "Removed player %s after retracting %d matches",
                player_id,
                len(match_ids),
            )
            return

    raise ConcurrencyConflict(
        f"player '{player_id}' kept receiving new matches during removal; please retry"
    )


async def rating_history(session: AsyncSession, player_id: str) -> list[RatingHistory]:
    """Return ``player_id``'s ledger entries, newest first."""

    await get_player(session, player_id)
    return await player_entries(session, player_id)


async def player_stats(session: AsyncSession, player_id: str) -> dict[str, Any]:
    player = await get_player(session, player_id)
    entries = list(reversed(await player_entries(session, player_id)))
    results = [entry.won for entry in entries]
    peak = max([DEFAULT_RATING] + [entry.rating_after for entry in entries])
    return {
        "player": player,
        "winRate": win_rate(player.wins, player.losses),
        "peakRating": peak,
        "streaks": compute_streaks(results),
        "progression": rating_progression(entries),
    }
