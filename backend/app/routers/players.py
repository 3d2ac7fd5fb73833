from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from ..db import get_session
from ..exceptions import ProblemDetail
from ..models import Player, RatingHistory
from ..schemas import (
    PlayerCreate,
    PlayerOut,
    PlayerRename,
    PlayerStatsOut,
    RatingHistoryOut,
    RatingPointOut,
    StreakSummary,
)
from ..services import players as player_service
from ..time_utils import coerce_utc

router = APIRouter(
    prefix="/players",
    tags=["players"],
    responses={
        400: {"model": ProblemDetail},
        404: {"model": ProblemDetail},
        409: {"model": ProblemDetail},
        422: {"model": ProblemDetail},
    },
)


def player_out(p: Player) -> PlayerOut:
    return PlayerOut(
        id=p.id,
        name=p.name,
        rating=p.rating,
        matchesPlayed=p.matches_played,
        wins=p.wins,
        losses=p.losses,
        createdAt=coerce_utc(p.created_at),
    )


def history_out(entry: RatingHistory) -> RatingHistoryOut:
    return RatingHistoryOut(
        id=entry.id,
        playerId=entry.player_id,
        matchId=entry.match_id,
        ratingBefore=entry.rating_before,
        ratingAfter=entry.rating_after,
        ratingChange=entry.rating_change,
        won=entry.won,
        createdAt=coerce_utc(entry.created_at),
    )


# GET /api/v0/players
@router.get("", response_model=list[PlayerOut])
async def list_players(session: AsyncSession = Depends(get_session)):
    rows = await player_service.list_players(session)
    return [player_out(p) for p in rows]


# POST /api/v0/players
@router.post("", response_model=PlayerOut)
async def create_player(
    body: PlayerCreate,
    session: AsyncSession = Depends(get_session),
):
    p = await player_service.create_player(session, body.name)
    return player_out(p)


@router.get("/{player_id}", response_model=PlayerOut)
async def get_player(player_id: str, session: AsyncSession = Depends(get_session)):
    return player_out(await player_service.get_player(session, player_id))


@router.patch("/{player_id}", status_code=204)
async def rename_player(
    player_id: str,
    body: PlayerRename,
    session: AsyncSession = Depends(get_session),
):
    await player_service.rename_player(session, player_id, body.name)
    return Response(status_code=204)


# DELETE /api/v0/players/{player_id}
@router.delete("/{player_id}", status_code=204)
async def delete_player(player_id: str, session: AsyncSession = Depends(get_session)):
    await player_service.remove_player(session, player_id)
    return Response(status_code=204)


@router.get("/{player_id}/history", response_model=list[RatingHistoryOut])
async def rating_history(player_id: str, session: AsyncSession = Depends(get_session)):
    entries = await player_service.rating_history(session, player_id)
    return [history_out(e) for e in entries]


@router.get("/{player_id}/stats", response_model=PlayerStatsOut)
async def player_stats(player_id: str, session: AsyncSession = Depends(get_session)):
    stats = await player_service.player_stats(session, player_id)
    return PlayerStatsOut(
        player=player_out(stats["player"]),
        winRate=stats["winRate"],
        peakRating=stats["peakRating"],
        streaks=StreakSummary(**stats["streaks"]),
        progression=[
            RatingPointOut(**{**point, "playedAt": coerce_utc(point["playedAt"])})
            for point in stats["progression"]
        ],
    )
