# backend/app/routers/matches.py
from fastapi import APIRouter, Depends, Query, Request, Response
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import MATCH_RATE_LIMIT
from ..db import get_session
from ..exceptions import ProblemDetail
from ..limits import limiter
from ..models import Match, Player
from ..schemas import (
    MatchCreate,
    MatchDetailOut,
    MatchOut,
    MatchRecordedOut,
    PlayerNameOut,
    RatingChangeOut,
)
from ..services import matches as match_service
from ..time_utils import coerce_utc

# Resource-only prefix; versioning is added in main.py
router = APIRouter(
    prefix="/matches",
    tags=["matches"],
    responses={
        404: {"model": ProblemDetail},
        409: {"model": ProblemDetail},
        422: {"model": ProblemDetail},
        500: {"model": ProblemDetail},
    },
)


def _match_fields(m: Match) -> dict:
    return {
        "id": m.id,
        "teamAPlayer1Id": m.team_a_player_1_id,
        "teamAPlayer2Id": m.team_a_player_2_id,
        "teamBPlayer1Id": m.team_b_player_1_id,
        "teamBPlayer2Id": m.team_b_player_2_id,
        "winningTeam": m.winning_team,
        "createdAt": coerce_utc(m.created_at),
    }


# GET /api/v0/matches
@router.get("", response_model=list[MatchOut])
async def list_matches(
    response: Response,
    playerId: str | None = None,
    limit: int | None = Query(None, ge=1, le=500),
    offset: int = Query(0, ge=0),
    session: AsyncSession = Depends(get_session),
):
    rows = await match_service.list_matches(
        session, player_id=playerId, limit=limit, offset=offset
    )
    if limit is not None:
        response.headers["X-Limit"] = str(limit)
    response.headers["X-Offset"] = str(offset)
    return [MatchOut(**_match_fields(m)) for m in rows]


# POST /api/v0/matches
@router.post("", response_model=MatchRecordedOut)
@limiter.limit(MATCH_RATE_LIMIT)
async def record_match(
    request: Request,
    body: MatchCreate,
    session: AsyncSession = Depends(get_session),
) -> MatchRecordedOut:
    recorded = await match_service.record_match(
        session,
        body.teamAPlayer1Id,
        body.teamAPlayer2Id,
        body.teamBPlayer1Id,
        body.teamBPlayer2Id,
        body.winningTeam,
    )
    return MatchRecordedOut(
        matchId=recorded.match_id,
        winningTeam=recorded.winning_team,
        createdAt=coerce_utc(recorded.created_at),
        deltas=recorded.deltas,
        changes=[
            RatingChangeOut(
                playerId=c.player_id,
                ratingBefore=c.rating_before,
                ratingAfter=c.rating_after,
                ratingChange=c.rating_change,
                won=c.won,
            )
            for c in recorded.changes
        ],
    )


@router.get("/{mid}", response_model=MatchDetailOut)
async def get_match(mid: str, session: AsyncSession = Depends(get_session)):
    m, entries = await match_service.get_match(session, mid)

    player_ids = list(m.player_ids)
    names = dict(
        (
            await session.execute(
                select(Player.id, Player.name).where(Player.id.in_(player_ids))
            )
        ).all()
    )

    return MatchDetailOut(
        **_match_fields(m),
        players=[
            PlayerNameOut(id=pid, name=names.get(pid, "Unknown")) for pid in player_ids
        ],
        changes=[
            RatingChangeOut(
                playerId=e.player_id,
                ratingBefore=e.rating_before,
                ratingAfter=e.rating_after,
                ratingChange=e.rating_change,
                won=e.won,
            )
            for e in entries
        ],
    )


# DELETE /api/v0/matches/{mid}
@router.delete("/{mid}", status_code=204)
async def delete_match(mid: str, session: AsyncSession = Depends(get_session)):
    await match_service.retract_match(session, mid)
    return Response(status_code=204)
