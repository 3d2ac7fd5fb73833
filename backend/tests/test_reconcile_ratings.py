import pytest
from sqlalchemy import update

from app.models import Player
from app.services.ledger import find_snapshot_drift, snapshot_of
from app.services.matches import record_match
from scripts import reconcile_ratings


async def _drifted(session, make_players):
    await make_players(session, ("a1", 1500), ("a2", 1500), ("b1", 1500), ("b2", 1500))
    await record_match(session, "a1", "a2", "b1", "b2", "A")
    await session.execute(update(Player).where(Player.id == "a1").values(rating=1700, wins=0))
    await session.commit()


@pytest.mark.anyio
async def test_reconcile_player_rebuilds_from_ledger(session_maker, make_players):
    async with session_maker() as session:
        await _drifted(session, make_players)
        drift = await find_snapshot_drift(session)
        assert [d.player_id for d in drift] == ["a1"]

        await reconcile_ratings._reconcile_player(session, "a1")

        assert await find_snapshot_drift(session) == []
        player = await session.get(Player, "a1")
        assert (snapshot_of(player).rating, player.wins) == (1516, 1)


@pytest.mark.anyio
async def test_report_only_run_exits_non_zero(session_maker, make_players, capsys):
    async with session_maker() as session:
        await _drifted(session, make_players)

    assert await reconcile_ratings.main([]) == 1
    out = capsys.readouterr().out
    assert '"player_id": "a1"' in out
    assert "rerun with --apply" in out
