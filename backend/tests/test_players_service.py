import pytest
from sqlalchemy import func, select

from app.exceptions import PlayerAlreadyExists, PlayerNotFound, ValidationError
from app.models import Match, Player, RatingHistory
from app.services.ledger import player_entries, snapshot_from_entries, snapshot_of
from app.services.matches import record_match
from app.services.players import (
    create_player,
    get_player,
    list_players,
    player_stats,
    rating_history,
    remove_player,
    rename_player,
)


@pytest.mark.anyio
async def test_create_player_starts_at_default_rating(session_maker):
    async with session_maker() as session:
        player = await create_player(session, "  Alice  ")
        fetched = await get_player(session, player.id)

    assert fetched.name == "Alice"
    assert (fetched.rating, fetched.matches_played, fetched.wins, fetched.losses) == (1500, 0, 0, 0)
    assert fetched.created_at is not None


@pytest.mark.anyio
async def test_player_names_are_unique_ignoring_case(session_maker):
    async with session_maker() as session:
        await create_player(session, "Alice")
        with pytest.raises(PlayerAlreadyExists) as exc:
            await create_player(session, "alice")
        count = (await session.execute(select(func.count()).select_from(Player))).scalar()

    assert exc.value.status_code == 400
    assert count == 1


@pytest.mark.parametrize("name", ["", "   ", "x" * 51, None])
@pytest.mark.anyio
async def test_create_player_rejects_bad_names(session_maker, name):
    async with session_maker() as session:
        with pytest.raises(ValidationError):
            await create_player(session, name)


@pytest.mark.anyio
async def test_rename_player(session_maker):
    async with session_maker() as session:
        alice = await create_player(session, "Alice")
        bob = await create_player(session, "Bob")

        renamed = await rename_player(session, alice.id, "Alicia")
        assert renamed.name == "Alicia"

        # Changing only the case of one's own name is allowed.
        assert (await rename_player(session, bob.id, "BOB")).name == "BOB"

        with pytest.raises(PlayerAlreadyExists):
            await rename_player(session, bob.id, "alicia")
        with pytest.raises(PlayerNotFound):
            await rename_player(session, "missing", "Carol")

        assert (await get_player(session, bob.id)).name == "BOB"


@pytest.mark.anyio
async def test_list_players_orders_by_rating(session_maker, make_players):
    async with session_maker() as session:
        await make_players(session, ("a", 1400), ("b", 1600), ("c", 1500), ("d", 1600))
        players = await list_players(session)

    assert [p.id for p in players] == ["b", "d", "c", "a"]


@pytest.mark.anyio
async def test_remove_player_retracts_matches_and_recomputes_others(session_maker, make_players):
    async with session_maker() as session:
        await make_players(
            session, ("a1", 1500), ("a2", 1500), ("b1", 1500), ("b2", 1500), ("c1", 1500)
        )
        await record_match(session, "a1", "a2", "b1", "b2", "A")
        await record_match(session, "c1", "a2", "b1", "b2", "B")
        kept = await record_match(session, "c1", "a2", "b1", "a1", "A")
        await record_match(session, "a1", "c1", "b2", "b1", "A")

        # Remove b2: the first, second and fourth matches go away.
        await remove_player(session, "b2")

        assert (
            await session.execute(select(Player).where(Player.id == "b2"))
        ).scalar_one_or_none() is None
        matches = (await session.execute(select(Match.id))).scalars().all()
        b2_entries = (
            await session.execute(
                select(func.count()).select_from(RatingHistory).where(RatingHistory.player_id == "b2")
            )
        ).scalar()

        snapshots = {}
        for pid in ("a1", "a2", "b1", "c1"):
            player = await get_player(session, pid)
            entries = await player_entries(session, pid)
            assert snapshot_of(player) == snapshot_from_entries(entries)
            assert [e.match_id for e in entries] == [kept.match_id]
            snapshots[pid] = snapshot_of(player)

    assert matches == [kept.match_id]
    assert b2_entries == 0
    changes = {c.player_id: c for c in kept.changes}
    for pid, snapshot in snapshots.items():
        assert snapshot.rating == changes[pid].rating_after
        assert snapshot.matches_played == 1


@pytest.mark.anyio
async def test_remove_player_without_matches(session_maker):
    async with session_maker() as session:
        player = await create_player(session, "Solo")
        await remove_player(session, player.id)
        with pytest.raises(PlayerNotFound):
            await remove_player(session, player.id)


@pytest.mark.anyio
async def test_history_and_stats(session_maker, make_players):
    async with session_maker() as session:
        await make_players(session, ("a1", 1500), ("a2", 1500), ("b1", 1500), ("b2", 1500))
        first = await record_match(session, "a1", "a2", "b1", "b2", "A")
        second = await record_match(session, "a1", "a2", "b1", "b2", "A")
        third = await record_match(session, "a1", "a2", "b1", "b2", "B")

        history = await rating_history(session, "a1")
        stats = await player_stats(session, "a1")

        with pytest.raises(PlayerNotFound):
            await rating_history(session, "missing")
        with pytest.raises(PlayerNotFound):
            await player_stats(session, "missing")

    assert [e.match_id for e in history] == [third.match_id, second.match_id, first.match_id]
    assert stats["winRate"] == pytest.approx(2 / 3)
    assert stats["peakRating"] == second.changes[0].rating_after
    assert stats["streaks"] == {"current": -1, "longestWin": 2, "longestLoss": 1}

    progression = stats["progression"]
    assert [p["matchId"] for p in progression] == [first.match_id, second.match_id, third.match_id]
    assert [p["cumulativeWins"] for p in progression] == [1, 2, 2]
    assert [p["cumulativeLosses"] for p in progression] == [0, 0, 1]
    assert progression[-1]["rating"] == stats["player"].rating


@pytest.mark.anyio
async def test_stats_for_new_player(session_maker):
    async with session_maker() as session:
        player = await create_player(session, "Newbie")
        stats = await player_stats(session, player.id)

    assert stats["winRate"] == 0.0
    assert stats["peakRating"] == 1500
    assert stats["streaks"] == {"current": 0, "longestWin": 0, "longestLoss": 0}
    assert stats["progression"] == []
