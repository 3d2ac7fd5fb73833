#!/usr/bin/env python3
"""Admin helper to rebuild cached player ratings from the rating ledger.

Reports every player whose ``rating``/``matches_played``/``wins``/``losses``
disagree with their rating history, and every match that does not have
exactly four ledger entries (a partially written or partially retracted
match). With ``--apply`` the drifting players are recomputed from the ledger.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import os
import sys
from dataclasses import asdict

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy.ext.asyncio import AsyncSession

from app import db
from app.services.ledger import (
    find_snapshot_drift,
    incomplete_matches,
    lock_players,
    recompute_player,
)
from app.services.transactions import run_for_players


async def _reconcile_player(session: AsyncSession, player_id: str) -> None:
    async def _apply(session: AsyncSession):
        players = await lock_players(session, [player_id])
        player = players.get(player_id)
        if player is None:
            return None
        return await recompute_player(session, player)

    await run_for_players(
        session,
        [player_id],
        _apply,
        name="reconcile_player",
        context={"player_id": player_id},
    )


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--apply",
        action="store_true",
        help="Recompute drifting players instead of only reporting them.",
    )
    return parser.parse_args(argv)


async def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    engine = db.get_engine()
    try:
        async with db.session_factory()() as session:
            partial = await incomplete_matches(session)
            for match_id, entries in partial:
                print(f"Match {match_id} has {entries} ledger entries (expected 4)")

            drift = await find_snapshot_drift(session)
            for item in drift:
                print(json.dumps(asdict(item), sort_keys=True))

            if not drift:
                print("All player snapshots match the ledger.")
                return 1 if partial else 0

            if not args.apply:
                print(f"{len(drift)} player(s) drifted; rerun with --apply to fix.")
                return 1

            for item in drift:
                await _reconcile_player(session, item.player_id)
            print(f"Recomputed {len(drift)} player(s) from the ledger.")
            return 1 if partial else 0
    finally:
        await engine.dispose()


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
