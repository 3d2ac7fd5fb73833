import asyncio
import logging

from sqlalchemy import select

from app import db
from app.models import Player
from app.services import create_player, record_match

logger = logging.getLogger(__name__)

DEMO_PLAYERS = [
    "Alex Ruiz",
    "Bella Fernandez",
    "Carlos Mendez",
    "Diana Soto",
    "Eli Vasquez",
    "Fiona Castro",
]

# (team A, team B, winner) by player index
DEMO_MATCHES = [
    ((0, 1), (2, 3), "A"),
    ((0, 2), (4, 5), "B"),
    ((1, 3), (4, 5), "A"),
    ((0, 5), (1, 4), "A"),
]


async def main():
    engine = db.get_engine()
    try:
        async with db.session_factory()() as s:
            existing = (await s.execute(select(Player))).scalars().all()
            if existing:
                logger.info("Database already has %d players; skipping seed", len(existing))
                return

            players = [await create_player(s, name) for name in DEMO_PLAYERS]
            for (a1, a2), (b1, b2), winner in DEMO_MATCHES:
                await record_match(
                    s,
                    players[a1].id,
                    players[a2].id,
                    players[b1].id,
                    players[b2].id,
                    winner,
                )
    finally:
        await engine.dispose()

if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(main())
