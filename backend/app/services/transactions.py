"""Serialised, bounded-retry transactions over sets of player rows."""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Iterable, TypeVar

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from .. import config
from ..db_errors import is_transient_conflict
from ..exceptions import ConcurrencyConflict, DomainException, PersistenceError
from ..locks import player_locks
from ..utils.sentry import report_write_failure

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def run_for_players(
    session: AsyncSession,
    player_ids: Iterable[str],
    operation: Callable[[AsyncSession], Awaitable[T]],
    *,
    name: str,
    context: dict[str, Any] | None = None,
    retries: int | None = None,
    lock_timeout: float | None = None,
) -> T:
    """Run ``operation`` as one transaction serialised against ``player_ids``.

    ``operation`` must do all of its reads and writes through ``session`` and
    must not commit. It is replayed from scratch, after a rollback, whenever
    the database reports a conflicting transaction; once the retries are
    spent a :class:`ConcurrencyConflict` is raised. Domain errors raised by
    ``operation`` roll back and propagate unchanged. Any other database error
    rolls back, is reported for reconciliation and surfaces as
    :class:`PersistenceError`.
    """

    retries = config.TRANSACTION_RETRIES if retries is None else retries
    lock_timeout = config.LOCK_TIMEOUT_SECONDS if lock_timeout is None else lock_timeout
    context = dict(context or {})
    ids = sorted({pid for pid in player_ids if pid})
    attempts = retries + 1

    async with player_locks.hold(ids, lock_timeout):
        for attempt in range(1, attempts + 1):
            try:
                result = await operation(session)
                await session.commit()
                return result
            except DomainException:
                await session.rollback()
                raise
            except SQLAlchemyError as exc:
                await session.rollback()
                if is_transient_conflict(exc):
                    logger.warning(
                        "%s conflicted with a concurrent transaction (attempt %d/%d)",
                        name,
                        attempt,
                        attempts,
                    )
                    continue
                report_write_failure(name, exc, player_ids=ids, **context)
                raise PersistenceError(f"{name} could not be completed") from exc

    raise ConcurrencyConflict(
        f"{name} kept conflicting with concurrent updates; please retry"
    )


async def commit_or_raise(
    session: AsyncSession,
    *,
    name: str,
    on_integrity_error: Callable[[IntegrityError], DomainException] | None = None,
    context: dict[str, Any] | None = None,
) -> None:
    """Commit a single-row change, translating database failures."""

    try:
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        if on_integrity_error is not None:
            raise on_integrity_error(exc) from exc
        report_write_failure(name, exc, **(context or {}))
        raise PersistenceError(f"{name} could not be completed") from exc
    except SQLAlchemyError as exc:
        await session.rollback()
        if is_transient_conflict(exc):
            raise ConcurrencyConflict(f"{name} conflicted with a concurrent update") from exc
        report_write_failure(name, exc, **(context or {}))
        raise PersistenceError(f"{name} could not be completed") from exc
