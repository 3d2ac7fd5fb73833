"""Helpers for working with database/SQLAlchemy errors."""

from __future__ import annotations

from sqlalchemy.exc import SQLAlchemyError

# serialization_failure, deadlock_detected, lock_not_available
_TRANSIENT_SQLSTATES = {"40001", "40P01", "55P03"}
_TRANSIENT_MESSAGES = (
    "database is locked",
    "could not serialize access",
    "deadlock detected",
    "lock timeout",
    "could not obtain lock",
)


def _sqlstate(orig: object) -> str | None:
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    return str(sqlstate) if sqlstate else None


def is_transient_conflict(exc: SQLAlchemyError) -> bool:
    """Return ``True`` if ``exc`` means a competing transaction got in the way.

    Such failures leave nothing written and the whole operation can be
    replayed from a fresh read.
    """

    orig = getattr(exc, "orig", None)
    if orig is None:
        return False

    if _sqlstate(orig) in _TRANSIENT_SQLSTATES:
        return True

    message = str(orig).lower()
    return any(fragment in message for fragment in _TRANSIENT_MESSAGES)
