from pydantic import BaseModel
from typing import Optional


class ProblemDetail(BaseModel):
    """RFC 7807 compliant error response."""

    type: str = "about:blank"
    title: str
    detail: Optional[str] = None
    status: int
    instance: Optional[str] = None
    code: str


class DomainException(Exception):
    """Base class for domain-specific exceptions."""

    def __init__(
        self,
        status_code: int,
        title: str,
        *,
        code: str,
        detail: str | None = None,
        type_: str = "about:blank",
    ) -> None:
        super().__init__(detail or title)
        self.status_code = status_code
        self.title = title
        self.detail = detail
        self.type = type_
        self.code = code


class ValidationError(DomainException):
    """Rejected input; raised before anything is written."""

    def __init__(self, detail: str, *, code: str = "validation_error") -> None:
        super().__init__(
            status_code=422,
            title="Validation error",
            detail=detail,
            code=code,
        )


class InvalidMatchRequest(ValidationError):
    def __init__(self, detail: str) -> None:
        super().__init__(detail, code="match_invalid")


class PlayerAlreadyExists(DomainException):
    def __init__(self, name: str) -> None:
        super().__init__(
            status_code=400,
            title="Player exists",
            detail=f"player name '{name}' already exists",
            code="player_exists",
        )


class NotFound(DomainException):
    pass


class PlayerNotFound(NotFound):
    def __init__(self, player_id: str) -> None:
        super().__init__(
            status_code=404,
            title="Player not found",
            detail=f"player '{player_id}' not found",
            code="player_not_found",
        )
        self.player_id = player_id


class MatchNotFound(NotFound):
    def __init__(self, match_id: str) -> None:
        super().__init__(
            status_code=404,
            title="Match not found",
            detail=f"match '{match_id}' not found",
            code="match_not_found",
        )
        self.match_id = match_id


class ConcurrencyConflict(DomainException):
    """The operation did not take effect and may be retried."""

    def __init__(self, detail: str) -> None:
        super().__init__(
            status_code=409,
            title="Concurrent update",
            detail=detail,
            code="concurrency_conflict",
        )


class PersistenceError(DomainException):
    """A write step failed; the operation must not be reported as a success."""

    def __init__(self, detail: str) -> None:
        super().__init__(
            status_code=500,
            title="Persistence failure",
            detail=detail,
            code="persistence_error",
        )
