"""Shared API dependencies for visitor identity and ledger access."""

from typing import Annotated, NoReturn

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from anonvote.core.errors import AnonVoteError, InvalidRequestError, NotFoundError, StorageError
from anonvote.core.settings import settings
from anonvote.db.session import get_db
from anonvote.services.ledger import VoteLedger, get_vote_ledger

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]


def get_ledger_dep() -> VoteLedger:
    """Return the shared vote ledger service."""
    return get_vote_ledger()


LedgerDep = Annotated[VoteLedger, Depends(get_ledger_dep)]


def get_visitor_id(
    x_visitor_id: Annotated[str | None, Header()] = None,
) -> str:
    """Read the self-issued anonymous visitor token.

    The token is never vetted; it only scopes votes to one browser profile.

    Raises:
        HTTPException: If the header is missing or has an invalid length
    """
    visitor_id = (x_visitor_id or "").strip()
    if not settings.visitor_id_min_length <= len(visitor_id) <= settings.visitor_id_max_length:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing or invalid X-Visitor-Id header",
        )
    return visitor_id


# Type alias for visitor id dependency
VisitorIdDep = Annotated[str, Depends(get_visitor_id)]


def raise_http_error(exc: AnonVoteError) -> NoReturn:
    """Translate a ledger error into the matching HTTP error."""
    if isinstance(exc, InvalidRequestError):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    if isinstance(exc, NotFoundError):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    if isinstance(exc, StorageError):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(exc),
            headers={"Retry-After": "1"},
        ) from exc
    raise HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Unexpected ledger error",
    ) from exc
