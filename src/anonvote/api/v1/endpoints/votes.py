"""Vote-related endpoints for the anonvote API."""

from fastapi import APIRouter, Response, status

from anonvote.core.errors import AnonVoteError
from anonvote.schemas.vote import MyVoteResponse, VoteCreate, VoteResult

from ..dependencies import LedgerDep, SessionDep, VisitorIdDep, raise_http_error

router = APIRouter(prefix="/votes", tags=["votes"])


@router.post("/", status_code=status.HTTP_201_CREATED)
def cast_vote(
    vote_data: VoteCreate,
    response: Response,
    visitor_id: VisitorIdDep,
    db: SessionDep,
    ledger: LedgerDep,
) -> VoteResult:
    """Cast the visitor's single vote on an item.

    A repeat submission is answered with the stored variant and 200 instead of
    201; it is never an error.
    """
    try:
        outcome = ledger.cast_vote(db, visitor_id, vote_data.item_id, vote_data.variant)
    except AnonVoteError as exc:
        raise_http_error(exc)

    if outcome.already_voted:
        response.status_code = status.HTTP_200_OK
    return VoteResult.from_outcome(outcome)


@router.get("/{item_id}/my-vote")
def get_my_vote(
    item_id: str,
    visitor_id: VisitorIdDep,
    db: SessionDep,
    ledger: LedgerDep,
) -> MyVoteResponse:
    """Get the calling visitor's vote on a specific item."""
    try:
        variant = ledger.get_vote(db, visitor_id, item_id)
    except AnonVoteError as exc:
        raise_http_error(exc)

    return MyVoteResponse(item_id=item_id, variant=variant)
