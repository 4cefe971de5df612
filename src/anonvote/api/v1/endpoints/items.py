"""Read-only content item endpoints."""

from fastapi import APIRouter

from anonvote.core.errors import AnonVoteError
from anonvote.schemas.item import ItemCountersResponse

from ..dependencies import LedgerDep, SessionDep, raise_http_error

router = APIRouter(prefix="/items", tags=["items"])


@router.get("/{item_id}")
def get_item_counters(item_id: str, db: SessionDep, ledger: LedgerDep) -> ItemCountersResponse:
    """Return the vote counters for one item."""
    try:
        item = ledger.item_counters(db, item_id)
    except AnonVoteError as exc:
        raise_http_error(exc)

    return ItemCountersResponse.model_validate(item)
