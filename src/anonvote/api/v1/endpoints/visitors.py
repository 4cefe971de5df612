"""Per-visitor history and statistics endpoints."""

from fastapi import APIRouter

from anonvote.core.errors import AnonVoteError
from anonvote.schemas.vote import (
    VisitorStatsResponse,
    VisitorVotesResponse,
    VoteImportRequest,
    VoteImportResponse,
    VoteRecordResponse,
)

from ..dependencies import LedgerDep, SessionDep, VisitorIdDep, raise_http_error

router = APIRouter(prefix="/visitors", tags=["visitors"])


@router.get("/me/votes")
def list_my_votes(
    visitor_id: VisitorIdDep,
    db: SessionDep,
    ledger: LedgerDep,
) -> VisitorVotesResponse:
    """Return every vote the calling visitor has cast, newest first."""
    try:
        records = ledger.list_votes(db, visitor_id)
    except AnonVoteError as exc:
        raise_http_error(exc)

    return VisitorVotesResponse(
        total_votes=len(records),
        votes=[
            VoteRecordResponse(
                item_id=record.item_id,
                variant=record.variant,
                created_at=record.created_at,
            )
            for record in records
        ],
    )


@router.get("/me/stats")
def get_my_stats(
    visitor_id: VisitorIdDep,
    db: SessionDep,
    ledger: LedgerDep,
) -> VisitorStatsResponse:
    """Return how the visitor's votes line up with the crowd."""
    try:
        stats = ledger.visitor_stats(db, visitor_id)
    except AnonVoteError as exc:
        raise_http_error(exc)

    return VisitorStatsResponse(
        total_votes=stats.total_votes,
        in_majority=stats.in_majority,
        in_minority=stats.in_minority,
        unique_memory=stats.unique_memory,
        voted_item_ids=stats.voted_item_ids,
    )


@router.post("/me/votes/import")
def import_my_votes(
    payload: VoteImportRequest,
    visitor_id: VisitorIdDep,
    db: SessionDep,
    ledger: LedgerDep,
) -> VoteImportResponse:
    """Push votes recorded only on the client to the ledger."""
    try:
        summary = ledger.import_votes(db, visitor_id, payload.votes)
    except AnonVoteError as exc:
        raise_http_error(exc)

    return VoteImportResponse(
        imported=summary.imported,
        already_present=summary.already_present,
        skipped=summary.skipped,
    )
