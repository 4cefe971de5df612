# src/anonvote/schemas/vote.py
"""Vote-related Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, Field

from anonvote.core.settings import settings
from anonvote.core.types import Variant, VoteOutcome


class VoteCreate(BaseModel):
    """Schema for casting a vote."""

    item_id: str = Field(..., min_length=1, max_length=settings.item_id_max_length)
    variant: Variant = Field(..., description="A or B")


class VoteResult(BaseModel):
    """Counters and stored variant returned by a cast."""

    item_id: str
    variant: Variant
    count_a: int
    count_b: int
    total: int
    percent_a: float
    percent_b: float
    already_voted: bool

    @classmethod
    def from_outcome(cls, outcome: VoteOutcome) -> "VoteResult":
        percent_a, percent_b = outcome.percentages
        return cls(
            item_id=outcome.item_id,
            variant=outcome.variant,
            count_a=outcome.count_a,
            count_b=outcome.count_b,
            total=outcome.total,
            percent_a=percent_a,
            percent_b=percent_b,
            already_voted=outcome.already_voted,
        )


class MyVoteResponse(BaseModel):
    """The calling visitor's vote on one item, if any."""

    item_id: str
    variant: Variant | None = None


class VoteRecordResponse(BaseModel):
    """One stored vote in a visitor's history."""

    item_id: str
    variant: Variant
    created_at: datetime


class VisitorVotesResponse(BaseModel):
    """A visitor's full vote history, newest first."""

    total_votes: int
    votes: list[VoteRecordResponse]


class VisitorStatsResponse(BaseModel):
    """Majority/minority breakdown of a visitor's votes."""

    total_votes: int
    in_majority: int
    in_minority: int
    unique_memory: int
    voted_item_ids: list[str]


class VoteImportRequest(BaseModel):
    """Votes held by the client that should exist on the ledger."""

    votes: dict[str, str] = Field(default_factory=dict, max_length=1000)


class VoteImportResponse(BaseModel):
    """Result of a vote import."""

    imported: int
    already_present: int
    skipped: int
