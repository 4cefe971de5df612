"""
Pydantic schemas for API request/response models.

These schemas define the structure of API data for serialization and validation.
"""

from .item import ItemCountersResponse
from .vote import (
    MyVoteResponse,
    VisitorStatsResponse,
    VisitorVotesResponse,
    VoteCreate,
    VoteImportRequest,
    VoteImportResponse,
    VoteRecordResponse,
    VoteResult,
)

__all__ = [
    "ItemCountersResponse",
    "MyVoteResponse",
    "VisitorStatsResponse", "VisitorVotesResponse",
    "VoteCreate", "VoteImportRequest", "VoteImportResponse",
    "VoteRecordResponse", "VoteResult",
]
