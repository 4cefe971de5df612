# src/anonvote/schemas/item.py
"""Content item schemas."""

from pydantic import BaseModel, ConfigDict


class ItemCountersResponse(BaseModel):
    """Public counters for one content item."""

    id: str
    title: str | None = None
    count_a: int
    count_b: int
    total: int

    model_config = ConfigDict(from_attributes=True)
