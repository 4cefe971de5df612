"""Shared value types used by both the ledger and the client."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Variant(str, Enum):
    """One of the two mutually exclusive choices a visitor may register."""

    A = "A"
    B = "B"

    @classmethod
    def parse(cls, value: object) -> Variant | None:
        """Return the matching variant, or None for anything unrecognised."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return None


def split_percentages(count_a: int, count_b: int) -> tuple[float, float]:
    """Return (percent_a, percent_b) rounded to one decimal; 50/50 when empty."""
    total = count_a + count_b
    if total == 0:
        return 50.0, 50.0
    return round(count_a / total * 100, 1), round(count_b / total * 100, 1)


@dataclass(frozen=True)
class VoteOutcome:
    """Result of a cast: the stored variant and the item's counters.

    `already_voted` marks a repeat submission; it is an expected outcome that
    carries the canonical variant, never a failure.
    """

    item_id: str
    variant: Variant
    count_a: int
    count_b: int
    already_voted: bool

    @property
    def total(self) -> int:
        return self.count_a + self.count_b

    @property
    def percentages(self) -> tuple[float, float]:
        return split_percentages(self.count_a, self.count_b)
