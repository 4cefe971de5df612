"""Unlock state machine for supplementary content.

Everything here is a pure function of the current inputs: the number of
distinct items the visitor voted on, the Normal/Alternate mode, and whether
the visitor voted on the item being shown. Nothing is remembered between
evaluations except the mode itself, which `ModeSwitch` holds for the session.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum

from anonvote.core.errors import ModeLockedError
from anonvote.core.settings import settings

logger = logging.getLogger(__name__)

MAX_STAGE = 3


class Mode(str, Enum):
    """Global presentation mode toggled by the visitor."""

    NORMAL = "normal"
    ALTERNATE = "alternate"


class Visibility(str, Enum):
    """Per-item visibility of supplementary content."""

    LOCKED_SWITCH_MODE = "locked_switch_mode"
    LOCKED_NEEDS_VOTE = "locked_needs_vote"
    UNLOCKED = "unlocked"


@dataclass(frozen=True)
class UnlockState:
    """Derived, never stored."""

    stage: int
    mode: Mode


def stage_for(distinct_vote_count: int, thresholds: Sequence[int] | None = None) -> int:
    """Return the highest stage whose threshold the count reaches.

    With the default thresholds (10, 20, 25): below 10 is stage 0, 10-19 is
    stage 1, 20-24 is stage 2 and 25 or more is stage 3.
    """
    bounds = tuple(thresholds) if thresholds is not None else settings.stage_thresholds
    stage = 0
    for index, threshold in enumerate(bounds, start=1):
        if distinct_vote_count >= threshold:
            stage = index
    return stage


def visibility_for(mode: Mode, has_voted_on_item: bool) -> Visibility:
    """Map mode and per-item vote presence to a visibility state.

    Voting alone never reveals content while the mode is Normal.
    """
    if mode is Mode.NORMAL:
        return Visibility.LOCKED_SWITCH_MODE
    if not has_voted_on_item:
        return Visibility.LOCKED_NEEDS_VOTE
    return Visibility.UNLOCKED


def unlock_state(
    distinct_vote_count: int,
    mode: Mode,
    thresholds: Sequence[int] | None = None,
) -> UnlockState:
    return UnlockState(stage=stage_for(distinct_vote_count, thresholds), mode=mode)


class ModeSwitch:
    """Session-scoped holder for the Normal/Alternate mode.

    `min_stage` gates the toggle: 0 allows it at any stage. When gated, a
    visitor whose stage drops below the gate while in Alternate mode is put
    back into Normal mode by `enforce`.
    """

    def __init__(self, min_stage: int | None = None, mode: Mode | str = Mode.NORMAL) -> None:
        gate = settings.mode_toggle_min_stage if min_stage is None else min_stage
        if not 0 <= gate <= MAX_STAGE:
            raise ValueError(f"min_stage must be between 0 and {MAX_STAGE}")
        self.min_stage = gate
        self._mode = Mode(mode)

    @property
    def mode(self) -> Mode:
        return self._mode

    def can_toggle(self, stage: int) -> bool:
        return stage >= self.min_stage

    def set(self, mode: Mode | str, stage: int) -> bool:
        """Switch to `mode`. Returns whether the mode changed.

        Raises:
            ModeLockedError: Entering Alternate mode is gated above `stage`.
        """
        mode = Mode(mode)
        if mode is self._mode:
            return False
        if mode is Mode.ALTERNATE and not self.can_toggle(stage):
            raise ModeLockedError(
                f"Alternate mode unlocks at stage {self.min_stage}; current stage is {stage}"
            )
        self._mode = mode
        logger.debug("Mode switched to %s at stage %d", mode.value, stage)
        return True

    def toggle(self, stage: int) -> Mode:
        """Flip between Normal and Alternate and return the new mode."""
        target = Mode.NORMAL if self._mode is Mode.ALTERNATE else Mode.ALTERNATE
        self.set(target, stage)
        return self._mode

    def enforce(self, stage: int) -> bool:
        """Fall back to Normal if the gate is no longer met. Returns whether it did."""
        if self._mode is Mode.ALTERNATE and not self.can_toggle(stage):
            self._mode = Mode.NORMAL
            logger.info("Stage %d below gate %d; returning to normal mode", stage, self.min_stage)
            return True
        return False
