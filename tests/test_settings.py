# tests/test_settings.py
import pytest
from pydantic import ValidationError

from anonvote.core.settings import Settings
from anonvote.schemas.vote import VoteCreate


def test_item_id_limit_cannot_exceed_column_width() -> None:
    with pytest.raises(ValidationError):
        Settings(ITEM_ID_MAX_LENGTH=65)


def test_visitor_id_limit_cannot_exceed_column_width() -> None:
    with pytest.raises(ValidationError):
        Settings(VISITOR_ID_MAX_LENGTH=129)


def test_vote_payload_accepts_full_width_item_id() -> None:
    payload = VoteCreate(item_id="x" * 64, variant="A")
    assert len(payload.item_id) == 64

    with pytest.raises(ValidationError):
        VoteCreate(item_id="x" * 65, variant="A")
