# tests/v1/test_votes.py
"""Tests for vote-related endpoints."""

from fastapi import status

from anonvote.models import ContentItem, Vote


def test_cast_vote_creates_vote(client, visitor_headers, item) -> None:
    """A first vote is stored and reported with fresh counters."""
    response = client.post(
        "/api/v1/votes/",
        json={"item_id": item.id, "variant": "A"},
        headers=visitor_headers,
    )
    assert response.status_code == status.HTTP_201_CREATED
    body = response.json()
    assert body == {
        "item_id": item.id,
        "variant": "A",
        "count_a": 1,
        "count_b": 0,
        "total": 1,
        "percent_a": 100.0,
        "percent_b": 0.0,
        "already_voted": False,
    }


def test_repeat_vote_returns_stored_variant(client, visitor_headers, item, db_session) -> None:
    """A second vote with a different variant keeps the first one."""
    first = client.post(
        "/api/v1/votes/",
        json={"item_id": item.id, "variant": "A"},
        headers=visitor_headers,
    )
    assert first.status_code == status.HTTP_201_CREATED

    second = client.post(
        "/api/v1/votes/",
        json={"item_id": item.id, "variant": "B"},
        headers=visitor_headers,
    )
    assert second.status_code == status.HTTP_200_OK
    body = second.json()
    assert body["variant"] == "A"
    assert body["already_voted"] is True
    assert (body["count_a"], body["count_b"]) == (1, 0)

    assert db_session.query(Vote).count() == 1
    db_session.expire_all()
    stored = db_session.get(ContentItem, item.id)
    assert (stored.count_a, stored.count_b) == (1, 0)


def test_votes_from_different_visitors_both_count(
    client, visitor_headers, other_visitor_headers, item
) -> None:
    client.post("/api/v1/votes/", json={"item_id": item.id, "variant": "A"}, headers=visitor_headers)
    response = client.post(
        "/api/v1/votes/",
        json={"item_id": item.id, "variant": "B"},
        headers=other_visitor_headers,
    )
    assert response.status_code == status.HTTP_201_CREATED
    body = response.json()
    assert (body["count_a"], body["count_b"]) == (1, 1)
    assert (body["percent_a"], body["percent_b"]) == (50.0, 50.0)


def test_vote_invalid_variant(client, visitor_headers, item) -> None:
    """Test voting with a variant other than A or B."""
    response = client.post(
        "/api/v1/votes/",
        json={"item_id": item.id, "variant": "C"},
        headers=visitor_headers,
    )
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


def test_vote_nonexistent_item(client, visitor_headers) -> None:
    """Test voting on an item the authoring store never registered."""
    response = client.post(
        "/api/v1/votes/",
        json={"item_id": "missing", "variant": "A"},
        headers=visitor_headers,
    )
    assert response.status_code == status.HTTP_404_NOT_FOUND


def test_vote_without_visitor_header(client, item) -> None:
    response = client.post("/api/v1/votes/", json={"item_id": item.id, "variant": "A"})
    assert response.status_code == status.HTTP_400_BAD_REQUEST


def test_vote_with_blank_visitor_header(client, item) -> None:
    response = client.post(
        "/api/v1/votes/",
        json={"item_id": item.id, "variant": "A"},
        headers={"X-Visitor-Id": "   "},
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST


def test_vote_with_oversized_visitor_header(client, item) -> None:
    response = client.post(
        "/api/v1/votes/",
        json={"item_id": item.id, "variant": "A"},
        headers={"X-Visitor-Id": "v" * 129},
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST


def test_storage_failure_maps_to_503(client, visitor_headers, item, mocker) -> None:
    """Storage failures are reported as retryable."""
    from anonvote.core.errors import StorageError
    from anonvote.services.ledger import VoteLedger

    mocker.patch.object(VoteLedger, "cast_vote", side_effect=StorageError("Vote ledger unavailable"))
    response = client.post(
        "/api/v1/votes/",
        json={"item_id": item.id, "variant": "A"},
        headers=visitor_headers,
    )
    assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
    assert response.headers["Retry-After"] == "1"


def test_get_my_vote(client, visitor_headers, other_visitor_headers, item) -> None:
    """A visitor sees their own vote and nobody else's."""
    client.post("/api/v1/votes/", json={"item_id": item.id, "variant": "B"}, headers=visitor_headers)

    mine = client.get(f"/api/v1/votes/{item.id}/my-vote", headers=visitor_headers)
    assert mine.status_code == status.HTTP_200_OK
    assert mine.json() == {"item_id": item.id, "variant": "B"}

    theirs = client.get(f"/api/v1/votes/{item.id}/my-vote", headers=other_visitor_headers)
    assert theirs.status_code == status.HTTP_200_OK
    assert theirs.json() == {"item_id": item.id, "variant": None}


def test_get_my_vote_requires_visitor(client, item) -> None:
    response = client.get(f"/api/v1/votes/{item.id}/my-vote")
    assert response.status_code == status.HTTP_400_BAD_REQUEST


def test_vote_with_oversized_item_id(client, visitor_headers) -> None:
    """Item ids longer than the configured limit are rejected before lookup."""
    from anonvote.core.settings import settings

    response = client.post(
        "/api/v1/votes/",
        json={"item_id": "x" * (settings.item_id_max_length + 1), "variant": "A"},
        headers=visitor_headers,
    )
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
