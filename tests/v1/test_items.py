# tests/v1/test_items.py
"""Tests for item counter endpoints."""

from fastapi import status


def test_get_item_counters(client, make_item) -> None:
    make_item("item-1", title="First", count_a=3, count_b=1)

    response = client.get("/api/v1/items/item-1")
    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {
        "id": "item-1",
        "title": "First",
        "count_a": 3,
        "count_b": 1,
        "total": 4,
    }


def test_counters_follow_votes(client, visitor_headers, item) -> None:
    client.post("/api/v1/votes/", json={"item_id": item.id, "variant": "B"}, headers=visitor_headers)

    response = client.get(f"/api/v1/items/{item.id}")
    body = response.json()
    assert (body["count_a"], body["count_b"], body["total"]) == (0, 1, 1)


def test_get_missing_item(client) -> None:
    response = client.get("/api/v1/items/nope")
    assert response.status_code == status.HTTP_404_NOT_FOUND


def test_item_id_too_long(client) -> None:
    response = client.get(f"/api/v1/items/{'x' * 65}")
    assert response.status_code == status.HTTP_400_BAD_REQUEST
