"""HTTP client for the vote ledger API.

Maps ledger HTTP responses back onto the shared error taxonomy so callers
never deal with status codes:

- 400 / 422: `InvalidRequestError` (do not retry)
- 404: `NotFoundError` (do not retry)
- 5xx, timeouts, connection failures: `StorageError` (safe to retry)
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from typing import Any

import httpx

from anonvote.core.errors import InvalidRequestError, NotFoundError, StorageError
from anonvote.core.settings import settings
from anonvote.core.types import Variant, VoteOutcome

logger = logging.getLogger(__name__)

# HTTP status codes
HTTP_BAD_REQUEST = 400
HTTP_NOT_FOUND = 404
HTTP_UNPROCESSABLE_ENTITY = 422
HTTP_INTERNAL_SERVER_ERROR = 500

VISITOR_HEADER = "X-Visitor-Id"


class LedgerTransport:
    """Async wrapper around the `/api/v1` ledger endpoints."""

    def __init__(
        self,
        base_url: str | None = None,
        *,
        timeout_seconds: float | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = (base_url or settings.api_base_url).rstrip("/")
        self.timeout_seconds = (
            settings.http_timeout_seconds if timeout_seconds is None else timeout_seconds
        )
        self._client = client
        self._owns_client = client is None
        self._client_lock = asyncio.Lock()

    async def _ensure_client(self) -> httpx.AsyncClient:
        async with self._client_lock:
            if self._client is None:
                self._client = httpx.AsyncClient(
                    base_url=self.base_url,
                    timeout=httpx.Timeout(self.timeout_seconds),
                )
        return self._client

    async def _request(
        self,
        method: str,
        path: str,
        *,
        visitor_id: str,
        json_data: Any | None = None,
    ) -> httpx.Response:
        client = await self._ensure_client()
        try:
            response = await client.request(
                method,
                path,
                json=json_data,
                headers={VISITOR_HEADER: visitor_id},
            )
        except httpx.HTTPError as exc:
            logger.warning("Ledger request %s %s failed: %s", method, path, exc)
            raise StorageError(f"Ledger request failed: {exc}") from exc

        status_code = response.status_code
        if status_code >= HTTP_INTERNAL_SERVER_ERROR:
            raise StorageError(f"Ledger responded with {status_code}")
        if status_code == HTTP_NOT_FOUND:
            raise NotFoundError(_detail(response, "Item not found"))
        if status_code in (HTTP_BAD_REQUEST, HTTP_UNPROCESSABLE_ENTITY):
            raise InvalidRequestError(_detail(response, "Request rejected by ledger"))
        if status_code >= HTTP_BAD_REQUEST:
            raise StorageError(f"Unexpected ledger response ({status_code})")
        return response

    async def cast_vote(self, visitor_id: str, item_id: str, variant: Variant) -> VoteOutcome:
        """Submit a vote; a repeat submission comes back with `already_voted=True`."""
        response = await self._request(
            "POST",
            "/votes/",
            visitor_id=visitor_id,
            json_data={"item_id": item_id, "variant": Variant(variant).value},
        )
        payload = response.json()
        return VoteOutcome(
            item_id=str(payload.get("item_id", item_id)),
            variant=Variant(payload["variant"]),
            count_a=int(payload["count_a"]),
            count_b=int(payload["count_b"]),
            already_voted=bool(payload["already_voted"]),
        )

    async def get_vote(self, visitor_id: str, item_id: str) -> Variant | None:
        """Return the ledger's stored variant for one item, or None."""
        response = await self._request("GET", f"/votes/{item_id}/my-vote", visitor_id=visitor_id)
        return Variant.parse(response.json().get("variant"))

    async def list_votes(self, visitor_id: str) -> dict[str, Variant]:
        """Return every vote the ledger holds for the visitor."""
        response = await self._request("GET", "/visitors/me/votes", visitor_id=visitor_id)
        votes: dict[str, Variant] = {}
        for entry in response.json().get("votes", []):
            variant = Variant.parse(entry.get("variant"))
            if variant is not None:
                votes[str(entry["item_id"])] = variant
        return votes

    async def import_votes(
        self,
        visitor_id: str,
        votes: Mapping[str, Variant],
    ) -> dict[str, int]:
        """Push client-only votes; returns the ledger's import counts."""
        response = await self._request(
            "POST",
            "/visitors/me/votes/import",
            visitor_id=visitor_id,
            json_data={"votes": {item_id: Variant(v).value for item_id, v in votes.items()}},
        )
        payload = response.json()
        return {
            "imported": int(payload.get("imported", 0)),
            "already_present": int(payload.get("already_present", 0)),
            "skipped": int(payload.get("skipped", 0)),
        }

    async def close(self) -> None:
        """Clean up underlying HTTP client resources."""
        async with self._client_lock:
            if self._client is not None and self._owns_client:
                await self._client.aclose()
            self._client = None


def _detail(response: httpx.Response, fallback: str) -> str:
    try:
        detail = response.json().get("detail")
    except ValueError:
        return fallback
    return detail if isinstance(detail, str) else fallback
