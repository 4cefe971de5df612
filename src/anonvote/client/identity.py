"""Anonymous visitor identity for one client profile."""

from __future__ import annotations

import logging
import uuid
from collections.abc import Sequence

from anonvote.client.storage import ProfileStorage
from anonvote.utils.hash import visitor_fingerprint

logger = logging.getLogger(__name__)

VISITOR_ID_FIELD = "visitor_id"

# Top-level keys used by clients that predate the namespaced layout.
LEGACY_VISITOR_KEYS: tuple[str, ...] = ("visitor-id", "visitorId")


class VisitorIdentityProvider:
    """Issue and persist a stable anonymous visitor id.

    The id is created lazily on first use and then reused for the lifetime of
    the profile. It is not unique across devices and is never verified.
    """

    def __init__(
        self,
        storage: ProfileStorage,
        legacy_keys: Sequence[str] = LEGACY_VISITOR_KEYS,
    ) -> None:
        self._storage = storage
        self._legacy_keys = tuple(legacy_keys)
        self._visitor_id: str | None = None

    def current_visitor_id(self) -> str:
        """Return this profile's visitor id, creating it if needed."""
        if self._visitor_id is not None:
            return self._visitor_id

        visitor_id = self._storage.read(VISITOR_ID_FIELD)
        if not isinstance(visitor_id, str) or not visitor_id.strip():
            visitor_id = self._adopt_legacy_id()
        if visitor_id is None:
            visitor_id = str(uuid.uuid4())
            logger.info("Issued new visitor id %s", visitor_fingerprint(visitor_id))
        visitor_id = visitor_id.strip()

        if self._storage.read(VISITOR_ID_FIELD) != visitor_id:
            self._storage.write(VISITOR_ID_FIELD, visitor_id)
        self._visitor_id = visitor_id
        return visitor_id

    def _adopt_legacy_id(self) -> str | None:
        for key in self._legacy_keys:
            candidate = self._storage.read_global(key)
            if isinstance(candidate, str) and candidate.strip():
                logger.info("Adopted visitor id from legacy key %r", key)
                return candidate
        return None
