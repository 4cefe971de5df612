"""Durable per-profile key/value storage for the client.

The profile file plays the part of a browser's local storage: it may hold
entries from other applications, so everything this client writes lives
under one namespace key and can be enumerated or cleared as a unit.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from threading import RLock
from typing import Any

from anonvote.core.settings import settings

logger = logging.getLogger(__name__)


class ProfileStorage:
    """JSON-file storage namespaced under a single application key."""

    def __init__(self, path: str | os.PathLike[str] | None = None, namespace: str | None = None) -> None:
        self.path = Path(path or settings.client_storage_path).expanduser()
        self.namespace = namespace or settings.client_storage_key
        self._lock = RLock()

    def _read_profile(self) -> dict[str, Any]:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        try:
            profile = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Profile storage at %s is not valid JSON; starting empty", self.path)
            return {}
        if not isinstance(profile, dict):
            logger.warning("Profile storage at %s has unexpected shape; starting empty", self.path)
            return {}
        return profile

    def _write_profile(self, profile: dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(profile, handle, sort_keys=True)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def _section(self, profile: dict[str, Any]) -> dict[str, Any]:
        section = profile.get(self.namespace)
        return section if isinstance(section, dict) else {}

    def read(self, field: str, default: Any = None) -> Any:
        """Return one field from this application's namespace."""
        with self._lock:
            return self._section(self._read_profile()).get(field, default)

    def write(self, field: str, value: Any) -> None:
        """Persist one field in this application's namespace."""
        with self._lock:
            profile = self._read_profile()
            section = self._section(profile)
            section[field] = value
            profile[self.namespace] = section
            self._write_profile(profile)

    def remove(self, field: str) -> None:
        """Delete one field from this application's namespace."""
        with self._lock:
            profile = self._read_profile()
            section = self._section(profile)
            if section.pop(field, None) is None:
                return
            profile[self.namespace] = section
            self._write_profile(profile)

    def fields(self) -> list[str]:
        """Enumerate the fields stored under this application's namespace."""
        with self._lock:
            return sorted(self._section(self._read_profile()))

    def clear(self) -> None:
        """Drop this application's namespace, leaving other entries intact."""
        with self._lock:
            profile = self._read_profile()
            if profile.pop(self.namespace, None) is not None:
                self._write_profile(profile)

    def read_global(self, key: str) -> Any:
        """Return an entry outside the namespace, as written by older clients."""
        with self._lock:
            return self._read_profile().get(key)
