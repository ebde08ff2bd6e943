"""
Cosmetica API Storage

Per-session credential storage and the on-disk cache of the bootstrap
discovery response.
"""

import json
import logging
import os
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Union

from .types import Credential, CredentialKind


logger = logging.getLogger("cosmetica_api")


class CredentialStore:
    """In-memory token storage for one client session."""

    def __init__(
        self,
        master_token: Optional[str] = None,
        limited_token: Optional[str] = None,
        temporary_token: Optional[str] = None,
    ) -> None:
        self._master_token = master_token or None
        self._limited_token = limited_token or None
        self._temporary_token = temporary_token or None
        self._lock = threading.Lock()

    @classmethod
    def from_credential(cls, credential: Credential) -> "CredentialStore":
        """Create a store holding a single tagged credential."""
        if credential.kind == CredentialKind.MASTER:
            return cls(master_token=credential.token)
        if credential.kind == CredentialKind.LIMITED:
            return cls(limited_token=credential.token)
        if credential.kind == CredentialKind.TEMPORARY:
            return cls(temporary_token=credential.token)
        return cls()

    @property
    def master_token(self) -> Optional[str]:
        with self._lock:
            return self._master_token

    @property
    def limited_token(self) -> Optional[str]:
        with self._lock:
            return self._limited_token

    @property
    def temporary_token(self) -> Optional[str]:
        with self._lock:
            return self._temporary_token

    def set_tokens(self, master_token: str, limited_token: str) -> None:
        """Replace the master and limited tokens. A held temporary token is spent."""
        with self._lock:
            self._master_token = master_token or None
            self._limited_token = limited_token or None
            self._temporary_token = None

    def set_temporary_token(self, token: str) -> None:
        """Store a new temporary token, dropping master and limited tokens."""
        with self._lock:
            self._master_token = None
            self._limited_token = None
            self._temporary_token = token

    def clear_tokens(self) -> None:
        """Clear all stored tokens."""
        with self._lock:
            self._master_token = None
            self._limited_token = None
            self._temporary_token = None

    def credentials(self) -> List[Credential]:
        """The credentials currently held, strongest first."""
        with self._lock:
            held = []
            if self._master_token:
                held.append(Credential.master(self._master_token))
            if self._limited_token:
                held.append(Credential.limited(self._limited_token))
            if self._temporary_token:
                held.append(Credential.temporary(self._temporary_token))
            return held or [Credential.none()]

    def __repr__(self) -> str:
        return f"CredentialStore({', '.join(c.kind.value for c in self.credentials())})"


@dataclass(frozen=True)
class CacheEntry:
    """A persisted bootstrap discovery body."""

    raw_body: str
    retrieved_at: float


class BootstrapCache:
    """File-based cache of the discovery response (persistent across restarts)."""

    def __init__(self, file_path: Union[str, Path]) -> None:
        self._file_path = Path(file_path)
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._file_path

    def load(self) -> Optional[CacheEntry]:
        """Read the cached entry, or None if missing or unreadable."""
        with self._lock:
            try:
                if not self._file_path.exists():
                    return None
                with open(self._file_path, "r", encoding="utf-8") as f:
                    data = json.load(f)
                return CacheEntry(
                    raw_body=data["raw_body"],
                    retrieved_at=float(data.get("retrieved_at", 0)),
                )
            except (json.JSONDecodeError, KeyError, TypeError, ValueError, OSError) as e:
                logger.warning("Ignoring unreadable bootstrap cache %s: %s", self._file_path, e)
                return None

    def store(self, raw_body: str) -> CacheEntry:
        """Persist a freshly discovered body."""
        entry = CacheEntry(raw_body=raw_body, retrieved_at=time.time())
        with self._lock:
            try:
                self._file_path.parent.mkdir(parents=True, exist_ok=True)
                tmp_path = self._file_path.with_name(self._file_path.name + ".tmp")
                with open(tmp_path, "w", encoding="utf-8") as f:
                    json.dump({"raw_body": entry.raw_body, "retrieved_at": entry.retrieved_at}, f)
                os.replace(tmp_path, self._file_path)
            except OSError as e:
                logger.warning("Could not write bootstrap cache %s: %s", self._file_path, e)
        return entry

    def clear(self) -> None:
        """Delete the cache file."""
        with self._lock:
            try:
                if self._file_path.exists():
                    self._file_path.unlink()
            except OSError as e:
                logger.warning("Could not remove bootstrap cache %s: %s", self._file_path, e)
