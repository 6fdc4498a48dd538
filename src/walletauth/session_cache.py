"""Short-lived cache for freshly generated authorization keys.

A new key is shown to its owner once; until they have stored it somewhere
themselves it is kept here, in memory only, for a limited time.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Callable

from walletauth.config import DEFAULT_TEMP_KEY_TTL_SECONDS


@dataclass(frozen=True)
class TemporaryKey:
    private_key_pem: str
    private_key_token: str
    key_quorum_id: str | None
    stored_at: float
    expires_at: float


class TemporaryKeyCache:
    def __init__(
        self,
        ttl_seconds: int = DEFAULT_TEMP_KEY_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError(f"ttl_seconds must be positive, got {ttl_seconds}")
        self._ttl = ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: dict[str, TemporaryKey] = {}

    def store(
        self,
        wallet_id: str,
        private_key_pem: str,
        private_key_token: str,
        key_quorum_id: str | None = None,
    ) -> TemporaryKey:
        now = self._clock()
        entry = TemporaryKey(
            private_key_pem=private_key_pem,
            private_key_token=private_key_token,
            key_quorum_id=key_quorum_id,
            stored_at=now,
            expires_at=now + self._ttl,
        )
        with self._lock:
            self._purge_expired(now)
            self._entries[wallet_id] = entry
        return entry

    def get(self, wallet_id: str) -> TemporaryKey | None:
        """Return the cached key, or None if absent or expired.

        Every access evicts all expired entries, so keys never outlive their TTL
        in memory by more than the time until the next call.
        """
        with self._lock:
            self._purge_expired(self._clock())
            return self._entries.get(wallet_id)

    def clear(self, wallet_id: str) -> None:
        with self._lock:
            self._entries.pop(wallet_id, None)

    def clear_all(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            self._purge_expired(self._clock())
            return len(self._entries)

    def _purge_expired(self, now: float) -> None:
        # Caller holds the lock.
        expired = [wallet_id for wallet_id, e in self._entries.items() if now > e.expires_at]
        for wallet_id in expired:
            del self._entries[wallet_id]
