"""Authorization-config and wallet-ownership registries.

Both are explicit store objects injected into the API and service layers.
The in-memory implementations are guarded by a lock and lost on restart;
anything durable should implement the same protocol.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, Optional, Protocol

from pydantic import BaseModel, ConfigDict, Field

from walletauth.custody import decrypt_private_key, encrypt_private_key
from walletauth.keys import load_private_key, public_key_to_pem
from walletauth.service_errors import NotFoundError

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class AuthConfig(BaseModel):
    """The authorization key registered as a signer on one wallet."""

    model_config = ConfigDict(frozen=True)

    wallet_id: str = Field(..., min_length=1)
    wallet_address: str = ""
    key_quorum_id: str = ""
    auth_key_id: str = ""
    private_key_token: str = Field(..., min_length=1, repr=False)
    public_key_pem: str = ""
    created_at: datetime = Field(default_factory=_now)
    user_id: Optional[str] = None


class AuthConfigStore(Protocol):
    def save(self, config: AuthConfig) -> AuthConfig: ...

    def get(self, wallet_id: str) -> AuthConfig | None: ...

    def get_by_address(self, wallet_address: str) -> AuthConfig | None: ...

    def delete(self, wallet_id: str) -> None: ...

    def list(self) -> list[AuthConfig]: ...

    def restore(self, configs: Iterable[AuthConfig]) -> int: ...

    def rotate_key(
        self,
        wallet_id: str,
        private_key_token: str,
        *,
        key_quorum_id: str | None = None,
        auth_key_id: str | None = None,
    ) -> tuple[AuthConfig, AuthConfig]: ...

    def clear(self) -> None: ...


@dataclass(frozen=True)
class _SealedConfig:
    config: AuthConfig  # private_key_token blanked
    sealed_token: bytes


class InMemoryAuthConfigStore:
    """Process-local AuthConfigStore.

    With a master key, private key tokens are held AES-256-GCM encrypted and
    decrypted on read.
    """

    def __init__(self, master_key: bytes | None = None) -> None:
        self._master_key = master_key
        self._lock = threading.Lock()
        self._configs: dict[str, _SealedConfig] = {}

    def save(self, config: AuthConfig) -> AuthConfig:
        config, sealed = self._prepare(config)
        with self._lock:
            self._configs[config.wallet_id] = sealed
        logger.info("Stored authorization config for wallet %s", config.wallet_id)
        return config

    def get(self, wallet_id: str) -> AuthConfig | None:
        with self._lock:
            sealed = self._configs.get(wallet_id)
        return self._unseal(sealed) if sealed is not None else None

    def get_by_address(self, wallet_address: str) -> AuthConfig | None:
        wanted = wallet_address.lower()
        with self._lock:
            match = next(
                (s for s in self._configs.values() if s.config.wallet_address.lower() == wanted),
                None,
            )
        return self._unseal(match) if match is not None else None

    def delete(self, wallet_id: str) -> None:
        with self._lock:
            if self._configs.pop(wallet_id, None) is None:
                raise NotFoundError(f"No authorization config for wallet {wallet_id}")
        logger.info("Deleted authorization config for wallet %s", wallet_id)

    def list(self) -> list[AuthConfig]:
        with self._lock:
            sealed = list(self._configs.values())
        return [self._unseal(s) for s in sealed]

    def restore(self, configs: Iterable[AuthConfig]) -> int:
        """Save every config, or none of them if any key is unusable."""
        prepared = [self._prepare(config) for config in configs]
        with self._lock:
            for config, sealed in prepared:
                self._configs[config.wallet_id] = sealed
        logger.info("Restored %d authorization configs", len(prepared))
        return len(prepared)

    def rotate_key(
        self,
        wallet_id: str,
        private_key_token: str,
        *,
        key_quorum_id: str | None = None,
        auth_key_id: str | None = None,
    ) -> tuple[AuthConfig, AuthConfig]:
        """Swap the wallet's key in a single step. Returns (old, new)."""
        private_key = load_private_key(private_key_token)
        sealed_token = self._seal(private_key_token)
        updates = {
            "public_key_pem": public_key_to_pem(private_key.public_key()),
            "created_at": _now(),
            "private_key_token": "-",
        }
        if key_quorum_id is not None:
            updates["key_quorum_id"] = key_quorum_id
        if auth_key_id is not None:
            updates["auth_key_id"] = auth_key_id

        with self._lock:
            current = self._configs.get(wallet_id)
            if current is None:
                raise NotFoundError(f"No authorization config for wallet {wallet_id}")
            rotated = _SealedConfig(config=current.config.model_copy(update=updates), sealed_token=sealed_token)
            self._configs[wallet_id] = rotated
        logger.info("Rotated authorization key for wallet %s", wallet_id)
        return self._unseal(current), self._unseal(rotated)

    def clear(self) -> None:
        with self._lock:
            self._configs.clear()

    def _prepare(self, config: AuthConfig) -> tuple[AuthConfig, _SealedConfig]:
        # Reject unusable keys up front rather than at signing time.
        private_key = load_private_key(config.private_key_token)
        if not config.public_key_pem:
            config = config.model_copy(
                update={"public_key_pem": public_key_to_pem(private_key.public_key())}
            )
        sealed = _SealedConfig(
            config=config.model_copy(update={"private_key_token": "-"}),
            sealed_token=self._seal(config.private_key_token),
        )
        return config, sealed

    def _seal(self, token: str) -> bytes:
        raw = token.encode("utf-8")
        if self._master_key is None:
            return raw
        return encrypt_private_key(raw, self._master_key)

    def _unseal(self, sealed: _SealedConfig) -> AuthConfig:
        raw = sealed.sealed_token
        if self._master_key is not None:
            raw = decrypt_private_key(raw, self._master_key)
        return sealed.config.model_copy(update={"private_key_token": raw.decode("utf-8")})


class WalletOwnershipRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    wallet_id: str = Field(..., min_length=1)
    wallet_address: str
    creator_address: str
    agent_id: str = ""
    created_at: datetime = Field(default_factory=_now)


class WalletOwnershipRegistry:
    """Which address created which agent wallet."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._records: dict[str, WalletOwnershipRecord] = {}

    def register(self, record: WalletOwnershipRecord) -> WalletOwnershipRecord:
        with self._lock:
            self._records[record.wallet_id] = record
        logger.info("Registered wallet %s", record.wallet_id)
        return record

    def get(self, wallet_id: str) -> WalletOwnershipRecord | None:
        with self._lock:
            return self._records.get(wallet_id)

    def wallets_by_creator(self, creator_address: str) -> list[WalletOwnershipRecord]:
        wanted = creator_address.lower()
        with self._lock:
            return [r for r in self._records.values() if r.creator_address.lower() == wanted]

    def is_owned_by(self, wallet_id: str, creator_address: str) -> bool:
        record = self.get(wallet_id)
        return record is not None and record.creator_address.lower() == creator_address.lower()

    def list(self) -> list[WalletOwnershipRecord]:
        with self._lock:
            return list(self._records.values())
