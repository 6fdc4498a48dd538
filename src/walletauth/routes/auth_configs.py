from __future__ import annotations

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict, Field

from walletauth.config import Settings
from walletauth.deps import get_auth_store, get_key_cache, get_settings
from walletauth.keys import KeyEncoding, generate_keypair, pem_to_token
from walletauth.registry import AuthConfig, AuthConfigStore
from walletauth.service_errors import BadRequestError, NotFoundError
from walletauth.session_cache import TemporaryKeyCache

router = APIRouter(tags=["walletauth-auth-configs"])


class AuthConfigIn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    wallet_address: str = Field(default="", max_length=128)
    key_quorum_id: str = Field(default="", max_length=256)
    auth_key_id: str = Field(default="", max_length=256)
    # PEM or wallet-auth token. Omit to use the key generated for this wallet
    # in the last few minutes.
    private_key: Optional[str] = Field(default=None, min_length=1, repr=False)
    public_key_pem: str = ""
    user_id: Optional[str] = None


class RestoreItem(AuthConfigIn):
    wallet_id: str = Field(..., min_length=1, max_length=256)
    private_key: str = Field(..., min_length=1, repr=False)
    created_at: Optional[datetime] = None


class RestoreRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    auth_configs: list[RestoreItem]


class RotateRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    # The quorum and key ids issued for the new key by the wallet service, if
    # they changed.
    key_quorum_id: Optional[str] = Field(default=None, max_length=256)
    auth_key_id: Optional[str] = Field(default=None, max_length=256)


class AuthConfigView(BaseModel):
    """An auth config as returned over the API: never includes the private key."""

    wallet_id: str
    wallet_address: str
    key_quorum_id: str
    auth_key_id: str
    public_key_pem: str
    created_at: datetime
    user_id: Optional[str] = None

    @classmethod
    def of(cls, config: AuthConfig) -> "AuthConfigView":
        return cls(**config.model_dump(exclude={"private_key_token"}))


def _to_config(wallet_id: str, data: AuthConfigIn, private_key: str, settings: Settings) -> AuthConfig:
    extra = {}
    if isinstance(data, RestoreItem) and data.created_at is not None:
        extra["created_at"] = data.created_at
    return AuthConfig(
        wallet_id=wallet_id,
        wallet_address=data.wallet_address,
        key_quorum_id=data.key_quorum_id,
        auth_key_id=data.auth_key_id,
        private_key_token=pem_to_token(private_key, settings.key_encoding),
        public_key_pem=data.public_key_pem,
        user_id=data.user_id,
        **extra,
    )


@router.put("/v1/wallets/{wallet_id}/auth-config", response_model=AuthConfigView)
async def save_auth_config(
    wallet_id: str,
    payload: AuthConfigIn,
    settings: Settings = Depends(get_settings),
    store: AuthConfigStore = Depends(get_auth_store),
    key_cache: TemporaryKeyCache = Depends(get_key_cache),
) -> AuthConfigView:
    private_key = payload.private_key
    if private_key is None:
        cached = key_cache.get(wallet_id)
        if cached is None:
            raise BadRequestError(
                "No private_key given and no recently generated key for this wallet"
            )
        private_key = cached.private_key_token

    saved = store.save(_to_config(wallet_id, payload, private_key, settings))
    key_cache.clear(wallet_id)
    return AuthConfigView.of(saved)


@router.get("/v1/wallets/{wallet_id}/auth-config", response_model=AuthConfigView)
async def get_auth_config(
    wallet_id: str, store: AuthConfigStore = Depends(get_auth_store)
) -> AuthConfigView:
    config = store.get(wallet_id)
    if config is None:
        raise NotFoundError(f"No authorization config for wallet {wallet_id}")
    return AuthConfigView.of(config)


@router.delete("/v1/wallets/{wallet_id}/auth-config")
async def delete_auth_config(
    wallet_id: str, store: AuthConfigStore = Depends(get_auth_store)
) -> dict:
    store.delete(wallet_id)
    return {"status": "deleted", "wallet_id": wallet_id}


@router.get("/v1/auth-configs")
async def list_auth_configs(
    address: Optional[str] = Query(default=None, max_length=128),
    store: AuthConfigStore = Depends(get_auth_store),
) -> dict:
    if address:
        config = store.get_by_address(address)
        configs = [config] if config is not None else []
    else:
        configs = store.list()
    return {"auth_configs": [AuthConfigView.of(c).model_dump(mode="json") for c in configs]}


@router.post("/v1/auth-configs/restore")
async def restore_auth_configs(
    payload: RestoreRequest,
    settings: Settings = Depends(get_settings),
    store: AuthConfigStore = Depends(get_auth_store),
) -> dict:
    """Re-register auth configs held by a client, e.g. after a server restart."""
    configs = [_to_config(item.wallet_id, item, item.private_key, settings) for item in payload.auth_configs]
    return {"restored_count": store.restore(configs)}


class RotateResponse(BaseModel):
    auth_config: AuthConfigView
    previous_key_quorum_id: str
    private_key_pem: str
    private_key_token: str
    encoding: KeyEncoding


@router.post("/v1/wallets/{wallet_id}/auth-config/rotate", response_model=RotateResponse)
async def rotate_auth_config(
    wallet_id: str,
    payload: Optional[RotateRequest] = None,
    settings: Settings = Depends(get_settings),
    store: AuthConfigStore = Depends(get_auth_store),
    key_cache: TemporaryKeyCache = Depends(get_key_cache),
) -> RotateResponse:
    """Replace the wallet's authorization key with a freshly generated one.

    The new private key is returned exactly once; the old key stops working
    for server-side signing immediately.
    """
    payload = payload or RotateRequest()
    key = generate_keypair(settings.key_encoding)
    previous, rotated = store.rotate_key(
        wallet_id,
        key.private_key_token,
        key_quorum_id=payload.key_quorum_id,
        auth_key_id=payload.auth_key_id,
    )
    key_cache.clear(wallet_id)
    return RotateResponse(
        auth_config=AuthConfigView.of(rotated),
        previous_key_quorum_id=previous.key_quorum_id,
        private_key_pem=key.private_key_pem,
        private_key_token=key.private_key_token,
        encoding=key.encoding,
    )
