from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from walletauth.config import Settings
from walletauth.deps import get_key_cache, get_settings
from walletauth.keys import KeyEncoding, generate_keypair, token_to_pem
from walletauth.session_cache import TemporaryKeyCache

router = APIRouter(prefix="/v1/auth-keys", tags=["walletauth-keys"])


class GenerateKeyRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    encoding: Optional[KeyEncoding] = None
    wallet_id: Optional[str] = Field(default=None, min_length=1, max_length=256)


class GenerateKeyResponse(BaseModel):
    private_key_pem: str
    public_key_pem: str
    private_key_token: str
    encoding: KeyEncoding
    cached_for_seconds: Optional[int] = None


class TokenToPemRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    private_key_token: str = Field(..., min_length=1)
    encoding: Optional[KeyEncoding] = None


class TokenToPemResponse(BaseModel):
    private_key_pem: str
    encoding: KeyEncoding


@router.post("", response_model=GenerateKeyResponse)
async def generate_auth_key(
    payload: GenerateKeyRequest,
    settings: Settings = Depends(get_settings),
    key_cache: TemporaryKeyCache = Depends(get_key_cache),
) -> GenerateKeyResponse:
    """Generate a P-256 authorization key pair.

    The private key is returned exactly once. When `wallet_id` is given it is
    also cached for a short time so the wallet's auth config can be saved
    without sending the key back.
    """
    encoding = payload.encoding or settings.key_encoding
    key = generate_keypair(encoding)

    cached_for = None
    if payload.wallet_id:
        key_cache.store(payload.wallet_id, key.private_key_pem, key.private_key_token)
        cached_for = settings.temp_key_ttl_seconds

    return GenerateKeyResponse(
        private_key_pem=key.private_key_pem,
        public_key_pem=key.public_key_pem,
        private_key_token=key.private_key_token,
        encoding=key.encoding,
        cached_for_seconds=cached_for,
    )


@router.post("/pem", response_model=TokenToPemResponse)
async def convert_token_to_pem(
    payload: TokenToPemRequest, settings: Settings = Depends(get_settings)
) -> TokenToPemResponse:
    encoding = payload.encoding or settings.key_encoding
    return TokenToPemResponse(
        private_key_pem=token_to_pem(payload.private_key_token, encoding), encoding=encoding
    )
