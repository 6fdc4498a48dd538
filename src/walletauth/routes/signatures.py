from __future__ import annotations

import base64
import binascii
from typing import Any, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from walletauth.authorization import (
    AUTHORIZATION_SIGNATURE_HEADER,
    VerifyResult,
    generate_authorization_signature,
    payload_bytes,
    verify_authorization_signature,
)
from walletauth.config import Settings
from walletauth.custody import sign_on_behalf
from walletauth.deps import get_auth_store, get_settings
from walletauth.der import der_to_p1363, p1363_to_der
from walletauth.payload import SigningPayload, Transaction, build_rpc_payload
from walletauth.registry import AuthConfigStore
from walletauth.service_errors import BadRequestError
from walletauth.signing import SignatureFormat, get_backend

router = APIRouter(prefix="/v1/signatures", tags=["walletauth-signatures"])


class SignRequest(BaseModel):
    """Either a raw `payload`, or a `wallet_id` + `transaction` to build the RPC payload from.

    The key is `private_key` (PEM or wallet-auth token) or, when omitted, the
    authorization key registered for `wallet_id`.
    """

    model_config = ConfigDict(extra="forbid")

    payload: Optional[dict[str, Any]] = None
    wallet_id: Optional[str] = Field(default=None, min_length=1, max_length=256)
    transaction: Optional[Transaction] = None
    caip2: Optional[str] = None
    sponsor: bool = True
    private_key: Optional[str] = Field(default=None, min_length=1, repr=False)
    backend: Optional[str] = None


class SignResponse(BaseModel):
    signature: str
    header: str = AUTHORIZATION_SIGNATURE_HEADER
    canonical_payload: str
    backend: str
    key_quorum_id: Optional[str] = None


class VerifyRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    payload: dict[str, Any]
    signature: str
    public_key_pem: str


class VerifyResponse(BaseModel):
    result: VerifyResult


class ConvertRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    signature: str = Field(..., min_length=1)
    from_format: SignatureFormat


class ConvertResponse(BaseModel):
    signature: str
    format: SignatureFormat


def _resolve_payload(req: SignRequest, settings: Settings) -> SigningPayload | dict[str, Any]:
    if req.payload is not None:
        if req.transaction is not None:
            raise BadRequestError("Provide either payload or transaction, not both")
        return req.payload
    if req.transaction is None or not req.wallet_id:
        raise BadRequestError("Provide a payload, or a wallet_id with a transaction")
    return build_rpc_payload(
        req.wallet_id,
        req.transaction,
        app_id=settings.privy_app_id,
        caip2=req.caip2 or settings.default_caip2,
        api_url=settings.privy_api_url,
        sponsor=req.sponsor,
    )


@router.post("", response_model=SignResponse)
async def create_signature(
    req: SignRequest,
    settings: Settings = Depends(get_settings),
    store: AuthConfigStore = Depends(get_auth_store),
) -> SignResponse:
    backend = get_backend(req.backend)
    payload = _resolve_payload(req, settings)
    canonical = payload_bytes(payload).decode("utf-8")

    key_quorum_id = None
    if req.private_key:
        signature = generate_authorization_signature(payload, req.private_key, backend)
    elif req.wallet_id:
        signature, key_quorum_id = sign_on_behalf(req.wallet_id, payload, store, backend)
    else:
        raise BadRequestError("Provide private_key or the wallet_id of a registered wallet")

    return SignResponse(
        signature=signature,
        canonical_payload=canonical,
        backend=backend.name,
        key_quorum_id=key_quorum_id or None,
    )


@router.post("/verify", response_model=VerifyResponse)
async def verify_signature(req: VerifyRequest) -> VerifyResponse:
    return VerifyResponse(
        result=verify_authorization_signature(req.payload, req.signature, req.public_key_pem)
    )


@router.post("/convert", response_model=ConvertResponse)
async def convert_signature(req: ConvertRequest) -> ConvertResponse:
    """Convert a base64 signature between IEEE P1363 and DER."""
    try:
        raw = base64.b64decode(req.signature, validate=True)
    except (binascii.Error, ValueError):
        raise BadRequestError("signature must be base64")

    if req.from_format is SignatureFormat.P1363:
        converted, target = p1363_to_der(raw), SignatureFormat.DER
    else:
        converted, target = der_to_p1363(raw), SignatureFormat.P1363
    return ConvertResponse(signature=base64.b64encode(converted).decode("ascii"), format=target)
