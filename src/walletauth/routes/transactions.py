from __future__ import annotations

import dataclasses
import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict

from walletauth.client import PrivyClient
from walletauth.config import Settings
from walletauth.deps import get_auth_store, get_privy_client, get_settings
from walletauth.payload import Transaction
from walletauth.registry import AuthConfigStore
from walletauth.service_errors import NotFoundError
from walletauth.signing import get_backend

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/wallets", tags=["walletauth-transactions"])


class SendTransactionRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    transaction: Transaction
    caip2: Optional[str] = None
    sponsor: bool = True
    backend: Optional[str] = None


class SendTransactionResponse(BaseModel):
    wallet_id: str
    key_quorum_id: Optional[str] = None
    result: Any


@router.post("/{wallet_id}/transactions", response_model=SendTransactionResponse)
async def send_transaction(
    wallet_id: str,
    req: SendTransactionRequest,
    settings: Settings = Depends(get_settings),
    store: AuthConfigStore = Depends(get_auth_store),
    client: PrivyClient = Depends(get_privy_client),
) -> SendTransactionResponse:
    """Sign an eth_sendTransaction with the wallet's registered key and submit it."""
    config = store.get(wallet_id)
    if config is None:
        raise NotFoundError(f"No authorization config for wallet {wallet_id}")

    client = dataclasses.replace(client, backend=get_backend(req.backend))
    result = await client.send_transaction(
        wallet_id,
        req.transaction,
        config.private_key_token,
        caip2=req.caip2 or settings.default_caip2,
        sponsor=req.sponsor,
    )
    logger.info("Submitted transaction for wallet %s", wallet_id)
    return SendTransactionResponse(
        wallet_id=wallet_id, key_quorum_id=config.key_quorum_id or None, result=result
    )
