from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict, Field

from walletauth.deps import get_ownership
from walletauth.registry import WalletOwnershipRecord, WalletOwnershipRegistry
from walletauth.service_errors import NotFoundError

router = APIRouter(prefix="/v1/wallets", tags=["walletauth-wallets"])


class RegisterOwnerRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    wallet_address: str = Field(..., min_length=1, max_length=128)
    creator_address: str = Field(..., min_length=1, max_length=128)
    agent_id: str = Field(default="", max_length=256)


@router.post("/{wallet_id}/owner", response_model=WalletOwnershipRecord)
async def register_owner(
    wallet_id: str,
    payload: RegisterOwnerRequest,
    ownership: WalletOwnershipRegistry = Depends(get_ownership),
) -> WalletOwnershipRecord:
    return ownership.register(
        WalletOwnershipRecord(
            wallet_id=wallet_id,
            wallet_address=payload.wallet_address,
            creator_address=payload.creator_address,
            agent_id=payload.agent_id,
        )
    )


@router.get("/{wallet_id}/owner", response_model=WalletOwnershipRecord)
async def get_owner(
    wallet_id: str, ownership: WalletOwnershipRegistry = Depends(get_ownership)
) -> WalletOwnershipRecord:
    record = ownership.get(wallet_id)
    if record is None:
        raise NotFoundError(f"Wallet {wallet_id} is not registered")
    return record


@router.get("/{wallet_id}/ownership")
async def check_ownership(
    wallet_id: str,
    creator: str = Query(..., min_length=1, max_length=128),
    ownership: WalletOwnershipRegistry = Depends(get_ownership),
) -> dict:
    return {"wallet_id": wallet_id, "owned": ownership.is_owned_by(wallet_id, creator)}


@router.get("")
async def list_wallets(
    creator: str | None = Query(default=None, max_length=128),
    ownership: WalletOwnershipRegistry = Depends(get_ownership),
) -> dict:
    records = ownership.wallets_by_creator(creator) if creator else ownership.list()
    return {"wallets": [r.model_dump(mode="json") for r in records]}
