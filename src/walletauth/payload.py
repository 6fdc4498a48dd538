"""Typed request payloads for wallet RPC authorization signatures.

The signed payload mirrors the HTTP request the wallet service receives:

    {"version": 1, "method": "POST", "url": ".../v1/wallets/<id>/rpc",
     "body": {...rpc body...}, "headers": {"privy-app-id": "<app id>"}}

Field order never matters; canonicalization sorts keys.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from walletauth.canonical import canonicalize

DEFAULT_API_URL = "https://api.privy.io"
DEFAULT_CAIP2 = "eip155:84532"
APP_ID_HEADER = "privy-app-id"
PAYLOAD_VERSION = 1


class Transaction(BaseModel):
    """An EVM transaction request. Amounts are decimal or hex strings, never numbers."""

    model_config = ConfigDict(extra="allow", frozen=True)

    to: str = Field(..., min_length=1)
    data: str = "0x"
    value: str = "0"

    @field_validator("value", mode="before")
    @classmethod
    def _value_as_string(cls, v: Any) -> Any:
        # bool is an int subclass and is never a valid amount
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v


class RpcParams(BaseModel):
    model_config = ConfigDict(frozen=True)

    transaction: Transaction


class RpcBody(BaseModel):
    model_config = ConfigDict(frozen=True)

    method: str = "eth_sendTransaction"
    caip2: str = DEFAULT_CAIP2
    chain_type: str = "ethereum"
    sponsor: bool = True
    params: RpcParams


class SigningPayload(BaseModel):
    """The request description that gets canonicalized and signed."""

    model_config = ConfigDict(frozen=True)

    version: int = PAYLOAD_VERSION
    method: str = "POST"
    url: str = Field(..., min_length=1)
    body: dict[str, Any]
    headers: dict[str, str] = Field(default_factory=dict)

    def to_json(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "method": self.method,
            "url": self.url,
            "body": self.body,
            "headers": dict(self.headers),
        }

    def canonical_bytes(self) -> bytes:
        return canonicalize(self.to_json())


def wallet_rpc_url(wallet_id: str, api_url: str = DEFAULT_API_URL) -> str:
    return f"{api_url.rstrip('/')}/v1/wallets/{wallet_id}/rpc"


def build_rpc_body(
    transaction: Transaction | dict[str, Any],
    *,
    caip2: str = DEFAULT_CAIP2,
    sponsor: bool = True,
    method: str = "eth_sendTransaction",
    chain_type: str = "ethereum",
) -> RpcBody:
    if not isinstance(transaction, Transaction):
        transaction = Transaction.model_validate(transaction)
    return RpcBody(
        method=method,
        caip2=caip2,
        chain_type=chain_type,
        sponsor=sponsor,
        params=RpcParams(transaction=transaction),
    )


def build_rpc_payload(
    wallet_id: str,
    transaction: Transaction | dict[str, Any],
    *,
    app_id: str,
    caip2: str = DEFAULT_CAIP2,
    api_url: str = DEFAULT_API_URL,
    sponsor: bool = True,
) -> SigningPayload:
    """Build the signing payload for an eth_sendTransaction wallet RPC call."""
    body = build_rpc_body(transaction, caip2=caip2, sponsor=sponsor)
    return SigningPayload(
        url=wallet_rpc_url(wallet_id, api_url),
        body=body.model_dump(mode="json"),
        headers={APP_ID_HEADER: app_id},
    )
