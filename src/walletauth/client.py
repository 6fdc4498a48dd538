from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import httpx
from cryptography.hazmat.primitives.asymmetric import ec

from walletauth.authorization import authorization_headers, generate_authorization_signature
from walletauth.canonical import canonicalize
from walletauth.payload import (
    APP_ID_HEADER,
    DEFAULT_API_URL,
    DEFAULT_CAIP2,
    SigningPayload,
    Transaction,
    build_rpc_body,
    wallet_rpc_url,
)
from walletauth.service_errors import UpstreamError
from walletauth.signing import SignerBackend

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PrivyClient:
    """Minimal wallet RPC client that signs every request it sends."""

    app_id: str
    app_secret: str
    base_url: str = DEFAULT_API_URL
    timeout_seconds: float = 10.0
    transport: httpx.AsyncBaseTransport | None = None
    backend: SignerBackend | None = None

    async def _post_signed(self, url: str, body: dict[str, Any], private_key: ec.EllipticCurvePrivateKey | str) -> dict:
        payload = SigningPayload(url=url, body=body, headers={APP_ID_HEADER: self.app_id})
        signature = generate_authorization_signature(payload, private_key, self.backend)
        headers = authorization_headers(self.app_id, self.app_secret, signature)

        # Send exactly the bytes that were signed so no serializer can reorder them.
        content = canonicalize(body)
        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds, transport=self.transport) as client:
                resp = await client.post(url, headers=headers, content=content)
        except httpx.HTTPError as e:
            raise UpstreamError(f"Wallet API request failed: {e}") from e

        if resp.status_code >= 300:
            detail = None
            try:
                error_body = resp.json()
            except ValueError:
                error_body = None
            if isinstance(error_body, dict):
                detail = error_body.get("error") or error_body.get("message")
            logger.warning("Wallet API %s returned %d", url, resp.status_code)
            raise UpstreamError(detail or resp.text, upstream_status=resp.status_code)

        try:
            return resp.json()
        except ValueError as e:
            raise UpstreamError(
                "Wallet API returned a non-JSON response", upstream_status=resp.status_code
            ) from e

    async def rpc(
        self,
        wallet_id: str,
        body: dict[str, Any],
        private_key: ec.EllipticCurvePrivateKey | str,
    ) -> dict:
        return await self._post_signed(wallet_rpc_url(wallet_id, self.base_url), body, private_key)

    async def send_transaction(
        self,
        wallet_id: str,
        transaction: Transaction | dict[str, Any],
        private_key: ec.EllipticCurvePrivateKey | str,
        *,
        caip2: str = DEFAULT_CAIP2,
        sponsor: bool = True,
    ) -> dict:
        body = build_rpc_body(transaction, caip2=caip2, sponsor=sponsor)
        return await self.rpc(wallet_id, body.model_dump(mode="json"), private_key)
