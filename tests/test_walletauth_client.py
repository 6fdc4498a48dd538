"""Tests for walletauth.client: signed wallet RPC requests."""

from __future__ import annotations

import base64
import json

import httpx
import pytest

from walletauth.authorization import VerifyResult, verify_authorization_signature
from walletauth.canonical import canonicalize
from walletauth.client import PrivyClient
from walletauth.service_errors import UpstreamError

BASE_URL = "https://api.example.com"


def _client(handler, **kwargs) -> PrivyClient:
    return PrivyClient(
        app_id="app123",
        app_secret="secret",
        base_url=BASE_URL,
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


class TestSendTransaction:
    @pytest.mark.asyncio
    async def test_request_is_signed(self, auth_key, make_rpc_payload):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"data": {"hash": "0xdead"}})

        result = await _client(handler).send_transaction(
            "w1", {"to": "0xabc0000000000000000000000000000000000001"}, auth_key.private_key_token
        )
        assert result == {"data": {"hash": "0xdead"}}

        (request,) = seen
        assert str(request.url) == f"{BASE_URL}/v1/wallets/w1/rpc"
        assert request.headers["privy-app-id"] == "app123"
        assert request.headers["authorization"] == "Basic " + base64.b64encode(b"app123:secret").decode()

        expected = make_rpc_payload()
        assert request.content == canonicalize(expected["body"])
        assert json.loads(request.content) == expected["body"]

        signature = request.headers["privy-authorization-signature"]
        assert verify_authorization_signature(expected, signature, auth_key.public_key_pem) == VerifyResult.VERIFIED

    @pytest.mark.asyncio
    async def test_pycryptodome_backend(self, auth_key, make_rpc_payload):
        from walletauth.signing import PycryptodomeBackend

        captured = {}

        def handler(request: httpx.Request) -> httpx.Response:
            captured["signature"] = request.headers["privy-authorization-signature"]
            return httpx.Response(200, json={})

        await _client(handler, backend=PycryptodomeBackend()).send_transaction(
            "w1", {"to": "0xabc0000000000000000000000000000000000001"}, auth_key.private_key_pem
        )
        result = verify_authorization_signature(make_rpc_payload(), captured["signature"], auth_key.public_key_pem)
        assert result == VerifyResult.VERIFIED


class TestErrors:
    @pytest.mark.asyncio
    async def test_error_status_raises_upstream_error(self, auth_key):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(401, json={"error": "Invalid authorization signature"})

        with pytest.raises(UpstreamError, match="Invalid authorization signature") as exc_info:
            await _client(handler).rpc("w1", {"method": "eth_sendTransaction"}, auth_key.private_key_pem)
        assert exc_info.value.upstream_status == 401
        assert exc_info.value.status_code == 502

    @pytest.mark.asyncio
    async def test_non_json_error_body(self, auth_key):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, text="boom")

        with pytest.raises(UpstreamError, match="boom"):
            await _client(handler).rpc("w1", {}, auth_key.private_key_pem)

    @pytest.mark.asyncio
    async def test_transport_error(self, auth_key):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(UpstreamError, match="connection refused"):
            await _client(handler).rpc("w1", {}, auth_key.private_key_pem)

    @pytest.mark.asyncio
    async def test_non_json_success_body(self, auth_key):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="ok")

        with pytest.raises(UpstreamError, match="non-JSON") as exc_info:
            await _client(handler).rpc("w1", {}, auth_key.private_key_pem)
        assert exc_info.value.upstream_status == 200
