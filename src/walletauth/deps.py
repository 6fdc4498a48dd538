from __future__ import annotations

from fastapi import Request

from walletauth.client import PrivyClient
from walletauth.config import Settings
from walletauth.registry import AuthConfigStore, WalletOwnershipRegistry
from walletauth.service_errors import ServiceUnavailableError
from walletauth.session_cache import TemporaryKeyCache


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_auth_store(request: Request) -> AuthConfigStore:
    """Return the authorization-config store from `app.state`.

    Any object implementing `AuthConfigStore` works here; the default is the
    in-memory store created by `create_app()`.
    """
    return request.app.state.auth_store


def get_ownership(request: Request) -> WalletOwnershipRegistry:
    return request.app.state.ownership


def get_key_cache(request: Request) -> TemporaryKeyCache:
    return request.app.state.key_cache


def get_privy_client(request: Request) -> PrivyClient:
    settings: Settings = request.app.state.settings
    if not settings.privy_app_id or not settings.privy_app_secret:
        raise ServiceUnavailableError("PRIVY_APP_ID and PRIVY_APP_SECRET must be set to send transactions")
    return PrivyClient(
        app_id=settings.privy_app_id,
        app_secret=settings.privy_app_secret,
        base_url=settings.privy_api_url,
        transport=request.app.state.wallet_transport,
    )
