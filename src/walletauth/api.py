"""walletauth FastAPI application entrypoint."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from walletauth.config import Settings, get_settings
from walletauth.custody import get_custody_key
from walletauth.registry import AuthConfigStore, InMemoryAuthConfigStore, WalletOwnershipRegistry
from walletauth.routes.auth_configs import router as auth_configs_router
from walletauth.routes.keys import router as keys_router
from walletauth.routes.signatures import router as signatures_router
from walletauth.routes.transactions import router as transactions_router
from walletauth.routes.wallets import router as wallets_router
from walletauth.service_errors import ServiceError
from walletauth.session_cache import TemporaryKeyCache

logger = logging.getLogger(__name__)


def include_walletauth_routers(app: FastAPI) -> None:
    """Install walletauth routers into an existing FastAPI app."""
    app.include_router(keys_router)
    app.include_router(signatures_router)
    app.include_router(auth_configs_router)
    app.include_router(wallets_router)
    app.include_router(transactions_router)


def create_app(
    *,
    settings: Optional[Settings] = None,
    auth_store: Optional[AuthConfigStore] = None,
    ownership: Optional[WalletOwnershipRegistry] = None,
    wallet_transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """Create a walletauth FastAPI app.

    Stores passed in are used as-is (library mode); otherwise in-memory ones
    are created at startup and dropped at shutdown. `wallet_transport` replaces
    the HTTP transport used to reach the wallet API.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        resolved = settings or get_settings()
        app.state.settings = resolved

        if auth_store is None:
            master_key = get_custody_key()
            if master_key is None:
                logger.warning("WALLETAUTH_CUSTODY_KEY not set; authorization keys are held unencrypted in memory")
            app.state.auth_store = InMemoryAuthConfigStore(master_key=master_key)
        else:
            app.state.auth_store = auth_store

        app.state.ownership = ownership if ownership is not None else WalletOwnershipRegistry()
        app.state.key_cache = TemporaryKeyCache(ttl_seconds=resolved.temp_key_ttl_seconds)
        app.state.wallet_transport = wallet_transport

        yield

        app.state.key_cache.clear_all()

    app = FastAPI(title="walletauth", version="0.1.0", lifespan=lifespan)

    @app.get("/health", tags=["internal"])
    async def health(_: Request) -> dict:
        return {"status": "ok", "mode": "library" if auth_store is not None else "standalone"}

    # Convert domain errors to HTTP responses so routes don't need
    # try/except around every service call.
    @app.exception_handler(ServiceError)
    async def _service_error_handler(_: Request, exc: ServiceError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})

    include_walletauth_routers(app)
    return app
