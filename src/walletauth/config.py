from __future__ import annotations

import os
from dataclasses import dataclass

from walletauth.keys import KeyEncoding
from walletauth.payload import DEFAULT_API_URL, DEFAULT_CAIP2

DEFAULT_TEMP_KEY_TTL_SECONDS = 15 * 60


@dataclass
class Settings:
    host: str
    port: int
    log_level: str
    reload: bool
    privy_app_id: str
    privy_app_secret: str
    privy_api_url: str
    default_caip2: str
    key_encoding: KeyEncoding
    temp_key_ttl_seconds: int


def _int_env(name: str, default: str) -> int:
    raw = os.getenv(name, default)
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be a valid integer, got '{raw}'")


def get_settings() -> Settings:
    encoding_str = os.getenv("WALLETAUTH_KEY_ENCODING", KeyEncoding.PKCS8.value).strip().lower()
    try:
        key_encoding = KeyEncoding(encoding_str)
    except ValueError:
        raise ValueError(
            f"WALLETAUTH_KEY_ENCODING must be one of "
            f"{', '.join(e.value for e in KeyEncoding)}, got '{encoding_str}'"
        )

    return Settings(
        host=os.getenv("WALLETAUTH_HOST", "0.0.0.0"),
        port=_int_env("WALLETAUTH_PORT", "8002"),
        log_level=os.getenv("WALLETAUTH_LOG_LEVEL", "info"),
        reload=os.getenv("WALLETAUTH_RELOAD", "false").lower() == "true",
        privy_app_id=os.getenv("PRIVY_APP_ID", ""),
        privy_app_secret=os.getenv("PRIVY_APP_SECRET", ""),
        privy_api_url=os.getenv("PRIVY_API_URL", DEFAULT_API_URL),
        default_caip2=os.getenv("WALLETAUTH_DEFAULT_CAIP2", DEFAULT_CAIP2),
        key_encoding=key_encoding,
        temp_key_ttl_seconds=_int_env(
            "WALLETAUTH_TEMP_KEY_TTL_SECONDS", str(DEFAULT_TEMP_KEY_TTL_SECONDS)
        ),
    )
