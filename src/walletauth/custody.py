"""Encrypted key storage and server-side signing for registered wallets.

AES-256-GCM encryption with a master key from the WALLETAUTH_CUSTODY_KEY env
var. When the env var is not set, authorization keys are held in memory
unencrypted; they are never written to disk either way.
"""

from __future__ import annotations

import logging
import os
import secrets
from typing import TYPE_CHECKING

from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from walletauth.authorization import generate_authorization_signature
from walletauth.canonical import JsonValue
from walletauth.payload import SigningPayload
from walletauth.service_errors import NotFoundError
from walletauth.signing import SignerBackend

if TYPE_CHECKING:
    from walletauth.registry import AuthConfigStore

logger = logging.getLogger(__name__)

CUSTODY_KEY_ENV = "WALLETAUTH_CUSTODY_KEY"
_AES_KEY_LEN = 32
_NONCE_LEN = 12  # AES-256-GCM standard nonce length


def _cipher(master_key: bytes) -> AESGCM:
    if len(master_key) != _AES_KEY_LEN:
        raise ValueError(f"Master key must be {_AES_KEY_LEN} bytes, got {len(master_key)}")
    return AESGCM(master_key)


def encrypt_private_key(private_key: bytes, master_key: bytes) -> bytes:
    """Seal key material as nonce || AES-256-GCM ciphertext+tag."""
    nonce = secrets.token_bytes(_NONCE_LEN)
    return nonce + _cipher(master_key).encrypt(nonce, private_key, None)


def decrypt_private_key(encrypted: bytes, master_key: bytes) -> bytes:
    """Open key material sealed by encrypt_private_key.

    Raises cryptography.exceptions.InvalidTag for a wrong key or tampered data.
    """
    return _cipher(master_key).decrypt(encrypted[:_NONCE_LEN], encrypted[_NONCE_LEN:], None)


def get_custody_key() -> bytes | None:
    """Read the custody master key from WALLETAUTH_CUSTODY_KEY.

    Returns None if not set or empty. Raises ValueError if set but invalid.
    """
    key_hex = os.environ.get(CUSTODY_KEY_ENV, "")
    if not key_hex:
        return None
    try:
        key_bytes = bytes.fromhex(key_hex)
    except ValueError:
        raise ValueError(f"{CUSTODY_KEY_ENV} must be a hex-encoded 32 bytes")
    if len(key_bytes) != _AES_KEY_LEN:
        raise ValueError(
            f"{CUSTODY_KEY_ENV} must be 32 bytes (64 hex chars), got {len(key_bytes)} bytes"
        )
    return key_bytes


def sign_on_behalf(
    wallet_id: str,
    payload: SigningPayload | JsonValue,
    store: "AuthConfigStore",
    backend: SignerBackend | None = None,
) -> tuple[str, str]:
    """Sign a payload with the authorization key registered for a wallet.

    Returns (signature, key_quorum_id). Raises NotFoundError if the wallet has
    no authorization config.
    """
    config = store.get(wallet_id)
    if config is None:
        raise NotFoundError(f"No authorization config for wallet {wallet_id}")
    signature = generate_authorization_signature(payload, config.private_key_token, backend)
    logger.info("Signed wallet RPC for %s with key quorum %s", wallet_id, config.key_quorum_id or "-")
    return signature, config.key_quorum_id
