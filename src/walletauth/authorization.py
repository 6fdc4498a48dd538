"""Authorization signatures for wallet RPC requests.

canonicalize(payload) -> ECDSA P-256 / SHA-256 -> DER -> base64. The result
travels in the `privy-authorization-signature` header next to the request
body; the wallet service re-canonicalizes what it receives and verifies.
"""

from __future__ import annotations

import base64
import binascii
import enum
import logging

from cryptography.hazmat.primitives.asymmetric import ec

from walletauth.canonical import JsonValue, canonicalize
from walletauth.der import Signature
from walletauth.keys import load_public_key
from walletauth.payload import APP_ID_HEADER, SigningPayload
from walletauth.service_errors import InvalidSignatureLength, KeyFormatError
from walletauth.signing import SignerBackend, sign, verify

logger = logging.getLogger(__name__)

AUTHORIZATION_SIGNATURE_HEADER = "privy-authorization-signature"


class VerifyResult(enum.Enum):
    VERIFIED = "verified"
    UNVERIFIED = "unverified"
    FAILED = "failed"


def payload_bytes(payload: SigningPayload | JsonValue) -> bytes:
    if isinstance(payload, SigningPayload):
        return payload.canonical_bytes()
    return canonicalize(payload)


def generate_authorization_signature(
    payload: SigningPayload | JsonValue,
    private_key: ec.EllipticCurvePrivateKey | str,
    backend: SignerBackend | None = None,
) -> str:
    """Sign a payload and return the base64 DER signature.

    Raises EncodingError, KeyFormatError or SigningError; never returns a
    partial or unverifiable signature.
    """
    data = payload_bytes(payload)
    der = sign(data, private_key, backend).to_der()
    logger.debug("Authorization signature over %d canonical bytes (DER %d bytes)", len(data), len(der))
    return base64.b64encode(der).decode("ascii")


def verify_authorization_signature(
    payload: SigningPayload | JsonValue,
    signature_b64: str | None,
    public_key: ec.EllipticCurvePublicKey | str | None,
) -> VerifyResult:
    """Verify a base64 DER authorization signature.

    Returns UNVERIFIED if the signature or public key is missing or unusable.
    Returns FAILED if the signature is malformed or doesn't match.
    Returns VERIFIED if the signature is valid.
    """
    if not signature_b64 or not public_key:
        return VerifyResult.UNVERIFIED

    if not isinstance(public_key, ec.EllipticCurvePublicKey):
        try:
            public_key = load_public_key(public_key)
        except KeyFormatError:
            return VerifyResult.UNVERIFIED

    data = payload_bytes(payload)

    try:
        signature = Signature.from_der(base64.b64decode(signature_b64, validate=True))
    except (binascii.Error, ValueError, InvalidSignatureLength):
        return VerifyResult.FAILED

    if verify(data, signature, public_key):
        return VerifyResult.VERIFIED
    return VerifyResult.FAILED


def authorization_headers(app_id: str, app_secret: str, signature: str) -> dict[str, str]:
    """HTTP headers for an authorized wallet API call."""
    basic = base64.b64encode(f"{app_id}:{app_secret}".encode("utf-8")).decode("ascii")
    return {
        "Authorization": f"Basic {basic}",
        APP_ID_HEADER: app_id,
        AUTHORIZATION_SIGNATURE_HEADER: signature,
        "Content-Type": "application/json",
    }
