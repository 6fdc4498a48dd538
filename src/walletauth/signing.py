"""ECDSA P-256 / SHA-256 signing and verification over canonical bytes.

Signing is delegated to a backend. Backends disagree on the format they
return: `cryptography` (OpenSSL) returns DER, `pycryptodome` in binary mode
returns IEEE P1363 like Web Crypto does. Every backend declares its native
format and the result is normalized into a Signature, so callers never depend
on which backend produced it.
"""

from __future__ import annotations

import enum
import logging
from typing import Protocol

from Crypto.Hash import SHA256
from Crypto.PublicKey import ECC
from Crypto.Signature import DSS
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec

from walletauth.der import Signature
from walletauth.keys import load_private_key, load_public_key, require_p256
from walletauth.service_errors import SigningError, ValidationError

logger = logging.getLogger(__name__)


class SignatureFormat(str, enum.Enum):
    DER = "der"
    P1363 = "p1363"


class SignerBackend(Protocol):
    name: str
    native_format: SignatureFormat

    def sign(self, private_key: ec.EllipticCurvePrivateKey, data: bytes) -> bytes:
        """Sign `data` (SHA-256 is applied by the backend) and return native-format bytes."""
        ...


class CryptographyBackend:
    name = "cryptography"
    native_format = SignatureFormat.DER

    def sign(self, private_key: ec.EllipticCurvePrivateKey, data: bytes) -> bytes:
        return private_key.sign(data, ec.ECDSA(hashes.SHA256()))


class PycryptodomeBackend:
    name = "pycryptodome"
    native_format = SignatureFormat.P1363

    def sign(self, private_key: ec.EllipticCurvePrivateKey, data: bytes) -> bytes:
        der = private_key.private_bytes(
            serialization.Encoding.DER,
            serialization.PrivateFormat.PKCS8,
            serialization.NoEncryption(),
        )
        signer = DSS.new(ECC.import_key(der), "fips-186-3", encoding="binary")
        return signer.sign(SHA256.new(data))


BACKENDS: dict[str, SignerBackend] = {
    CryptographyBackend.name: CryptographyBackend(),
    PycryptodomeBackend.name: PycryptodomeBackend(),
}
DEFAULT_BACKEND = CryptographyBackend.name


def get_backend(name: str | None = None) -> SignerBackend:
    backend = BACKENDS.get(name or DEFAULT_BACKEND)
    if backend is None:
        raise ValidationError(f"Unknown signer backend '{name}'. Choose one of: {', '.join(sorted(BACKENDS))}")
    return backend


def sign(
    data: bytes,
    private_key: ec.EllipticCurvePrivateKey | str,
    backend: SignerBackend | None = None,
) -> Signature:
    """Sign canonical bytes with a P-256 key.

    `private_key` may be a loaded key or any material load_private_key accepts.
    Raises KeyFormatError for unusable keys and SigningError when the
    primitive fails.
    """
    if isinstance(private_key, ec.EllipticCurvePrivateKey):
        private_key = require_p256(private_key)
    else:
        private_key = load_private_key(private_key)
    backend = backend or get_backend()

    try:
        raw = backend.sign(private_key, data)
    except Exception as e:
        raise SigningError(f"{backend.name} failed to sign: {e}") from e

    logger.debug(
        "Signed %d bytes with %s backend (%s, %d bytes)",
        len(data),
        backend.name,
        backend.native_format.value,
        len(raw),
    )
    if backend.native_format is SignatureFormat.DER:
        return Signature.from_der(raw)
    return Signature.from_p1363(raw)


def verify(
    data: bytes,
    signature: Signature,
    public_key: ec.EllipticCurvePublicKey | str,
) -> bool:
    """Check an ECDSA P-256 / SHA-256 signature. Returns False on mismatch."""
    if not isinstance(public_key, ec.EllipticCurvePublicKey):
        public_key = load_public_key(public_key)
    try:
        public_key.verify(signature.to_der(), data, ec.ECDSA(hashes.SHA256()))
    except InvalidSignature:
        return False
    return True
