"""P-256 authorization key generation and encoding.

A private key travels in one of three shapes: PKCS8 PEM ("PRIVATE KEY"),
SEC1 PEM ("EC PRIVATE KEY"), or a compact token "wallet-auth:<base64 DER>".
Which of PKCS8 and SEC1 is produced is a KeyEncoding choice, applied to the
PEM and the token alike; both are accepted on input.
"""

from __future__ import annotations

import base64
import binascii
import enum
from dataclasses import dataclass

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from walletauth.service_errors import KeyFormatError

TOKEN_PREFIX = "wallet-auth:"
_PEM_LINE_WIDTH = 64


class KeyEncoding(str, enum.Enum):
    PKCS8 = "pkcs8"
    SEC1 = "sec1"

    @property
    def pem_label(self) -> str:
        return "PRIVATE KEY" if self is KeyEncoding.PKCS8 else "EC PRIVATE KEY"

    @property
    def private_format(self) -> serialization.PrivateFormat:
        if self is KeyEncoding.PKCS8:
            return serialization.PrivateFormat.PKCS8
        return serialization.PrivateFormat.TraditionalOpenSSL


@dataclass(frozen=True)
class GeneratedAuthKey:
    private_key_pem: str
    public_key_pem: str
    private_key_token: str
    encoding: KeyEncoding


def generate_keypair(encoding: KeyEncoding = KeyEncoding.PKCS8) -> GeneratedAuthKey:
    """Generate a fresh P-256 key pair.

    The private key is returned as PEM and as a wallet-auth token, both in the
    requested encoding; the public key is SubjectPublicKeyInfo PEM.
    """
    private_key = ec.generate_private_key(ec.SECP256R1())
    return GeneratedAuthKey(
        private_key_pem=private_key_to_pem(private_key, encoding),
        public_key_pem=public_key_to_pem(private_key.public_key()),
        private_key_token=private_key_to_token(private_key, encoding),
        encoding=encoding,
    )


def private_key_to_pem(
    private_key: ec.EllipticCurvePrivateKey, encoding: KeyEncoding = KeyEncoding.PKCS8
) -> str:
    return armor_pem(_private_der(private_key, encoding), encoding.pem_label)


def private_key_to_token(
    private_key: ec.EllipticCurvePrivateKey, encoding: KeyEncoding = KeyEncoding.PKCS8
) -> str:
    return TOKEN_PREFIX + base64.b64encode(_private_der(private_key, encoding)).decode("ascii")


def public_key_to_pem(public_key: ec.EllipticCurvePublicKey) -> str:
    return public_key.public_bytes(
        serialization.Encoding.PEM, serialization.PublicFormat.SubjectPublicKeyInfo
    ).decode("ascii")


def token_to_pem(token: str, encoding: KeyEncoding = KeyEncoding.PKCS8) -> str:
    """Rebuild a PEM private key from a wallet-auth token.

    The token's DER may be PKCS8 or SEC1; the output is always in `encoding`
    so callers never see a mix of the two.
    """
    private_key = load_private_key(token)
    return private_key_to_pem(private_key, encoding)


def pem_to_token(pem: str, encoding: KeyEncoding = KeyEncoding.PKCS8) -> str:
    return private_key_to_token(load_private_key(pem), encoding)


def armor_pem(der: bytes, label: str) -> str:
    """Wrap DER bytes in PEM armor with 64-character base64 lines."""
    encoded = base64.b64encode(der).decode("ascii")
    body = "\n".join(
        encoded[i : i + _PEM_LINE_WIDTH] for i in range(0, len(encoded), _PEM_LINE_WIDTH)
    )
    return f"-----BEGIN {label}-----\n{body}\n-----END {label}-----\n"


def load_private_key(material: str | bytes) -> ec.EllipticCurvePrivateKey:
    """Parse a P-256 private key from PEM (PKCS8 or SEC1) or a wallet-auth token.

    A bare base64 DER string (token without its prefix) is accepted too.
    Raises KeyFormatError on anything else, including keys on other curves.
    """
    if isinstance(material, bytes):
        try:
            material = material.decode("ascii")
        except UnicodeDecodeError as e:
            raise KeyFormatError("Key material must be ASCII PEM or a wallet-auth token") from e

    # Env vars and JSON often carry PEM with escaped newlines.
    text = material.strip().replace("\\n", "\n")
    if not text:
        raise KeyFormatError("Key material is empty")

    try:
        if text.startswith("-----BEGIN"):
            key = serialization.load_pem_private_key(text.encode("ascii"), password=None)
        else:
            key = serialization.load_der_private_key(_decode_token(text), password=None)
    except KeyFormatError:
        raise
    except (ValueError, TypeError, UnicodeEncodeError) as e:
        raise KeyFormatError(f"Unable to parse private key: {e}") from e

    return require_p256(key)


def require_p256(key: object) -> ec.EllipticCurvePrivateKey:
    """Return `key` if it is a P-256 private key, else raise KeyFormatError."""
    if not isinstance(key, ec.EllipticCurvePrivateKey):
        raise KeyFormatError(f"Expected an EC private key, got {type(key).__name__}")
    if not isinstance(key.curve, ec.SECP256R1):
        raise KeyFormatError(f"Expected a P-256 key, got curve {key.curve.name}")
    return key


def load_public_key(pem: str | bytes) -> ec.EllipticCurvePublicKey:
    """Parse a SubjectPublicKeyInfo PEM public key on P-256."""
    try:
        data = pem.encode("ascii") if isinstance(pem, str) else pem
        key = serialization.load_pem_public_key(data.strip().replace(b"\\n", b"\n"))
    except (ValueError, TypeError, UnicodeEncodeError) as e:
        raise KeyFormatError(f"Unable to parse public key: {e}") from e
    if not isinstance(key, ec.EllipticCurvePublicKey) or not isinstance(key.curve, ec.SECP256R1):
        raise KeyFormatError("Expected a P-256 public key")
    return key


def _decode_token(token: str) -> bytes:
    if token.startswith(TOKEN_PREFIX):
        token = token[len(TOKEN_PREFIX) :]
    try:
        return base64.b64decode("".join(token.split()), validate=True)
    except (binascii.Error, ValueError) as e:
        raise KeyFormatError(f"Invalid base64 in wallet-auth token: {e}") from e


def _private_der(private_key: ec.EllipticCurvePrivateKey, encoding: KeyEncoding) -> bytes:
    return private_key.private_bytes(
        serialization.Encoding.DER, encoding.private_format, serialization.NoEncryption()
    )
