"""ECDSA P-256 signature encodings: IEEE P1363 (raw r || s) and ASN.1 DER.

Web Crypto style backends emit P1363, OpenSSL style backends emit DER, and
the wallet service only accepts DER. Conversion is exact in both directions.

Only single-byte DER lengths are supported; for P-256 an INTEGER is at most
33 bytes and the SEQUENCE at most 72.
"""

from __future__ import annotations

from dataclasses import dataclass

from walletauth.service_errors import InvalidSignatureLength

COORDINATE_SIZE = 32
P1363_SIGNATURE_SIZE = 2 * COORDINATE_SIZE

_TAG_SEQUENCE = 0x30
_TAG_INTEGER = 0x02
_HIGH_BIT = 0x80


@dataclass(frozen=True)
class Signature:
    """An ECDSA signature as its two integers."""

    r: int
    s: int

    def __post_init__(self) -> None:
        limit = 1 << (8 * COORDINATE_SIZE)
        for name, value in (("r", self.r), ("s", self.s)):
            if not 0 <= value < limit:
                raise InvalidSignatureLength(f"Signature {name} does not fit in {COORDINATE_SIZE} bytes")

    @classmethod
    def from_p1363(cls, raw: bytes) -> "Signature":
        if len(raw) != P1363_SIGNATURE_SIZE:
            raise InvalidSignatureLength(
                f"P1363 signature must be {P1363_SIGNATURE_SIZE} bytes, got {len(raw)}"
            )
        return cls(
            r=int.from_bytes(raw[:COORDINATE_SIZE], "big"),
            s=int.from_bytes(raw[COORDINATE_SIZE:], "big"),
        )

    @classmethod
    def from_der(cls, der: bytes) -> "Signature":
        r_bytes, s_bytes = _parse_der(der)
        return cls(r=int.from_bytes(r_bytes, "big"), s=int.from_bytes(s_bytes, "big"))

    def to_p1363(self) -> bytes:
        return self.r.to_bytes(COORDINATE_SIZE, "big") + self.s.to_bytes(COORDINATE_SIZE, "big")

    def to_der(self) -> bytes:
        return p1363_to_der(self.to_p1363())


def p1363_to_der(raw: bytes) -> bytes:
    """Convert a 64-byte r || s signature to DER SEQUENCE { INTEGER r, INTEGER s }."""
    if len(raw) != P1363_SIGNATURE_SIZE:
        raise InvalidSignatureLength(
            f"P1363 signature must be {P1363_SIGNATURE_SIZE} bytes, got {len(raw)}"
        )
    r = _encode_integer(raw[:COORDINATE_SIZE])
    s = _encode_integer(raw[COORDINATE_SIZE:])
    return bytes([_TAG_SEQUENCE, len(r) + len(s)]) + r + s


def der_to_p1363(der: bytes) -> bytes:
    """Convert a DER ECDSA signature to 64-byte r || s."""
    r_bytes, s_bytes = _parse_der(der)
    return r_bytes.rjust(COORDINATE_SIZE, b"\x00") + s_bytes.rjust(COORDINATE_SIZE, b"\x00")


def _encode_integer(value: bytes) -> bytes:
    # Minimal non-negative big-endian: drop 0x00 while the next byte keeps the sign bit clear.
    start = 0
    while start < len(value) - 1 and value[start] == 0 and not value[start + 1] & _HIGH_BIT:
        start += 1
    body = value[start:]
    if body[0] & _HIGH_BIT:
        body = b"\x00" + body
    return bytes([_TAG_INTEGER, len(body)]) + body


def _parse_der(der: bytes) -> tuple[bytes, bytes]:
    """Return the unsigned big-endian value bytes of r and s (leading zeros stripped)."""
    if len(der) < 2 or der[0] != _TAG_SEQUENCE:
        raise InvalidSignatureLength("DER signature must start with a SEQUENCE")
    seq_len = der[1]
    if seq_len & _HIGH_BIT:
        raise InvalidSignatureLength("DER signature uses an unsupported long-form length")
    if seq_len != len(der) - 2:
        raise InvalidSignatureLength(
            f"DER SEQUENCE length {seq_len} does not match {len(der) - 2} content bytes"
        )
    r, offset = _read_integer(der, 2)
    s, offset = _read_integer(der, offset)
    if offset != len(der):
        raise InvalidSignatureLength("Trailing bytes after DER signature integers")
    return r, s


def _read_integer(der: bytes, offset: int) -> tuple[bytes, int]:
    if offset + 2 > len(der) or der[offset] != _TAG_INTEGER:
        raise InvalidSignatureLength("Expected a DER INTEGER")
    length = der[offset + 1]
    if length == 0 or length & _HIGH_BIT:
        raise InvalidSignatureLength(f"Invalid DER INTEGER length {length}")
    start = offset + 2
    end = start + length
    if end > len(der):
        raise InvalidSignatureLength("DER INTEGER runs past the end of the signature")
    value = der[start:end]
    if value[0] & _HIGH_BIT:
        raise InvalidSignatureLength("DER INTEGER is negative")
    if length > 1 and value[0] == 0 and not value[1] & _HIGH_BIT:
        raise InvalidSignatureLength("DER INTEGER is not minimally encoded")
    if value[0] == 0 and length > 1:
        value = value[1:]
    if len(value) > COORDINATE_SIZE:
        raise InvalidSignatureLength(
            f"DER INTEGER has {len(value)} value bytes, more than {COORDINATE_SIZE}"
        )
    return value, end
