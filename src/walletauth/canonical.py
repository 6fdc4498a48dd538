"""Canonical JSON serialization for authorization signatures.

Produces the byte string that both the signer and the verifying wallet
service hash: object keys sorted in code point order, no whitespace, literal
UTF-8 (no \\uXXXX escapes for non-ASCII), and numbers rendered the way
ECMAScript renders them so the output matches JSON canonicalization (RFC 8785)
on the verifier side.

Integers outside the IEEE-754 safe range are rejected. On-chain amounts (wei)
must be carried as decimal strings.
"""

from __future__ import annotations

import json
import math
from typing import Union

from walletauth.service_errors import EncodingError

JsonScalar = Union[None, bool, int, float, str]
JsonValue = Union[JsonScalar, list["JsonValue"], tuple["JsonValue", ...], dict[str, "JsonValue"]]

MAX_SAFE_INTEGER = 2**53 - 1


def canonicalize(value: JsonValue) -> bytes:
    """Serialize a JSON value tree to canonical UTF-8 bytes.

    Raises EncodingError for anything that is not JSON-representable: unknown
    types, non-string object keys, cycles, NaN/Infinity, unsafe integers and
    strings containing lone surrogates.
    """
    text = canonical_json(value)
    try:
        return text.encode("utf-8")
    except UnicodeEncodeError as e:
        raise EncodingError(f"String is not valid Unicode: {e.reason}") from e


def canonical_json(value: JsonValue) -> str:
    parts: list[str] = []
    _emit(value, parts, set())
    return "".join(parts)


def _emit(value: JsonValue, out: list[str], active: set[int]) -> None:
    # bool before int: bool is an int subclass
    if value is None:
        out.append("null")
    elif value is True:
        out.append("true")
    elif value is False:
        out.append("false")
    elif isinstance(value, int):
        out.append(_render_int(value))
    elif isinstance(value, float):
        out.append(_render_float(value))
    elif isinstance(value, str):
        out.append(_render_string(value))
    elif isinstance(value, (list, tuple)):
        _enter(value, active)
        out.append("[")
        for i, item in enumerate(value):
            if i:
                out.append(",")
            _emit(item, out, active)
        out.append("]")
        active.discard(id(value))
    elif isinstance(value, dict):
        _enter(value, active)
        for key in value:
            if not isinstance(key, str):
                raise EncodingError(f"Object keys must be strings, got {type(key).__name__}")
        out.append("{")
        for i, key in enumerate(sorted(value)):
            if i:
                out.append(",")
            out.append(_render_string(key))
            out.append(":")
            _emit(value[key], out, active)
        out.append("}")
        active.discard(id(value))
    else:
        raise EncodingError(f"Value of type {type(value).__name__} is not JSON-representable")


def _enter(container: object, active: set[int]) -> None:
    marker = id(container)
    if marker in active:
        raise EncodingError("Cyclic reference in payload")
    active.add(marker)


def _render_string(value: str) -> str:
    return json.dumps(value, ensure_ascii=False)


def _render_int(value: int) -> str:
    if abs(value) > MAX_SAFE_INTEGER:
        raise EncodingError(
            f"Integer {value} exceeds the safe range (2^53 - 1); encode it as a string"
        )
    return str(value)


def _render_float(value: float) -> str:
    """Render a float like ECMAScript Number.prototype.toString."""
    if math.isnan(value) or math.isinf(value):
        raise EncodingError("NaN and Infinity are not JSON-representable")
    if value == 0:
        return "0"
    sign = "-" if value < 0 else ""

    # repr gives the shortest round-trip digits; re-position the decimal point.
    mantissa, _, exp = repr(abs(value)).partition("e")
    int_part, _, frac_part = mantissa.partition(".")
    all_digits = int_part + frac_part
    point = len(int_part) + int(exp or 0)
    stripped = all_digits.lstrip("0")
    point -= len(all_digits) - len(stripped)
    digits = stripped.rstrip("0")
    k = len(digits)
    n = point

    if k <= n <= 21:
        return sign + digits + "0" * (n - k)
    if 0 < n <= 21:
        return sign + digits[:n] + "." + digits[n:]
    if -6 < n <= 0:
        return sign + "0." + "0" * (-n) + digits
    e = n - 1
    exp_str = f"e+{e}" if e >= 0 else f"e-{-e}"
    if k == 1:
        return sign + digits + exp_str
    return sign + digits[0] + "." + digits[1:] + exp_str
