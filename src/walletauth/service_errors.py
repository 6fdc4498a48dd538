"""Domain exceptions for walletauth.

The signing engine and the service layers raise these instead of
fastapi.HTTPException so they remain transport-agnostic. The REST layer
registers an exception handler that converts them to HTTP responses; the CLI
prints the detail and exits non-zero.
"""

from __future__ import annotations


class ServiceError(Exception):
    """Base for all walletauth errors. Carries a status code and detail string."""

    status_code: int = 500

    def __init__(self, detail: str = "Internal service error") -> None:
        self.detail = detail
        super().__init__(detail)


class NotFoundError(ServiceError):
    status_code: int = 404

    def __init__(self, detail: str = "Not found") -> None:
        super().__init__(detail)


class ValidationError(ServiceError):
    status_code: int = 422

    def __init__(self, detail: str = "Validation error") -> None:
        super().__init__(detail)


class ConflictError(ServiceError):
    status_code: int = 409

    def __init__(self, detail: str = "Conflict") -> None:
        super().__init__(detail)


class BadRequestError(ServiceError):
    status_code: int = 400

    def __init__(self, detail: str = "Bad request") -> None:
        super().__init__(detail)


class ServiceUnavailableError(ServiceError):
    status_code: int = 503

    def __init__(self, detail: str = "Service unavailable") -> None:
        super().__init__(detail)


class UpstreamError(ServiceError):
    """The wallet service answered with an error, or could not be reached."""

    status_code: int = 502

    def __init__(self, detail: str = "Upstream error", upstream_status: int | None = None) -> None:
        self.upstream_status = upstream_status
        super().__init__(detail)


# Signature engine failures. None of these are retried: the inputs are
# deterministic, so a retry would fail the same way.


class SignatureEngineError(ServiceError):
    status_code: int = 500

    def __init__(self, detail: str = "Signature engine error") -> None:
        super().__init__(detail)


class EncodingError(SignatureEngineError):
    """The payload cannot be canonicalized (non-JSON value, cycle, unsafe number)."""

    status_code: int = 422

    def __init__(self, detail: str = "Payload is not canonicalizable") -> None:
        super().__init__(detail)


class KeyFormatError(SignatureEngineError):
    """Key material is malformed, on the wrong curve, or wrongly encoded."""

    status_code: int = 400

    def __init__(self, detail: str = "Invalid key material") -> None:
        super().__init__(detail)


class SigningError(SignatureEngineError):
    status_code: int = 500

    def __init__(self, detail: str = "Signing failed") -> None:
        super().__init__(detail)


class InvalidSignatureLength(SignatureEngineError):
    """A P1363 signature was not 64 bytes, or a DER signature did not parse."""

    status_code: int = 400

    def __init__(self, detail: str = "Invalid signature encoding") -> None:
        super().__init__(detail)
