# app/auth/errors.py
from typing import Any

class HandshakeError(Exception):
    """
    Base for every failure that terminates an install handshake.
    `status_code` is the HTTP status the request is answered with.
    """
    status_code: int = 500
    message: str = "Internal error"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.message)
        self.message = message or self.message

class MissingParameters(HandshakeError):
    status_code = 400
    message = "Required parameters missing"

class InvalidTenant(HandshakeError):
    status_code = 403
    message = (
        "Missing shop parameter. Please add "
        "?shop=your-development-shop.myshopify.com to your request"
    )

class MissingSignatureParameter(HandshakeError):
    status_code = 403
    message = "Missing hmac parameter"

class OriginUnverifiable(HandshakeError):
    status_code = 403
    message = "Request origin cannot be verified"

class SignatureInvalid(HandshakeError):
    status_code = 403
    message = "HMAC validation failed"

class UpstreamExchangeError(HandshakeError):
    """Token endpoint or sanity call failed; carries what the platform answered."""

    def __init__(self, message: str, status_code: int | None = None, body: Any = None):
        super().__init__(message)
        self.status_code = status_code or 500
        self.error = body

class StoreError(HandshakeError):
    """State persistence unavailable."""

    def __init__(self, message: str, backend: str):
        super().__init__(message)
        self.backend = backend

def to_json(error: BaseException) -> dict:
    """
    Serialize an exception for the response body: every public attribute
    plus name/message and a `type: "error"` marker.
    """
    out: dict[str, Any] = {"type": "error", "name": type(error).__name__, "message": str(error)}
    for k, v in vars(error).items():
        if not k.startswith("_"):
            out[k] = v if isinstance(v, (str, int, float, bool, dict, list, type(None))) else repr(v)
    return out
