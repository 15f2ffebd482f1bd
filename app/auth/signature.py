# app/auth/signature.py
import hmac, hashlib, urllib.parse
from typing import Iterable, Mapping

SIGNATURE_FIELDS = ("hmac", "signature")

Params = Mapping[str, str] | Iterable[tuple[str, str]]

def _pairs(params: Params) -> list[tuple[str, str]]:
    return list(params.items()) if isinstance(params, Mapping) else list(params)

def canonicalize(params: Params) -> str:
    """
    Shopify signs all query params except the signature fields themselves.
    Remaining keys are sorted by code point (repeated keys keep their order)
    and percent-encoded as one query string: spaces become %20 and !'()* are
    left as-is.
    """
    items = sorted(((k, v) for k, v in _pairs(params) if k not in SIGNATURE_FIELDS),
                   key=lambda kv: kv[0])
    return urllib.parse.urlencode(items, quote_via=urllib.parse.quote, safe="!'()*")

def verify(secret: str, canonical: str, provided: str) -> bool:
    digest = hmac.new(secret.encode("utf-8"), canonical.encode("utf-8"), hashlib.sha256).hexdigest()
    try:
        # Timing-safe compare
        return hmac.compare_digest(digest.encode("utf-8"), provided.encode("utf-8"))
    except Exception:
        return False

def verify_callback(params: Params, secret: str) -> bool:
    pairs = _pairs(params)
    provided = next((v for k, v in pairs if k == "hmac"), None)
    if not provided:
        return False
    return verify(secret, canonicalize(pairs), provided)
