# app/auth/shopify_oauth.py
import secrets, urllib.parse, requests
from ..config import Settings
from ..utils.logging import logger
from .errors import UpstreamExchangeError

def _nonce() -> str:
    return secrets.token_urlsafe(24)

def build_install_url(settings: Settings, shop: str, state: str) -> str:
    """
    Offline access: DO NOT include grant_options[]=per-user
    """
    base = f"https://{shop}/admin/oauth/authorize"
    params = {
        "client_id": settings.SHOPIFY_API_KEY,
        "scope": settings.SHOPIFY_SCOPES,
        "redirect_uri": settings.redirect_uri,
        "state": state,
        "shop": shop,
    }
    return f"{base}?{urllib.parse.urlencode(params)}"

def _body(r: requests.Response):
    try:
        return r.json()
    except ValueError:
        return r.text

def _raise_for_upstream(r: requests.Response, what: str) -> None:
    try:
        r.raise_for_status()
    except requests.HTTPError as e:
        logger.error("%s failed: HTTP %s\nURL: %s\nBody:\n%s",
                     what, r.status_code, r.url, (r.text or "")[:1000])
        raise UpstreamExchangeError(str(e), status_code=r.status_code, body=_body(r)) from e

def exchange_token(settings: Settings, shop: str, code: str) -> dict:
    """
    POST /admin/oauth/access_token to get offline token.
    (Offline tokens don't expire; no refresh.)
    """
    url = f"https://{shop}/admin/oauth/access_token"
    payload = {
        "grant_type": "authorization_code",
        "client_id": settings.SHOPIFY_API_KEY,
        "client_secret": settings.SHOPIFY_API_SECRET.get_secret_value(),
        "code": code,
        "redirect_uri": settings.redirect_uri,
    }
    try:
        r = requests.post(url, json=payload, timeout=settings.HTTP_TIMEOUT_SECONDS)
    except requests.RequestException as e:
        logger.error("Token exchange for %s failed: %s", shop, e)
        raise UpstreamExchangeError(f"Token exchange failed: {e}") from e

    _raise_for_upstream(r, "Token exchange")
    data = _body(r)
    if not isinstance(data, dict) or not data.get("access_token"):
        raise UpstreamExchangeError("No access token returned", body=data)
    return data  # {access_token, scope}

def fetch_shop(settings: Settings, shop: str, access_token: str) -> dict:
    """Read-only smoke test of a freshly issued token."""
    url = f"https://{shop}/admin/api/{settings.SHOPIFY_API_VERSION}/shop.json"
    headers = {"X-Shopify-Access-Token": access_token, "Accept": "application/json"}
    try:
        r = requests.get(url, headers=headers, timeout=settings.HTTP_TIMEOUT_SECONDS)
    except requests.RequestException as e:
        logger.error("Shop lookup for %s failed: %s", shop, e)
        raise UpstreamExchangeError(f"Shop lookup failed: {e}") from e

    _raise_for_upstream(r, "Shop lookup")
    return _body(r)
