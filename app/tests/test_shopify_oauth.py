# tests/test_shopify_oauth.py
import json
import urllib.parse

import pytest
import requests

from app.auth import shopify_oauth
from app.auth.errors import UpstreamExchangeError, to_json
from app.config import Settings

settings = Settings(_env_file=None, SHOPIFY_API_KEY="key", SHOPIFY_API_SECRET="secret",
                    SHOPIFY_SCOPES="read_orders,write_orders", APP_URL="https://app.example.com/")

def _resp(status: int, content: bytes) -> requests.Response:
    r = requests.Response()
    r.status_code = status
    r._content = content
    return r

def test_nonce_is_long_and_unique():
    a, b = shopify_oauth._nonce(), shopify_oauth._nonce()
    assert len(a) >= 32 and a != b

def test_install_url():
    url = shopify_oauth.build_install_url(settings, "foo.myshopify.com", "st4te")
    parts = urllib.parse.urlparse(url)
    assert parts.netloc == "foo.myshopify.com"
    assert parts.path == "/admin/oauth/authorize"
    assert urllib.parse.parse_qs(parts.query) == {
        "client_id": ["key"],
        "scope": ["read_orders,write_orders"],
        "redirect_uri": ["https://app.example.com/auth/callback"],
        "state": ["st4te"],
        "shop": ["foo.myshopify.com"],
    }

def test_exchange_without_access_token(monkeypatch):
    monkeypatch.setattr(shopify_oauth.requests, "post",
                        lambda *a, **kw: _resp(200, json.dumps({"scope": "x"}).encode()))
    with pytest.raises(UpstreamExchangeError) as e:
        shopify_oauth.exchange_token(settings, "foo.myshopify.com", "c")
    assert e.value.status_code == 500
    assert e.value.error == {"scope": "x"}

def test_exchange_non_json_error_body(monkeypatch):
    monkeypatch.setattr(shopify_oauth.requests, "post",
                        lambda *a, **kw: _resp(503, b"<html>down</html>"))
    with pytest.raises(UpstreamExchangeError) as e:
        shopify_oauth.exchange_token(settings, "foo.myshopify.com", "c")
    body = to_json(e.value)
    assert body["status_code"] == 503
    assert body["error"] == "<html>down</html>"
    assert body["type"] == "error"
