# tests/test_signature.py
from app.auth.signature import canonicalize, verify, verify_callback
import hmac, hashlib

SECRET = "hush"

def _sign(message: str, secret: str = SECRET) -> str:
    return hmac.new(secret.encode(), message.encode(), hashlib.sha256).hexdigest()

def test_canonicalize_drops_signature_fields_and_sorts():
    q = {"state": "abc", "hmac": "x", "code": "c0de", "signature": "y", "shop": "foo.myshopify.com"}
    assert canonicalize(q) == "code=c0de&shop=foo.myshopify.com&state=abc"

def test_canonicalize_independent_of_order():
    a = {"shop": "foo.myshopify.com", "code": "1", "timestamp": "1700000000", "host": "Zm9v"}
    b = dict(reversed(list(a.items())))
    assert list(a) != list(b)
    assert canonicalize(a) == canonicalize(b)

def test_canonicalize_percent_encodes_like_querystring():
    assert canonicalize({"b": "x y", "a": "1&2"}) == "a=1%262&b=x%20y"
    assert canonicalize({"a": "x y", "b": "it's(*)!"}) == "a=x%20y&b=it's(*)!"

def test_canonicalize_keeps_every_value_of_a_repeated_key():
    pairs = [("ids", "2"), ("hmac", "x"), ("code", "c"), ("ids", "1")]
    assert canonicalize(pairs) == "code=c&ids=2&ids=1"

def test_verify_ok():
    msg = "code=1&shop=foo.myshopify.com"
    assert verify(SECRET, msg, _sign(msg))

def test_verify_rejects_flipped_digest_bit():
    msg = "code=1&shop=foo.myshopify.com"
    good = _sign(msg)
    flipped = format(int(good, 16) ^ 1, "064x")
    assert not verify(SECRET, msg, flipped)

def test_verify_rejects_mutated_value():
    msg = "code=1&shop=foo.myshopify.com"
    assert not verify(SECRET, "code=2&shop=foo.myshopify.com", _sign(msg))

def test_verify_length_or_type_mismatch_is_false():
    assert not verify(SECRET, "a=1", "short")
    assert not verify(SECRET, "a=1", "é" * 64)
    assert not verify(SECRET, "a=1", None)

def test_verify_callback():
    q = {"shop": "foo.myshopify.com", "code": "1", "state": "s", "timestamp": "1"}
    q["hmac"] = _sign(canonicalize(q))
    assert verify_callback(q, SECRET)
    assert not verify_callback(q, "other-secret")
    del q["hmac"]
    assert not verify_callback(q, SECRET)

def test_verify_callback_signs_repeated_keys():
    pairs = [("shop", "foo.myshopify.com"), ("ids", "1"), ("ids", "2")]
    signed = pairs + [("hmac", _sign("ids=1&ids=2&shop=foo.myshopify.com"))]
    assert verify_callback(signed, SECRET)
    # dropping one of the repeated values breaks the signature
    assert not verify_callback(dict(signed), SECRET)
