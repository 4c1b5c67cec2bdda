import base64
import hmac
from decimal import Decimal
from hashlib import sha256, sha512

import pytest

from richy.exchange.errors import SigningError
from richy.exchange.signing import build_post_body, decode_secret, encode_params, sign_request

_PATH = "/0/private/AddOrder"
_NONCE = "1616492376594"
_BODY = "nonce=1616492376594&pair=XBTUSD&type=buy&ordertype=market&volume=0.001"


def test_sign_request_matches_published_example() -> None:
    secret = (
        "kQH5HW/8p1uGOVjbgWA7FunAmGO8lsSUXNsu3eow76sz84Q18fWxnyRzBHCd3pd5nE9qa99HAZtuZuj6F1huXg=="
    )
    body = build_post_body(
        1616492376594,
        {
            "ordertype": "limit",
            "pair": "XBTUSD",
            "price": 37500,
            "type": "buy",
            "volume": Decimal("1.25"),
        },
    )
    assert body == (
        "nonce=1616492376594&ordertype=limit&pair=XBTUSD&price=37500&type=buy&volume=1.25"
    )
    assert sign_request(path=_PATH, nonce=1616492376594, post_body=body, api_secret=secret) == (
        "4/dpxb3iT4tp/ZCVEwSnEsLxx0bqyhLpdfOpc6fn7OR8+UClSV5n9E6aSS8MPtnRfp32bAb0nmbRn6H8ndwLUQ=="
    )


def test_sign_request_matches_manual_construction() -> None:
    digest = sha256((_NONCE + _BODY).encode("utf-8")).digest()
    expected = base64.b64encode(hmac.new(b"key", _PATH.encode() + digest, sha512).digest()).decode()
    assert sign_request(path=_PATH, nonce=_NONCE, post_body=_BODY, api_secret="a2V5") == expected


def test_sign_request_is_deterministic() -> None:
    first = sign_request(path=_PATH, nonce=_NONCE, post_body=_BODY, api_secret="a2V5")
    second = sign_request(path=_PATH, nonce=_NONCE, post_body=_BODY, api_secret="a2V5")
    assert first == second
    assert len(base64.b64decode(first)) == 64


def test_sign_request_changes_with_every_input() -> None:
    baseline = sign_request(path=_PATH, nonce=_NONCE, post_body=_BODY, api_secret="a2V5")
    variants = [
        sign_request(
            path=_PATH,
            nonce=_NONCE,
            post_body=_BODY.replace("volume=0.001", "volume=0.002"),
            api_secret="a2V5",
        ),
        sign_request(path=_PATH, nonce="1616492376595", post_body=_BODY, api_secret="a2V5"),
        sign_request(
            path="/0/private/CancelOrder", nonce=_NONCE, post_body=_BODY, api_secret="a2V5"
        ),
        sign_request(path=_PATH, nonce=_NONCE, post_body=_BODY, api_secret="a2V6"),
    ]
    assert baseline not in variants
    assert len(set(variants)) == len(variants)


def test_decode_secret_round_trip() -> None:
    raw = bytes(range(64))
    assert decode_secret(base64.b64encode(raw).decode("ascii")) == raw
    assert decode_secret("a2V5") == b"key"


@pytest.mark.parametrize("secret", ["not base64!", "a2V", "a2V5é"])
def test_decode_secret_rejects_invalid_base64(secret: str) -> None:
    with pytest.raises(SigningError):
        decode_secret(secret)


def test_sign_request_with_invalid_secret_raises_signing_error() -> None:
    with pytest.raises(SigningError):
        sign_request(path=_PATH, nonce=_NONCE, post_body=_BODY, api_secret="%%%")


def test_encode_params_sorts_keys_and_drops_none() -> None:
    assert encode_params({"type": "buy", "pair": "XBTUSD", "price": None}) == "pair=XBTUSD&type=buy"


def test_encode_params_percent_encodes_reserved_characters() -> None:
    encoded = encode_params({"userref": "a&b=c", "oflags": "fciq,post", "note": "café bar"})
    assert encoded == "note=caf%C3%A9+bar&oflags=fciq%2Cpost&userref=a%26b%3Dc"


def test_encode_params_formats_decimal_and_bool() -> None:
    encoded = encode_params({"volume": Decimal("1E-3"), "validate": True})
    assert encoded == "validate=true&volume=0.001"


def test_build_post_body_puts_nonce_first() -> None:
    assert build_post_body(42, {"b": "2", "a": "1"}) == "nonce=42&a=1&b=2"
    assert build_post_body(42, {}) == "nonce=42"


def test_build_post_body_rejects_caller_nonce() -> None:
    with pytest.raises(ValueError):
        build_post_body(42, {"nonce": "1"})
