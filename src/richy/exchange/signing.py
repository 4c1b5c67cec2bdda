from __future__ import annotations

import base64
import binascii
import hmac
from decimal import Decimal
from hashlib import sha256, sha512
from typing import Any, Mapping
from urllib.parse import urlencode

from richy.exchange.errors import SigningError


def _normalize_value(value: Any) -> str:
    if isinstance(value, Decimal):
        return format(value, "f")
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def encode_params(params: Mapping[str, Any]) -> str:
    """Form-encode ``params`` with keys sorted and ``None`` values dropped."""
    items: list[tuple[str, str]] = []
    for key in sorted(params.keys()):
        value = params[key]
        if value is None:
            continue
        items.append((key, _normalize_value(value)))
    return urlencode(items)


def build_post_body(nonce: int | str, params: Mapping[str, Any]) -> str:
    if "nonce" in params:
        raise ValueError("nonce is assigned by the client and must not be passed as a parameter")
    head = urlencode([("nonce", str(nonce))])
    rest = encode_params(params)
    return f"{head}&{rest}" if rest else head


def decode_secret(api_secret: str) -> bytes:
    try:
        return base64.b64decode(api_secret, validate=True)
    except (binascii.Error, ValueError) as e:
        raise SigningError("InvalidSecret: API secret is not valid base64") from e


def sign_request(*, path: str, nonce: int | str, post_body: str, api_secret: str) -> str:
    """Compute the ``API-Sign`` header value.

    ``base64(HMAC-SHA512(b64decode(secret), path + SHA256(nonce + post_body)))``
    where the SHA256 digest is appended as raw bytes.
    """
    key = decode_secret(api_secret)
    digest = sha256((str(nonce) + post_body).encode("utf-8")).digest()
    mac = hmac.new(key, path.encode("utf-8") + digest, sha512)
    return base64.b64encode(mac.digest()).decode("ascii")
