from __future__ import annotations

from typing import Any


class KrakenError(RuntimeError):
    """Base class for every failure a client call can raise."""


class TransportError(KrakenError):
    def __init__(self, *, method: str, url: str, cause: BaseException) -> None:
        super().__init__(f"Transport error: {method} {url}: {cause!r}")
        self.method = method
        self.url = url
        self.cause = cause


class SigningError(KrakenError):
    pass


class MalformedResponse(KrakenError):
    def __init__(self, *, body: bytes, reason: str) -> None:
        super().__init__(f"Malformed response: {reason} body={body[:200]!r}")
        self.body = body
        self.reason = reason


class UnexpectedShape(KrakenError):
    pass


class FieldParseError(KrakenError):
    def __init__(self, *, field: str, value: Any) -> None:
        super().__init__(f"Cannot parse field {field!r}: value={value!r}")
        self.field = field
        self.value = value


class ApiError(KrakenError):
    def __init__(self, messages: list[str]) -> None:
        super().__init__(f"Kraken API error: {'; '.join(messages)}")
        self.messages = list(messages)
