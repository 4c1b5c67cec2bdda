__all__ = [
    "ApiError",
    "FieldParseError",
    "KrakenError",
    "KrakenSpotClient",
    "MalformedResponse",
    "MarketStream",
    "NonceGenerator",
    "SigningError",
    "TransportError",
    "UnexpectedShape",
]

from richy.exchange.errors import (
    ApiError,
    FieldParseError,
    KrakenError,
    MalformedResponse,
    SigningError,
    TransportError,
    UnexpectedShape,
)
from richy.exchange.kraken_spot import KrakenSpotClient
from richy.exchange.nonce import NonceGenerator
from richy.exchange.streaming import MarketStream
