from __future__ import annotations

from typing import Callable, Literal, Protocol, runtime_checkable

from richy.exchange.models import OrderBook, Ticker, Trade

Channel = Literal["ticker", "book", "trade", "ownTrades"]

TickerCallback = Callable[[Ticker], None]
OrderBookCallback = Callable[[OrderBook], None]
TradeCallback = Callable[[Trade], None]


@runtime_checkable
class MarketStream(Protocol):
    """Push-based market data, kept apart from the request/response client.

    ``KrakenSpotClient`` never depends on an implementation of this protocol;
    a WebSocket transport plugs in here without touching the REST pipeline.
    """

    async def connect(self) -> None: ...

    async def disconnect(self) -> None: ...

    async def subscribe(self, channel: Channel, pairs: list[str]) -> None: ...

    async def unsubscribe(self, channel: Channel, pairs: list[str]) -> None: ...

    def on_ticker(self, callback: TickerCallback) -> None: ...

    def on_order_book(self, callback: OrderBookCallback) -> None: ...

    def on_trade(self, callback: TradeCallback) -> None: ...
