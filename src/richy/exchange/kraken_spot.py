from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Literal, Mapping, Optional

import httpx

from richy.exchange.errors import (
    ApiError,
    KrakenError,
    MalformedResponse,
    SigningError,
    TransportError,
)
from richy.exchange.models import (
    AssetPair,
    Balance,
    OhlcBar,
    Order,
    OrderAck,
    OrderBook,
    ServerTime,
    SystemStatus,
    Ticker,
    Trade,
    parse_asset_info,
    parse_asset_pairs,
    parse_balances,
    parse_cancel_count,
    parse_ohlc,
    parse_open_orders,
    parse_order_ack,
    parse_order_book,
    parse_recent_trades,
    parse_server_time,
    parse_system_status,
    parse_ticker,
    parse_tickers,
    unwrap_result,
)
from richy.exchange.nonce import NonceGenerator
from richy.exchange.signing import build_post_body, encode_params, sign_request
from richy.types import OrderRequest, OrderType, Side

PRODUCTION_BASE_URL = "https://api.kraken.com"
SANDBOX_BASE_URL = "https://api.demo.kraken.com"
DEFAULT_USER_AGENT = "richy/0.1"

_DEFAULT_TIMEOUT_SECONDS = 30.0
_FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"

logger = logging.getLogger("richy.kraken")


@dataclass(frozen=True)
class Endpoint:
    path: str
    private: bool
    method: Literal["GET", "POST"]


TIME = Endpoint("/0/public/Time", private=False, method="GET")
SYSTEM_STATUS = Endpoint("/0/public/SystemStatus", private=False, method="GET")
ASSETS = Endpoint("/0/public/Assets", private=False, method="GET")
ASSET_PAIRS = Endpoint("/0/public/AssetPairs", private=False, method="GET")
TICKER = Endpoint("/0/public/Ticker", private=False, method="GET")
DEPTH = Endpoint("/0/public/Depth", private=False, method="GET")
TRADES = Endpoint("/0/public/Trades", private=False, method="GET")
OHLC = Endpoint("/0/public/OHLC", private=False, method="GET")
BALANCE = Endpoint("/0/private/Balance", private=True, method="POST")
ADD_ORDER = Endpoint("/0/private/AddOrder", private=True, method="POST")
CANCEL_ORDER = Endpoint("/0/private/CancelOrder", private=True, method="POST")
OPEN_ORDERS = Endpoint("/0/private/OpenOrders", private=True, method="POST")


@dataclass(frozen=True)
class Credentials:
    api_key: str
    api_secret: str

    def present(self) -> bool:
        return bool(self.api_key and self.api_secret)


@dataclass(frozen=True)
class PreparedRequest:
    method: str
    url: str
    path: str
    headers: dict[str, str]
    body: Optional[str] = None
    nonce: Optional[int] = None


class KrakenSpotClient:
    def __init__(
        self,
        *,
        api_key: str = "",
        api_secret: str = "",
        base_url: str = PRODUCTION_BASE_URL,
        sandbox: bool = False,
        timeout_seconds: float = _DEFAULT_TIMEOUT_SECONDS,
        user_agent: str = DEFAULT_USER_AGENT,
        nonce_generator: NonceGenerator | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._credentials = Credentials(api_key=api_key, api_secret=api_secret)
        self._production_base_url = base_url.rstrip("/")
        self._base_url = SANDBOX_BASE_URL if sandbox else self._production_base_url
        self._user_agent = user_agent
        self._nonces = nonce_generator or NonceGenerator()
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(timeout_seconds),
            transport=transport,
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    def set_credentials(self, api_key: str, api_secret: str) -> None:
        # Requests already built keep the credentials they were signed with.
        self._credentials = Credentials(api_key=api_key, api_secret=api_secret)

    def set_sandbox_mode(self, enabled: bool) -> None:
        self._base_url = SANDBOX_BASE_URL if enabled else self._production_base_url

    async def aclose(self) -> None:
        await self._client.aclose()

    # ----- request pipeline -----

    def build_request(self, endpoint: Endpoint, params: Mapping[str, Any]) -> PreparedRequest:
        url = f"{self._base_url}{endpoint.path}"
        headers = {"Content-Type": _FORM_CONTENT_TYPE, "User-Agent": self._user_agent}

        if not endpoint.private:
            encoded = encode_params(params)
            if endpoint.method == "GET":
                if encoded:
                    url = f"{url}?{encoded}"
                return PreparedRequest(method="GET", url=url, path=endpoint.path, headers=headers)
            return PreparedRequest(
                method="POST",
                url=url,
                path=endpoint.path,
                headers=headers,
                body=encoded,
            )

        credentials = self._credentials
        if not credentials.present():
            raise SigningError("API credentials not set")
        nonce = self._nonces.next()
        body = build_post_body(nonce, params)
        headers["API-Key"] = credentials.api_key
        headers["API-Sign"] = sign_request(
            path=endpoint.path,
            nonce=nonce,
            post_body=body,
            api_secret=credentials.api_secret,
        )
        return PreparedRequest(
            method="POST",
            url=url,
            path=endpoint.path,
            headers=headers,
            body=body,
            nonce=nonce,
        )

    async def dispatch(self, request: PreparedRequest, *, timeout: float | None = None) -> bytes:
        """Send ``request`` and return the raw body whatever the HTTP status."""
        kwargs: dict[str, Any] = {}
        if timeout is not None:
            kwargs["timeout"] = httpx.Timeout(timeout)
        logger.debug("kraken_request", extra={"path": request.path, "nonce": request.nonce})
        try:
            response = await self._client.request(
                request.method,
                request.url,
                headers=request.headers,
                content=request.body,
                **kwargs,
            )
        except httpx.DecodingError as e:
            logger.warning(
                "kraken_decoding_error",
                extra={"path": request.path, "error": repr(e)},
            )
            raise MalformedResponse(body=b"", reason=f"undecodable body: {e}") from e
        except httpx.RequestError as e:
            logger.warning(
                "kraken_transport_error",
                extra={"path": request.path, "error": repr(e)},
            )
            raise TransportError(method=request.method, url=request.url, cause=e) from e
        logger.debug(
            "kraken_response",
            extra={"path": request.path, "status_code": response.status_code},
        )
        return response.content

    async def _call(
        self,
        endpoint: Endpoint,
        params: Mapping[str, Any] | None = None,
        *,
        timeout: float | None = None,
    ) -> Any:
        request = self.build_request(endpoint, params or {})
        raw = await self.dispatch(request, timeout=timeout)
        try:
            return unwrap_result(raw)
        except ApiError as e:
            logger.warning(
                "kraken_api_error",
                extra={"path": endpoint.path, "error": "; ".join(e.messages)},
            )
            raise

    # ----- public market data -----

    async def server_time(self, *, timeout: float | None = None) -> ServerTime:
        return parse_server_time(await self._call(TIME, timeout=timeout))

    async def system_status(self, *, timeout: float | None = None) -> SystemStatus:
        return parse_system_status(await self._call(SYSTEM_STATUS, timeout=timeout))

    async def asset_info(self, *, timeout: float | None = None) -> dict[str, str]:
        return parse_asset_info(await self._call(ASSETS, timeout=timeout))

    async def asset_pairs(self, *, timeout: float | None = None) -> list[AssetPair]:
        return parse_asset_pairs(await self._call(ASSET_PAIRS, timeout=timeout))

    async def trading_pairs(self, *, timeout: float | None = None) -> list[str]:
        return [p.name for p in await self.asset_pairs(timeout=timeout)]

    async def validate_pair(self, pair: str, *, timeout: float | None = None) -> bool:
        pairs = await self.asset_pairs(timeout=timeout)
        return any(pair in (p.name, p.altname) for p in pairs)

    async def ticker(self, pair: str, *, timeout: float | None = None) -> Ticker:
        result = await self._call(TICKER, {"pair": pair}, timeout=timeout)
        return parse_ticker(result, pair=pair)

    async def tickers(self, pairs: list[str], *, timeout: float | None = None) -> list[Ticker]:
        if not pairs:
            raise ValueError("at least one pair is required")
        result = await self._call(TICKER, {"pair": ",".join(pairs)}, timeout=timeout)
        return parse_tickers(result)

    async def order_book(
        self,
        pair: str,
        *,
        depth: int = 100,
        timeout: float | None = None,
    ) -> OrderBook:
        result = await self._call(DEPTH, {"pair": pair, "count": depth}, timeout=timeout)
        return parse_order_book(result, pair=pair)

    async def recent_trades(
        self,
        pair: str,
        *,
        count: int = 100,
        timeout: float | None = None,
    ) -> list[Trade]:
        result = await self._call(TRADES, {"pair": pair, "count": count}, timeout=timeout)
        return parse_recent_trades(result, pair=pair)

    async def ohlc(
        self,
        pair: str,
        *,
        interval: int = 1,
        timeout: float | None = None,
    ) -> list[OhlcBar]:
        result = await self._call(OHLC, {"pair": pair, "interval": interval}, timeout=timeout)
        return parse_ohlc(result, pair=pair)

    # ----- private account / orders -----

    async def balance(self, *, timeout: float | None = None) -> list[Balance]:
        return parse_balances(await self._call(BALANCE, timeout=timeout))

    async def add_order(
        self,
        *,
        pair: str,
        side: Side,
        order_type: OrderType,
        volume: Decimal,
        price: Decimal | None = None,
        price2: Decimal | None = None,
        options: Mapping[str, Any] | None = None,
        validate: bool = False,
        timeout: float | None = None,
    ) -> OrderAck:
        order = OrderRequest(
            pair=pair,
            side=side,
            order_type=order_type,
            volume=volume,
            price=price,
            price2=price2,
        )
        params: dict[str, Any] = order.to_params()
        for key, value in (options or {}).items():
            if params.get(key) is not None:
                raise ValueError(f"option {key!r} conflicts with an order argument")
            params[key] = value
        if validate:
            params["validate"] = True
        result = await self._call(ADD_ORDER, params, timeout=timeout)
        ack = parse_order_ack(result, validate_only=validate)
        logger.info(
            "order_submitted",
            extra={"pair": pair, "txid": ",".join(ack.txids), "validate": validate},
        )
        return ack

    async def place_market_order(
        self,
        *,
        pair: str,
        side: Side,
        volume: Decimal,
        timeout: float | None = None,
    ) -> OrderAck:
        return await self.add_order(
            pair=pair,
            side=side,
            order_type="market",
            volume=volume,
            timeout=timeout,
        )

    async def place_limit_order(
        self,
        *,
        pair: str,
        side: Side,
        volume: Decimal,
        price: Decimal,
        timeout: float | None = None,
    ) -> OrderAck:
        return await self.add_order(
            pair=pair,
            side=side,
            order_type="limit",
            volume=volume,
            price=price,
            timeout=timeout,
        )

    async def place_stop_loss_order(
        self,
        *,
        pair: str,
        side: Side,
        volume: Decimal,
        stop_price: Decimal,
        timeout: float | None = None,
    ) -> OrderAck:
        return await self.add_order(
            pair=pair,
            side=side,
            order_type="stop-loss",
            volume=volume,
            price=stop_price,
            timeout=timeout,
        )

    async def cancel_order(self, txid: str, *, timeout: float | None = None) -> int:
        result = await self._call(CANCEL_ORDER, {"txid": txid}, timeout=timeout)
        count = parse_cancel_count(result)
        logger.info("order_cancelled", extra={"order_id": txid, "count": count})
        return count

    async def open_orders(
        self,
        pair: str | None = None,
        *,
        timeout: float | None = None,
    ) -> list[Order]:
        orders = parse_open_orders(await self._call(OPEN_ORDERS, timeout=timeout))
        if pair is None:
            return orders
        return [o for o in orders if o.pair == pair]

    # ----- connectivity checks -----

    async def test_connection(self, *, timeout: float | None = None) -> bool:
        try:
            await self.server_time(timeout=timeout)
        except KrakenError as e:
            logger.warning("connection_check_failed", extra={"error": str(e)})
            return False
        return True

    async def test_authentication(self, *, timeout: float | None = None) -> bool:
        try:
            await self.balance(timeout=timeout)
        except KrakenError as e:
            logger.warning("authentication_check_failed", extra={"error": str(e)})
            return False
        return True
