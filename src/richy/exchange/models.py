"""
Kraken response envelope handling and response -> domain record mapping.

Every numeric value the venue sends as a string is parsed as ``Decimal``. A
record is either built completely or the whole mapping fails: a required key
that is missing (or sits in the wrong kind of container) raises
``UnexpectedShape``, a value that is present but not a finite number raises
``FieldParseError``.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Optional, cast

from richy.exchange.errors import ApiError, FieldParseError, MalformedResponse, UnexpectedShape
from richy.types import OrderType, Side

_SIDE_CODES: dict[str, Side] = {"b": "buy", "s": "sell"}
_ORDER_TYPE_CODES = {"m": "market", "l": "limit"}
# Upper bound on the digits of integer fields (timestamps, counts).
_MAX_INT_DIGITS = 20


@dataclass(frozen=True)
class ServerTime:
    unixtime: int
    rfc1123: str


@dataclass(frozen=True)
class SystemStatus:
    status: str
    timestamp: str


@dataclass(frozen=True)
class AssetPair:
    name: str
    altname: str
    wsname: str
    base: str
    quote: str
    order_min: Optional[Decimal]
    tick_size: Optional[Decimal]


@dataclass(frozen=True)
class Ticker:
    pair: str
    ask: Decimal
    bid: Decimal
    last: Decimal
    volume: Decimal
    high: Decimal
    low: Decimal
    open: Decimal


@dataclass(frozen=True)
class OrderBookEntry:
    price: Decimal
    volume: Decimal
    timestamp: int


@dataclass(frozen=True)
class OrderBook:
    pair: str
    asks: list[OrderBookEntry]
    bids: list[OrderBookEntry]


@dataclass(frozen=True)
class Trade:
    price: Decimal
    volume: Decimal
    # Seconds since epoch with sub-second precision.
    timestamp: Decimal
    side: Side
    order_type: str


@dataclass(frozen=True)
class OhlcBar:
    open_time_s: int
    open: Decimal
    high: Decimal
    low: Decimal
    close: Decimal
    vwap: Decimal
    volume: Decimal
    count: int


@dataclass(frozen=True)
class Balance:
    currency: str
    available: Decimal
    locked: Decimal
    total: Decimal


@dataclass(frozen=True)
class Order:
    order_id: str
    pair: str
    side: Side
    order_type: OrderType
    volume: Decimal
    price: Decimal
    filled: Decimal
    status: str
    open_time: Decimal


@dataclass(frozen=True)
class OrderAck:
    description: str
    txids: tuple[str, ...]


def unwrap_result(raw: bytes) -> Any:
    """Return the ``result`` payload of a raw response body.

    The ``error`` list is checked first; when it is non-empty ``result`` is
    never looked at, whatever it contains.
    """
    try:
        payload = json.loads(raw, parse_float=Decimal)
    except ValueError as e:
        raise MalformedResponse(body=raw, reason=str(e)) from e
    if not isinstance(payload, dict):
        raise UnexpectedShape(f"response envelope is not an object: {type(payload).__name__}")

    errors = payload.get("error", [])
    if not isinstance(errors, list):
        raise UnexpectedShape(f"response 'error' is not a list: {errors!r}")
    if errors:
        raise ApiError([str(message) for message in errors])

    if "result" not in payload:
        raise UnexpectedShape("response has neither errors nor a 'result'")
    return payload["result"]


def _require_dict(value: Any, *, what: str) -> dict[str, Any]:
    if not isinstance(value, dict):
        raise UnexpectedShape(f"{what}: expected an object, got {type(value).__name__}")
    return value


def _require_list(value: Any, *, what: str) -> list[Any]:
    if not isinstance(value, list):
        raise UnexpectedShape(f"{what}: expected an array, got {type(value).__name__}")
    return value


def _get(container: Any, key: str | int, *, what: str) -> Any:
    try:
        return container[key]
    except (KeyError, IndexError, TypeError) as e:
        raise UnexpectedShape(f"{what}: missing {key!r}") from e


def _decimal(value: Any, *, field: str) -> Decimal:
    if isinstance(value, bool) or not isinstance(value, (str, int, Decimal)):
        raise FieldParseError(field=field, value=value)
    # Decimal() would otherwise read "1_000" as 1000.
    if isinstance(value, str) and "_" in value:
        raise FieldParseError(field=field, value=value)
    try:
        result = Decimal(value.strip() if isinstance(value, str) else value)
    except InvalidOperation as e:
        raise FieldParseError(field=field, value=value) from e
    if not result.is_finite():
        raise FieldParseError(field=field, value=value)
    return result


def _optional_decimal(value: Any, *, field: str) -> Optional[Decimal]:
    if value is None:
        return None
    return _decimal(value, field=field)


def _int(value: Any, *, field: str) -> int:
    number = _decimal(value, field=field)
    if number.adjusted() >= _MAX_INT_DIGITS or number != number.to_integral_value():
        raise FieldParseError(field=field, value=value)
    return int(number)


def _pair_entry(result: Any, pair: str, *, what: str) -> tuple[str, Any]:
    # The venue may answer under its canonical pair name (XXBTZUSD for XBTUSD).
    data = _require_dict(result, what=what)
    if pair in data:
        return pair, data[pair]
    entries = [(name, value) for name, value in data.items() if name != "last"]
    if len(entries) == 1:
        return entries[0]
    raise UnexpectedShape(f"{what}: no entry for pair {pair!r}")


def parse_server_time(result: Any) -> ServerTime:
    data = _require_dict(result, what="Time")
    return ServerTime(
        unixtime=_int(_get(data, "unixtime", what="Time"), field="unixtime"),
        rfc1123=str(_get(data, "rfc1123", what="Time")),
    )


def parse_system_status(result: Any) -> SystemStatus:
    data = _require_dict(result, what="SystemStatus")
    return SystemStatus(
        status=str(_get(data, "status", what="SystemStatus")),
        timestamp=str(_get(data, "timestamp", what="SystemStatus")),
    )


def parse_asset_info(result: Any) -> dict[str, str]:
    data = _require_dict(result, what="Assets")
    assets: dict[str, str] = {}
    for name, info in data.items():
        what = f"Assets[{name}]"
        assets[name] = str(_get(_require_dict(info, what=what), "altname", what=what))
    return assets


def parse_asset_pairs(result: Any) -> list[AssetPair]:
    data = _require_dict(result, what="AssetPairs")
    pairs: list[AssetPair] = []
    for name, info in data.items():
        what = f"AssetPairs[{name}]"
        info = _require_dict(info, what=what)
        pairs.append(
            AssetPair(
                name=name,
                altname=str(info.get("altname", name)),
                wsname=str(info.get("wsname", "")),
                base=str(_get(info, "base", what=what)),
                quote=str(_get(info, "quote", what=what)),
                order_min=_optional_decimal(info.get("ordermin"), field=f"{what}.ordermin"),
                tick_size=_optional_decimal(info.get("tick_size"), field=f"{what}.tick_size"),
            )
        )
    return pairs


def _ticker_from_entry(name: str, entry: Any) -> Ticker:
    what = f"Ticker[{name}]"
    data = _require_dict(entry, what=what)

    def nth(key: str, index: int) -> Decimal:
        values = _require_list(_get(data, key, what=what), what=f"{what}.{key}")
        return _decimal(_get(values, index, what=f"{what}.{key}"), field=f"{key}[{index}]")

    return Ticker(
        pair=name,
        ask=nth("a", 0),
        bid=nth("b", 0),
        last=nth("c", 0),
        volume=nth("v", 1),
        high=nth("h", 1),
        low=nth("l", 1),
        open=_decimal(_get(data, "o", what=what), field="o"),
    )


def parse_ticker(result: Any, *, pair: str) -> Ticker:
    name, entry = _pair_entry(result, pair, what="Ticker")
    return _ticker_from_entry(name, entry)


def parse_tickers(result: Any) -> list[Ticker]:
    data = _require_dict(result, what="Ticker")
    return [_ticker_from_entry(name, entry) for name, entry in data.items()]


def _book_side(rows: Any, *, what: str) -> list[OrderBookEntry]:
    entries: list[OrderBookEntry] = []
    for i, row in enumerate(_require_list(rows, what=what)):
        row_what = f"{what}[{i}]"
        row = _require_list(row, what=row_what)
        entries.append(
            OrderBookEntry(
                price=_decimal(_get(row, 0, what=row_what), field=f"{row_what}.price"),
                volume=_decimal(_get(row, 1, what=row_what), field=f"{row_what}.volume"),
                timestamp=_int(_get(row, 2, what=row_what), field=f"{row_what}.timestamp"),
            )
        )
    return entries


def parse_order_book(result: Any, *, pair: str) -> OrderBook:
    name, entry = _pair_entry(result, pair, what="Depth")
    what = f"Depth[{name}]"
    data = _require_dict(entry, what=what)
    return OrderBook(
        pair=name,
        asks=_book_side(_get(data, "asks", what=what), what=f"{what}.asks"),
        bids=_book_side(_get(data, "bids", what=what), what=f"{what}.bids"),
    )


def parse_recent_trades(result: Any, *, pair: str) -> list[Trade]:
    name, rows = _pair_entry(result, pair, what="Trades")
    what = f"Trades[{name}]"
    trades: list[Trade] = []
    for i, row in enumerate(_require_list(rows, what=what)):
        row_what = f"{what}[{i}]"
        row = _require_list(row, what=row_what)
        side_code = str(_get(row, 3, what=row_what))
        if side_code not in _SIDE_CODES:
            raise FieldParseError(field=f"{row_what}.side", value=side_code)
        type_code = str(_get(row, 4, what=row_what))
        trades.append(
            Trade(
                price=_decimal(_get(row, 0, what=row_what), field=f"{row_what}.price"),
                volume=_decimal(_get(row, 1, what=row_what), field=f"{row_what}.volume"),
                timestamp=_decimal(_get(row, 2, what=row_what), field=f"{row_what}.time"),
                side=_SIDE_CODES[side_code],
                order_type=_ORDER_TYPE_CODES.get(type_code, type_code),
            )
        )
    return trades


def parse_ohlc(result: Any, *, pair: str) -> list[OhlcBar]:
    name, rows = _pair_entry(result, pair, what="OHLC")
    what = f"OHLC[{name}]"
    bars: list[OhlcBar] = []
    for i, row in enumerate(_require_list(rows, what=what)):
        row_what = f"{what}[{i}]"
        row = _require_list(row, what=row_what)
        bars.append(
            OhlcBar(
                open_time_s=_int(_get(row, 0, what=row_what), field=f"{row_what}.time"),
                open=_decimal(_get(row, 1, what=row_what), field=f"{row_what}.open"),
                high=_decimal(_get(row, 2, what=row_what), field=f"{row_what}.high"),
                low=_decimal(_get(row, 3, what=row_what), field=f"{row_what}.low"),
                close=_decimal(_get(row, 4, what=row_what), field=f"{row_what}.close"),
                vwap=_decimal(_get(row, 5, what=row_what), field=f"{row_what}.vwap"),
                volume=_decimal(_get(row, 6, what=row_what), field=f"{row_what}.volume"),
                count=_int(_get(row, 7, what=row_what), field=f"{row_what}.count"),
            )
        )
    return bars


def parse_balances(result: Any) -> list[Balance]:
    data = _require_dict(result, what="Balance")
    balances: list[Balance] = []
    for currency, amount in data.items():
        total = _decimal(amount, field=f"Balance[{currency}]")
        # The Balance endpoint does not split available and held funds.
        balances.append(
            Balance(currency=currency, available=total, locked=Decimal("0"), total=total)
        )
    return balances


def parse_order_ack(result: Any, *, validate_only: bool = False) -> OrderAck:
    data = _require_dict(result, what="AddOrder")
    descr = _require_dict(data.get("descr", {}), what="AddOrder.descr")
    txids = data.get("txid", [])
    txids = _require_list(txids, what="AddOrder.txid")
    if not txids and not validate_only:
        raise UnexpectedShape("AddOrder: no txid returned for a live order")
    return OrderAck(description=str(descr.get("order", "")), txids=tuple(str(t) for t in txids))


def parse_cancel_count(result: Any) -> int:
    data = _require_dict(result, what="CancelOrder")
    return _int(_get(data, "count", what="CancelOrder"), field="count")


def parse_open_orders(result: Any) -> list[Order]:
    data = _require_dict(result, what="OpenOrders")
    open_orders = _require_dict(_get(data, "open", what="OpenOrders"), what="OpenOrders.open")
    orders: list[Order] = []
    for order_id, info in open_orders.items():
        what = f"OpenOrders[{order_id}]"
        info = _require_dict(info, what=what)
        descr = _require_dict(_get(info, "descr", what=what), what=f"{what}.descr")
        orders.append(
            Order(
                order_id=order_id,
                pair=str(_get(descr, "pair", what=f"{what}.descr")),
                side=cast(Side, str(_get(descr, "type", what=f"{what}.descr"))),
                order_type=cast(OrderType, str(_get(descr, "ordertype", what=f"{what}.descr"))),
                volume=_decimal(_get(info, "vol", what=what), field=f"{what}.vol"),
                price=_decimal(_get(descr, "price", what=f"{what}.descr"), field=f"{what}.price"),
                filled=_decimal(_get(info, "vol_exec", what=what), field=f"{what}.vol_exec"),
                status=str(_get(info, "status", what=what)),
                open_time=_decimal(_get(info, "opentm", what=what), field=f"{what}.opentm"),
            )
        )
    return orders
