from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Literal, Optional

Side = Literal["buy", "sell"]
OrderType = Literal[
    "market",
    "limit",
    "stop-loss",
    "take-profit",
    "stop-loss-limit",
    "take-profit-limit",
]


@dataclass(frozen=True)
class OrderRequest:
    pair: str
    side: Side
    order_type: OrderType
    volume: Decimal
    # Limit price for limit orders, trigger price for stop-loss / take-profit.
    price: Optional[Decimal] = None
    # Limit price of the *-limit order types.
    price2: Optional[Decimal] = None

    def to_params(self) -> dict[str, object]:
        amounts = (("volume", self.volume), ("price", self.price), ("price2", self.price2))
        for name, value in amounts:
            if value is not None and not value.is_finite():
                raise ValueError(f"{name} must be a finite number, got {value}")
        if self.volume <= 0:
            raise ValueError("volume must be > 0")
        if self.order_type != "market" and self.price is None:
            raise ValueError(f"price is required for {self.order_type} orders")
        if self.order_type.endswith("-limit") and self.price2 is None:
            raise ValueError(f"price2 is required for {self.order_type} orders")
        return {
            "pair": self.pair,
            "type": self.side,
            "ordertype": self.order_type,
            "volume": self.volume,
            "price": self.price,
            "price2": self.price2,
        }
