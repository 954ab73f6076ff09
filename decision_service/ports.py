"""
ports.py – what the decision pipeline needs from the outside world
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol

from .models import Bar, BarSeries, InstrumentMeta, OrderResult, Quote, TradeIntent


class IndicatorFeed(Protocol):
    def series(self, count: int) -> BarSeries:
        """Newest `count` closed bars with MACD/trend/ATR; raises InsufficientHistory.

        The orchestrator takes its ATR from `atr[0]` of this snapshot.
        """

    def volatility(self) -> float:
        """ATR of the last closed bar as of now (fresh read); raises InsufficientHistory."""


class PriceFeed(Protocol):
    def quote(self) -> Quote: ...

    def bar(self, shift: int = 1) -> Bar: ...


class AccountInfo(Protocol):
    def equity(self) -> float: ...

    def instrument_meta(self, symbol: str) -> InstrumentMeta: ...

    def has_open_position(self, symbol: str, magic: int) -> bool: ...


class OrderGateway(Protocol):
    def submit(self, intent: TradeIntent) -> OrderResult: ...


class MarkerSink(Protocol):
    def record(self, symbol: str, when: datetime, price: float, intent: TradeIntent) -> None: ...
