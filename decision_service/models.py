"""
models.py – value objects passed between the decision components
==============================================================

Everything here is immutable except `StrategyState`, which belongs to
exactly one `DecisionService` and is only written after a confirmed fill.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Generic, Optional, Sequence, Tuple, TypeVar

import numpy as np
import pandas as pd

T = TypeVar("T")


# ───── outcome taxonomy ───────────────────────────────────────────────
class Category(str, Enum):
    GATE = "gate"              # pre-conditions for looking at the market
    DATA = "data"              # history missing / feed read failed
    INVALID = "invalid"        # non-positive or degenerate numbers
    POLICY = "policy"          # market / account conditions say no
    GATEWAY = "gateway"        # broker did not fill

    @property
    def log_level(self) -> int:
        return _LEVELS[self]


_LEVELS = {
    Category.GATE: logging.DEBUG,
    Category.DATA: logging.INFO,
    Category.INVALID: logging.WARNING,
    Category.POLICY: logging.INFO,
    Category.GATEWAY: logging.WARNING,
}


class Reason(str, Enum):
    TRADING_DISABLED = "trading_disabled"
    ALREADY_TRADED_TODAY = "already_traded_today"
    POSITION_OPEN = "position_open"
    NO_SIGNAL = "no_signal"

    INSUFFICIENT_HISTORY = "insufficient_history"
    FEED_ERROR = "feed_error"

    INVALID_VOLATILITY = "invalid_volatility"
    INVALID_ASK = "invalid_ask"
    DISTANCE_TOO_SMALL = "distance_too_small"
    DEGENERATE_LEVELS = "degenerate_levels"
    INVALID_EQUITY = "invalid_equity"
    INVALID_RISK = "invalid_risk"
    INVALID_STOP_DISTANCE = "invalid_stop_distance"
    DEGENERATE_INSTRUMENT_META = "degenerate_instrument_meta"
    INVALID_QUOTE = "invalid_quote"

    BELOW_MINIMUM_VOLUME = "below_minimum_volume"
    STOP_LEVEL_VIOLATION = "stop_level_violation"

    ORDER_REJECTED = "order_rejected"

    @property
    def category(self) -> Category:
        return _CATEGORY[self]


_CATEGORY = {
    **dict.fromkeys(
        (Reason.TRADING_DISABLED, Reason.ALREADY_TRADED_TODAY,
         Reason.POSITION_OPEN, Reason.NO_SIGNAL), Category.GATE),
    **dict.fromkeys((Reason.INSUFFICIENT_HISTORY, Reason.FEED_ERROR), Category.DATA),
    **dict.fromkeys(
        (Reason.INVALID_VOLATILITY, Reason.INVALID_ASK, Reason.DISTANCE_TOO_SMALL,
         Reason.DEGENERATE_LEVELS, Reason.INVALID_EQUITY, Reason.INVALID_RISK,
         Reason.INVALID_STOP_DISTANCE, Reason.DEGENERATE_INSTRUMENT_META,
         Reason.INVALID_QUOTE), Category.INVALID),
    **dict.fromkeys((Reason.BELOW_MINIMUM_VOLUME, Reason.STOP_LEVEL_VIOLATION), Category.POLICY),
    Reason.ORDER_REJECTED: Category.GATEWAY,
}


@dataclass(frozen=True)
class Result(Generic[T]):
    """Value-or-reason returned by every pipeline component."""
    value: Optional[T] = None
    reason: Optional[Reason] = None
    detail: str = ""

    @property
    def ok(self) -> bool:
        return self.reason is None

    @classmethod
    def success(cls, value: T) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def fail(cls, reason: Reason, detail: str = "") -> "Result[T]":
        return cls(reason=reason, detail=detail)


# ───── market data ────────────────────────────────────────────────────
@dataclass(frozen=True)
class Quote:
    bid: float
    ask: float
    time: datetime
    time_msc: int = 0

    @property
    def valid(self) -> bool:
        return (
            bool(np.isfinite(self.bid)) and bool(np.isfinite(self.ask))
            and self.bid > 0 and self.ask > 0 and self.ask >= self.bid
        )


@dataclass(frozen=True)
class Bar:
    time: datetime
    open: float
    high: float
    low: float
    close: float


@dataclass(frozen=True)
class OscillatorSample:
    main: float
    signal: float

    @property
    def histogram(self) -> float:
        return self.main - self.signal


@dataclass(frozen=True)
class BarSeries:
    """
    Closed bars, newest first: index 0 is the last *closed* bar.

    One instance is one atomic read of the feed; every signal condition
    evaluated against it sees the same samples.
    """
    times: Tuple[datetime, ...]
    opens: Tuple[float, ...]
    closes: Tuple[float, ...]
    macd: Tuple[float, ...]
    macd_signal: Tuple[float, ...]
    trend: Tuple[float, ...]
    atr: Tuple[float, ...] = field(default=())

    def __len__(self) -> int:
        return min(len(self.opens), len(self.closes), len(self.macd),
                   len(self.macd_signal), len(self.trend))

    def oscillator(self, i: int) -> OscillatorSample:
        return OscillatorSample(self.macd[i], self.macd_signal[i])

    @classmethod
    def from_frame(cls, df: pd.DataFrame, count: Optional[int] = None) -> "BarSeries":
        """Build from an oldest→newest indicator frame (augmenter output)."""
        tail = df if count is None else df.tail(count)
        rev = tail.iloc[::-1]

        def col(name: str) -> Tuple[float, ...]:
            return tuple(float(v) for v in rev[name].to_numpy())

        return cls(
            times=tuple(pd.Timestamp(t).to_pydatetime() for t in rev["time"]),
            opens=col("open"),
            closes=col("close"),
            macd=col("macd"),
            macd_signal=col("macd_signal"),
            trend=col("trend"),
            atr=col("atr"),
        )

    @classmethod
    def from_rows(cls, rows: Sequence[dict]) -> "BarSeries":
        """Build from newest-first dict rows (handy for stubs and replays)."""
        return cls(
            times=tuple(r.get("time", datetime.min) for r in rows),
            opens=tuple(float(r["open"]) for r in rows),
            closes=tuple(float(r["close"]) for r in rows),
            macd=tuple(float(r["macd"]) for r in rows),
            macd_signal=tuple(float(r["macd_signal"]) for r in rows),
            trend=tuple(float(r["trend"]) for r in rows),
            atr=tuple(float(r.get("atr", np.nan)) for r in rows),
        )


@dataclass(frozen=True)
class InstrumentMeta:
    point: float
    digits: int
    tick_size: float
    tick_value: float
    volume_min: float
    volume_max: float
    volume_step: float
    stops_level: int = 0            # broker min SL/TP distance, in points


# ───── decision artefacts ─────────────────────────────────────────────
@dataclass(frozen=True)
class TradeParams:
    sl_distance: float
    tp_distance: float
    stop_loss: float
    take_profit: float


class Side(str, Enum):
    BUY = "buy"


@dataclass(frozen=True)
class TradeIntent:
    symbol: str
    size: float
    entry_price_hint: float
    stop_loss: float
    take_profit: float
    max_slippage: int               # points
    client_tag: int                 # MT5 magic
    side: Side = Side.BUY
    comment: str = ""


class RejectCode(str, Enum):
    NONE = "none"
    REQUOTE = "requote"
    PRICE_CHANGED = "price_changed"
    PRICE_OFF = "price_off"
    INVALID_STOPS = "invalid_stops"
    INVALID_VOLUME = "invalid_volume"
    INVALID_PRICE = "invalid_price"
    NO_MONEY = "no_money"
    MARKET_CLOSED = "market_closed"
    TRADE_DISABLED = "trade_disabled"
    TIMEOUT = "timeout"
    CONNECTION = "connection"
    REJECTED = "rejected"
    OTHER = "other"


@dataclass(frozen=True)
class OrderResult:
    accepted: bool
    fill_price: float = 0.0
    reject_code: RejectCode = RejectCode.NONE
    retcode: int = 0
    comment: str = ""
    volume: float = 0.0
    ticket: int = 0


@dataclass
class StrategyState:
    """Per-instrument state; owned by one DecisionService for the process lifetime."""
    last_trade_at: Optional[datetime] = None
    instrument: Optional[InstrumentMeta] = None

    def traded_on(self, when: datetime) -> bool:
        last = self.last_trade_at
        return last is not None and last.date() == when.date()
