#!/usr/bin/env python3
"""
feed.py – closed-bar indicator feed + price feed over MT5
=========================================================
• Pulls `history_bars` bars starting at shift 1, so the still-forming
  bar is never part of an indicator read.
• Indicators are recomputed only when a new bar has closed; between
  closes every read is served from the same cached frame.
• `series()` hands out one immutable BarSeries per call – all signal
  conditions for a tick come from that single snapshot.
"""

from __future__ import annotations

import math
from typing import Optional

import pandas as pd

from shared.config import StrategyConfig
from shared.errors import FeedError, InsufficientHistory
from shared.logging import get_logger
from decision_service.models import Bar, BarSeries, Quote
from decision_service.signals import required_bars
from trade_executor.mt5_client import MT5Client

from .augmenter import compute_indicators

CLOSED_OFFSET = 1          # shift of the newest *closed* bar

log = get_logger("data_loader")


class MT5Feed:
    def __init__(self, client: MT5Client, symbol: str, cfg: StrategyConfig) -> None:
        self.client = client
        self.symbol = symbol
        self.cfg = cfg
        self._tf: Optional[int] = None
        self._frame: Optional[pd.DataFrame] = None
        self._frame_ts: Optional[pd.Timestamp] = None

    @property
    def timeframe(self) -> int:
        if self._tf is None:
            self._tf = self.client.timeframe(self.cfg.timeframe)
        return self._tf

    # ───── indicator frame (cached per closed bar) ──────────────────
    def _indicators(self) -> pd.DataFrame:
        raw = self.client.rates(self.symbol, self.timeframe, CLOSED_OFFSET, self.cfg.history_bars)
        need = required_bars(self.cfg)
        if len(raw) < need:
            raise InsufficientHistory(f"{self.symbol}: {len(raw)} closed bars, need {need}")

        newest = pd.Timestamp(raw["time"].iloc[-1])
        if self._frame is None or self._frame_ts != newest:
            self._frame = compute_indicators(raw, self.cfg)
            self._frame_ts = newest
            log.debug("%s indicators refreshed @ %s (%d bars)", self.symbol, newest, len(raw))
        return self._frame

    def series(self, count: int) -> BarSeries:
        df = self._indicators().dropna(subset=["macd", "macd_signal", "trend"])
        if len(df) < count:
            raise InsufficientHistory(f"{self.symbol}: {len(df)} warm bars, need {count}")
        return BarSeries.from_frame(df, count)

    def volatility(self) -> float:
        atr = self._indicators()["atr"]
        val = float(atr.iloc[-1]) if len(atr) else math.nan
        if math.isnan(val):
            raise InsufficientHistory(f"{self.symbol}: ATR({self.cfg.atr_period}) not warm yet")
        return val

    # ───── price feed ───────────────────────────────────────────────
    def quote(self) -> Quote:
        return self.client.tick(self.symbol)

    def bar(self, shift: int = CLOSED_OFFSET) -> Bar:
        df = self.client.rates(self.symbol, self.timeframe, shift, 1)
        if df.empty:
            raise FeedError(f"{self.symbol}: no bar at shift {shift}")
        row = df.iloc[-1]
        return Bar(
            time=pd.Timestamp(row["time"]).to_pydatetime(),
            open=float(row["open"]),
            high=float(row["high"]),
            low=float(row["low"]),
            close=float(row["close"]),
        )
