"""
signals.py – MACD pullback entry signal
=======================================
Pure function of one `BarSeries` snapshot; no Redis, no broker.

A long setup needs, on the closed bars b1 (newest), b2, b3:

  A  hist(b1) < 0 and signal(b1) < 0      momentum rolled over below zero
  B  hist(b2) > 0 and hist(b3) > 0         after a positive cycle
  C  close(b1) > open(b1) and close(b1) > trend(b1)
"""

from __future__ import annotations

import math

from shared.config import StrategyConfig

from .models import BarSeries

OSC_BARS   = 3          # b1..b3 of MACD
TREND_BARS = 2


def required_bars(cfg: StrategyConfig) -> int:
    """Closed bars of history below which no signal is computed."""
    return max(cfg.macd_slow, cfg.trend_period) + 3


def _finite(*xs: float) -> bool:
    return all(math.isfinite(x) for x in xs)


def momentum_exhausted(bars: BarSeries) -> bool:
    b1 = bars.oscillator(0)
    return b1.histogram < 0 and b1.signal < 0


def prior_bull_cycle(bars: BarSeries) -> bool:
    return bars.oscillator(1).histogram > 0 and bars.oscillator(2).histogram > 0


def bullish_above_trend(bars: BarSeries) -> bool:
    return bars.closes[0] > bars.opens[0] and bars.closes[0] > bars.trend[0]


def evaluate(bars: BarSeries | None) -> bool:
    """True when all three conditions hold; short or NaN history is simply False."""
    if bars is None:
        return False
    if min(len(bars.macd), len(bars.macd_signal)) < OSC_BARS or len(bars.trend) < TREND_BARS:
        return False
    if min(len(bars.opens), len(bars.closes)) < 1:
        return False
    if not _finite(*bars.macd[:OSC_BARS], *bars.macd_signal[:OSC_BARS],
                   bars.trend[0], bars.opens[0], bars.closes[0]):
        return False
    return momentum_exhausted(bars) and prior_bull_cycle(bars) and bullish_above_trend(bars)
