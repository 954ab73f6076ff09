#!/usr/bin/env python3
"""
augmenter.py – indicator columns for the MACD pullback strategy
---------------------------------------------------------------
• Input: closed OHLC bars oldest → newest (`time, open, high, low, close`).
• Output: same rows plus `macd`, `macd_signal`, `trend`, `atr`.
• Warm-up rows stay NaN (never zero) so "not enough history" can't be
  mistaken for a reading of 0.

MACD follows the MT5 iMACD convention: main = EMA(fast) − EMA(slow),
signal = *simple* average of main.
"""

from __future__ import annotations
import warnings
from typing import List

import numpy as np
import pandas as pd
from ta.trend      import MACD, EMAIndicator, SMAIndicator
from ta.volatility import AverageTrueRange

from shared.config import StrategyConfig

warnings.filterwarnings("ignore", category=RuntimeWarning)

FEATS: List[str] = [
 "time","open","high","low","close",
 "macd","macd_signal","trend","atr",
]


def _atr(out: pd.DataFrame, window: int) -> pd.Series:
    if len(out) < window:
        return pd.Series(np.nan, index=out.index)
    atr = AverageTrueRange(out["high"], out["low"], out["close"],
                           window=window, fillna=False).average_true_range()
    atr = atr.astype(float)
    atr.iloc[: window - 1] = np.nan          # ta seeds the warm-up with zeros
    return atr


# ───── main augmentation ──────────────────────────────────────────────
def compute_indicators(df: pd.DataFrame, cfg: StrategyConfig) -> pd.DataFrame:
    out = df.copy().reset_index(drop=True)
    for c in ("open", "high", "low", "close"):
        out[c] = out[c].astype(float)

    macd = MACD(out["close"], window_slow=cfg.macd_slow,
                window_fast=cfg.macd_fast, window_sign=cfg.macd_signal, fillna=False)
    out["macd"]        = macd.macd()
    out["macd_signal"] = SMAIndicator(out["macd"], window=cfg.macd_signal,
                                      fillna=False).sma_indicator()
    out["trend"] = EMAIndicator(out["close"], window=cfg.trend_period,
                                fillna=False).ema_indicator()
    out["atr"]   = _atr(out, cfg.atr_period)

    out.replace([np.inf, -np.inf], np.nan, inplace=True)
    return out[FEATS]
