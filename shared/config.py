"""
config.py – centralised env-var handling
=======================================

• Loads the first `.env` file it finds (cwd or /app) exactly **once**.
• Exposes `ENV` – a dict-like object that also supports attribute access.
• `env(key, default=None, cast=None)` helper for one-off lookups
  with automatic type-casting (int, float, bool).
• `load_strategy_config()` builds the validated, immutable strategy
  settings.  Anything wrong there is a startup error (`ConfigError`).
"""

from __future__ import annotations

import math
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Optional, Tuple

from dotenv import load_dotenv

from .errors import ConfigError

# ───── locate & load .env (first one wins) ────────────────────────────
for candidate in (Path.cwd() / ".env", Path("/app/.env")):
    if candidate.is_file():
        load_dotenv(dotenv_path=candidate, override=False)
        break

# ───── ENV proxy object ───────────────────────────────────────────────
class _Env(dict):
    """Attr-style access to `os.environ` while staying dict-compatible."""

    # attribute → getenv
    def __getattr__(self, item: str) -> str | None:  # noqa: D401
        return os.getenv(item)

    # keep mypy happy for dict subscripting
    def __getitem__(self, key: str) -> str:
        return os.environ[key]

    # ergonomic get with optional cast
    def get(self, key: str, default: Any = None, cast: Optional[type] = None) -> Any:  # noqa: D401
        val = os.getenv(key, default)
        if cast is not None and val is not None:
            try:
                if cast is bool:
                    return str(val).lower() in ("1", "true", "yes", "y")
                return cast(val)
            except (ValueError, TypeError):
                return default
        return val


ENV: _Env = _Env(os.environ)  # public alias

# convenience function so you can `from shared.config import env`
def env(key: str, default: Any = None, cast: Optional[type] = None) -> Any:
    """Shortcut for `ENV.get(key, default, cast)`."""
    return ENV.get(key, default, cast)


# ───── strategy settings ──────────────────────────────────────────────
TIMEFRAMES = (
    "M1", "M2", "M3", "M4", "M5", "M6", "M10", "M12", "M15", "M20", "M30",
    "H1", "H2", "H3", "H4", "H6", "H8", "H12", "D1", "W1", "MN1",
)


@dataclass(frozen=True)
class StrategyConfig:
    symbols: Tuple[str, ...] = ("EURUSD",)
    timeframe: str = "H1"
    atr_period: int = 14
    sl_atr_mult: float = 1.5
    reward_ratio: float = 2.0
    macd_fast: int = 12
    macd_slow: int = 26
    macd_signal: int = 9
    trend_period: int = 200
    risk_percent: float = 1.0
    magic: int = 987654              # strategy tag on every order / position
    slippage_points: int = 10
    history_bars: int = 500
    poll_ms: int = 250

    @property
    def warmup_bars(self) -> int:
        """Closed bars needed before MACD signal, trend and ATR are all defined."""
        return max(self.macd_slow + self.macd_signal, self.trend_period, self.atr_period) + 3

    def validate(self) -> "StrategyConfig":
        if not self.symbols or any(not s for s in self.symbols):
            raise ConfigError("SYMBOLS must list at least one symbol")
        if self.timeframe not in TIMEFRAMES:
            raise ConfigError(f"TIMEFRAME {self.timeframe!r} not one of {', '.join(TIMEFRAMES)}")
        for name in ("atr_period", "sl_atr_mult", "reward_ratio", "macd_fast",
                     "macd_slow", "macd_signal", "trend_period", "risk_percent",
                     "magic", "slippage_points", "history_bars", "poll_ms"):
            val = getattr(self, name)
            if not math.isfinite(val) or val <= 0:
                raise ConfigError(f"{name} must be a positive finite number (got {val})")
        if self.macd_fast >= self.macd_slow:
            raise ConfigError(
                f"MACD fast period ({self.macd_fast}) must be below slow period ({self.macd_slow})"
            )
        if self.history_bars < self.warmup_bars:
            raise ConfigError(
                f"HISTORY_BARS={self.history_bars} too short, need ≥ {self.warmup_bars}"
            )
        return self


def _strict(key: str, default: Any, cast: Callable[[str], Any]) -> Any:
    raw = os.getenv(key)
    if raw is None or raw.strip() == "":
        return default
    try:
        return cast(raw.strip())
    except (ValueError, TypeError) as exc:
        raise ConfigError(f"{key}={raw!r} is not a valid {cast.__name__}") from exc


def load_strategy_config() -> StrategyConfig:
    """Read every strategy setting from the environment and validate it."""
    d = StrategyConfig()
    symbols = tuple(
        s.strip().upper() for s in os.getenv("SYMBOLS", ",".join(d.symbols)).split(",") if s.strip()
    )
    cfg = StrategyConfig(
        symbols=symbols,
        timeframe=os.getenv("TIMEFRAME", d.timeframe).strip().upper(),
        atr_period=_strict("ATR_PERIOD", d.atr_period, int),
        sl_atr_mult=_strict("SL_ATR_MULT", d.sl_atr_mult, float),
        reward_ratio=_strict("REWARD_RATIO", d.reward_ratio, float),
        macd_fast=_strict("MACD_FAST", d.macd_fast, int),
        macd_slow=_strict("MACD_SLOW", d.macd_slow, int),
        macd_signal=_strict("MACD_SIGNAL", d.macd_signal, int),
        trend_period=_strict("TREND_PERIOD", d.trend_period, int),
        risk_percent=_strict("RISK_PERCENT", d.risk_percent, float),
        magic=_strict("MT5_MAGIC", d.magic, int),
        slippage_points=_strict("SLIPPAGE_POINTS", d.slippage_points, int),
        history_bars=_strict("HISTORY_BARS", d.history_bars, int),
        poll_ms=_strict("POLL_MS", d.poll_ms, int),
    )
    return cfg.validate()


__all__ = ["ENV", "env", "StrategyConfig", "TIMEFRAMES", "load_strategy_config"]
