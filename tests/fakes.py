"""In-memory stand-ins for Redis and the MetaTrader5 module."""

from __future__ import annotations

import types
from datetime import datetime, timezone
from collections import defaultdict
from typing import Any, Dict, List

import numpy as np

RATE_DTYPE = np.dtype([
    ("time", "<i8"), ("open", "<f8"), ("high", "<f8"), ("low", "<f8"),
    ("close", "<f8"), ("tick_volume", "<u8"), ("spread", "<i4"), ("real_volume", "<u8"),
])


class StubRedis:
    def __init__(self):
        self.kv: Dict[str, str] = {}
        self.lists: Dict[str, List[str]] = defaultdict(list)
        self.hashes: Dict[str, Dict[str, str]] = defaultdict(dict)

    def get(self, key):
        return self.kv.get(key)

    def set(self, key, value):
        self.kv[key] = str(value)
        return True

    def delete(self, *keys):
        for k in keys:
            self.kv.pop(k, None)
            self.lists.pop(k, None)
            self.hashes.pop(k, None)

    def rpush(self, key, *values):
        self.lists[key].extend(values)
        return len(self.lists[key])

    def lpop(self, key):
        items = self.lists.get(key)
        return items.pop(0) if items else None

    def llen(self, key):
        return len(self.lists.get(key, []))

    def lrange(self, key, start, end):
        items = self.lists.get(key, [])
        end = len(items) if end == -1 else end + 1
        return items[start:end]

    def ltrim(self, key, start, end):
        items = self.lists.get(key, [])
        end = len(items) if end == -1 else end + 1
        self.lists[key] = items[start:end]
        return True

    def hset(self, key, field, value):
        self.hashes[key][field] = value
        return 1

    def hget(self, key, field):
        return self.hashes.get(key, {}).get(field)

    def hgetall(self, key):
        return dict(self.hashes.get(key, {}))

    def pipeline(self):
        return _StubPipeline(self)


class _StubPipeline:
    def __init__(self, owner: StubRedis):
        self.owner = owner
        self.calls: List[tuple] = []

    def __getattr__(self, name):
        def queue(*args, **kwargs):
            self.calls.append((name, args, kwargs))
            return self
        return queue

    def execute(self):
        out = [getattr(self.owner, n)(*a, **kw) for n, a, kw in self.calls]
        self.calls.clear()
        return out


def make_rates(closes, start_ts: int = 1_700_000_000, step: int = 3600, spread: float = 0.5,
               opens=None) -> np.ndarray:
    closes = list(closes)
    opens = list(opens) if opens is not None else [c for c in closes]
    rows = [
        (start_ts + i * step, o, max(o, c) + spread, min(o, c) - spread, c, 100, 1, 0)
        for i, (o, c) in enumerate(zip(opens, closes))
    ]
    return np.array(rows, dtype=RATE_DTYPE)


class FakeMT5:
    """Just enough of the MetaTrader5 module surface for the client/gateway."""

    TIMEFRAME_H1 = 16385
    TIMEFRAME_M15 = 15
    TRADE_ACTION_DEAL = 1
    ORDER_TYPE_BUY = 0
    ORDER_TIME_GTC = 0
    ORDER_FILLING_FOK = 0
    ORDER_FILLING_IOC = 1
    ORDER_FILLING_RETURN = 2

    def __init__(self):
        self.initialized = False
        self.init_ok = True
        self.shutdown_calls = 0
        self.account = types.SimpleNamespace(login=1, equity=10_000.0, balance=10_000.0,
                                             trade_allowed=True)
        self.terminal = types.SimpleNamespace(trade_allowed=True)
        self.symbols: Dict[str, Any] = {
            "EURUSD": types.SimpleNamespace(
                point=0.00001, digits=5, trade_tick_size=0.00001, trade_tick_value=1.0,
                volume_min=0.01, volume_max=100.0, volume_step=0.01,
                trade_stops_level=10, filling_mode=1, visible=True,
            ),
        }
        self.ticks: Dict[str, Any] = {
            "EURUSD": types.SimpleNamespace(bid=1.10000, ask=1.10010, time=1_700_003_600,
                                            time_msc=1_700_003_600_000),
        }
        self.rates: Dict[str, np.ndarray] = {}
        self.positions: List[Any] | None = []
        self.responses: List[Any] = []
        self.sent: List[dict] = []
        self.rate_calls: List[tuple] = []

    def initialize(self, **kwargs):
        self.initialized = self.init_ok
        return self.init_ok

    def shutdown(self):
        self.shutdown_calls += 1

    def last_error(self):
        return (1, "fake error")

    def account_info(self):
        return self.account

    def terminal_info(self):
        return self.terminal

    def symbol_info(self, symbol):
        return self.symbols.get(symbol)

    def symbol_select(self, symbol, enable):
        return True

    def symbol_info_tick(self, symbol):
        return self.ticks.get(symbol)

    def positions_get(self, symbol=None):
        if self.positions is None:
            return None
        return tuple(p for p in self.positions if symbol is None or p.symbol == symbol)

    def copy_rates_from_pos(self, symbol, timeframe, start, count):
        self.rate_calls.append((symbol, timeframe, start, count))
        bars = self.rates.get(symbol)
        if bars is None:
            return None
        end = len(bars) - start
        return bars[max(0, end - count):max(0, end)]

    def order_send(self, request):
        self.sent.append(request)
        return self.responses.pop(0) if self.responses else None


def signal_rows(hist_b2: float = 0.001):
    """Newest-first rows satisfying the long setup: hist(b1)=-0.002, signal(b1)=-0.001."""
    t = datetime(2024, 3, 5, 10, tzinfo=timezone.utc)
    return [
        {"time": t, "open": 100.0, "close": 101.0, "macd": -0.003, "macd_signal": -0.001,
         "trend": 99.0, "atr": 1.0},
        {"time": t, "open": 101.0, "close": 100.5, "macd": hist_b2, "macd_signal": 0.0,
         "trend": 99.0, "atr": 1.0},
        {"time": t, "open": 100.5, "close": 101.5, "macd": 0.002, "macd_signal": 0.0,
         "trend": 98.9, "atr": 1.0},
    ]
