"""
mt5_client.py – light wrapper around MetaTrader5-python
-------------------------------------------------------
Keeps the decision / gateway logic clean and testable.  The terminal
connection is a scoped resource: use the client as a context manager so
`initialize()` and `shutdown()` always pair up.

`api` defaults to the real `MetaTrader5` module (imported on connect);
tests hand in any object exposing the same functions and constants.
"""
from __future__ import annotations

from datetime import datetime, timezone
from types import ModuleType
from typing import Any, Dict, Optional

import pandas as pd

from shared.config import env
from shared.errors import FeedError
from shared.logging import get_logger
from decision_service.models import InstrumentMeta, Quote

log = get_logger("mt5_client")


class MT5Client:
    """
    Thin OO façade so the services don't depend directly on MetaTrader5 API.
    """

    def __init__(self, api: Optional[ModuleType | Any] = None) -> None:
        self.api       = api
        self.connected = False
        self.login     = int(env("MT5_LOGIN", "0", int) or 0)
        self.password  = env("MT5_PASSWORD", "")
        self.server    = env("MT5_SERVER", "")
        self.path      = env("MT5_PATH", "")    # optional terminal64.exe
        self.dry_run   = bool(env("DRY_RUN", "0", bool))

    # ───── connection ──────────────────────────────────────────────
    def connect(self) -> bool:
        if self.api is None:
            import MetaTrader5 as mt5
            self.api = mt5

        kwargs: Dict[str, Any] = {}
        if self.path:
            kwargs["path"] = self.path
        if self.login:
            kwargs.update(login=self.login, password=self.password, server=self.server)
        if not self.api.initialize(**kwargs):
            log.error("MT5 initialize() failed – %s", self.api.last_error())
            return False
        acc = self.api.account_info()
        if acc is not None:
            log.info("Connected to MT5 account %s (equity %.2f)", acc.login, acc.equity)
        if self.dry_run:
            log.warning("DRY-RUN mode – no broker orders will be sent")
        self.connected = True
        return True

    def shutdown(self) -> None:
        if self.connected and self.api is not None:
            self.api.shutdown()
            log.info("MT5 connection closed")
        self.connected = False

    def __enter__(self) -> "MT5Client":
        if not self.connect():
            raise ConnectionError("cannot connect to MT5 terminal")
        return self

    def __exit__(self, *exc: Any) -> None:
        self.shutdown()

    # ───── broker queries ─────────────────────────────────────────
    def trading_allowed(self) -> bool:
        term, acc = self.api.terminal_info(), self.api.account_info()
        return bool(term and term.trade_allowed and acc and acc.trade_allowed)

    def equity(self) -> float:
        acc = self.api.account_info()
        if acc is None:
            raise FeedError(f"account_info() failed – {self.api.last_error()}")
        return float(acc.equity)

    def _symbol_info(self, symbol: str) -> Any:
        info = self.api.symbol_info(symbol)
        if info is None:
            raise FeedError(f"symbol_info({symbol}) failed – {self.api.last_error()}")
        if not info.visible:
            self.api.symbol_select(symbol, True)
        return info

    def instrument_meta(self, symbol: str) -> InstrumentMeta:
        info = self._symbol_info(symbol)
        return InstrumentMeta(
            point=float(info.point),
            digits=int(info.digits),
            tick_size=float(info.trade_tick_size),
            tick_value=float(info.trade_tick_value),
            volume_min=float(info.volume_min),
            volume_max=float(info.volume_max),
            volume_step=float(info.volume_step),
            stops_level=int(info.trade_stops_level),
        )

    def filling_mode(self, symbol: str) -> int:
        """Pick an order filling type the symbol accepts (FOK → IOC → RETURN)."""
        flags = int(self._symbol_info(symbol).filling_mode)
        if flags & 1:                       # SYMBOL_FILLING_FOK
            return self.api.ORDER_FILLING_FOK
        if flags & 2:                       # SYMBOL_FILLING_IOC
            return self.api.ORDER_FILLING_IOC
        return self.api.ORDER_FILLING_RETURN

    def has_open_position(self, symbol: str, magic: int) -> bool:
        positions = self.api.positions_get(symbol=symbol)
        if positions is None:
            raise FeedError(f"positions_get({symbol}) failed – {self.api.last_error()}")
        return any(int(p.magic) == int(magic) for p in positions)

    def tick(self, symbol: str) -> Quote:
        t = self.api.symbol_info_tick(symbol)
        if t is None:
            raise FeedError(f"symbol_info_tick({symbol}) failed – {self.api.last_error()}")
        return Quote(
            bid=float(t.bid),
            ask=float(t.ask),
            time=datetime.fromtimestamp(int(t.time), tz=timezone.utc),
            time_msc=int(getattr(t, "time_msc", 0) or int(t.time) * 1000),
        )

    def timeframe(self, name: str) -> int:
        return int(getattr(self.api, f"TIMEFRAME_{name}"))

    def rates(self, symbol: str, timeframe: int, start: int, count: int) -> pd.DataFrame:
        """
        Bars oldest → newest starting `start` bars back (1 = last closed).
        Empty frame when the terminal has nothing yet.
        """
        raw = self.api.copy_rates_from_pos(symbol, timeframe, start, count)
        if raw is None or len(raw) == 0:
            return pd.DataFrame(columns=["time", "open", "high", "low", "close"])
        df = pd.DataFrame(raw)
        df["time"] = pd.to_datetime(df["time"], unit="s")
        return df

    # ───── trading actions ────────────────────────────────────────
    def send(self, request: Dict[str, Any]) -> Any:
        """Raw `order_send`; None means the terminal never answered."""
        res = self.api.order_send(request)
        if res is None:
            log.error("order_send returned None – %s", self.api.last_error())
        return res

    def last_error(self) -> Any:
        return self.api.last_error()
