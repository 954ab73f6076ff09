#!/usr/bin/env python3
"""
decision_service.py – MACD pullback live execution engine
=========================================================

Polls the MT5 tick for every configured symbol and, on each new tick,
runs one pass of the entry pipeline:

    permission → one-trade-per-day → no open position → signal
      → ATR → SL/TP → lot size → fresh-quote stop check → order

Each symbol gets its own `DecisionService` (and therefore its own
`StrategyState`).  Every rejection is "no trade this tick"; nothing
raised inside a tick escapes `on_tick`.

Redis keys
----------
flags:trading_paused        STR    "1" → permission gate closed
live:fills                  LIST   JSON fill markers
live:fills:last             HASH   symbol → newest fill JSON
heartbeat:decision_service  STR    epoch seconds
"""

from __future__ import annotations

import math
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Optional

from shared.config import StrategyConfig, load_strategy_config
from shared.constants import EPSILON
from shared.errors import ConfigError, InsufficientHistory
from shared.logging import get_logger
from shared.redis_client import heartbeat, trading_paused

from . import rules as R
from .models import OrderResult, Quote, Reason, StrategyState, TradeIntent
from .ports import AccountInfo, IndicatorFeed, MarkerSink, OrderGateway, PriceFeed
from .signals import OSC_BARS, evaluate
from .sizing import size_position

log = get_logger("decision_service")


class Stage(str, Enum):
    IDLE = "idle"
    AWAITING_SIGNAL = "awaiting_signal"
    PARAMETERS_COMPUTED = "parameters_computed"
    SIZED = "sized"
    VALIDATED = "validated"
    SUBMITTED = "submitted"
    FILLED = "filled"
    REJECTED = "rejected"


@dataclass(frozen=True)
class TickOutcome:
    stage: Stage
    reason: Optional[Reason] = None
    detail: str = ""
    intent: Optional[TradeIntent] = None
    result: Optional[OrderResult] = None

    @property
    def traded(self) -> bool:
        return self.stage is Stage.FILLED


class _Skip(Exception):
    """Internal short-circuit: carries the stage reached and why we stopped."""

    def __init__(self, stage: Stage, reason: Reason, detail: str = "") -> None:
        super().__init__(reason.value)
        self.stage, self.reason, self.detail = stage, reason, detail


class DecisionService:
    def __init__(self, symbol: str, cfg: StrategyConfig, *,
                 feed: IndicatorFeed, prices: PriceFeed, account: AccountInfo,
                 gateway: OrderGateway, permission: Callable[[], bool],
                 markers: Optional[MarkerSink] = None,
                 state: Optional[StrategyState] = None) -> None:
        self.symbol = symbol
        self.cfg = cfg
        self.feed = feed
        self.prices = prices
        self.account = account
        self.gateway = gateway
        self.permission = permission
        self.markers = markers
        self.state = state if state is not None else StrategyState()

    # ───── guarded external reads ───────────────────────────────────
    def _read(self, stage: Stage, fn: Callable[[], Any], what: str) -> Any:
        try:
            return fn()
        except InsufficientHistory as exc:
            raise _Skip(stage, Reason.INSUFFICIENT_HISTORY, str(exc)) from exc
        except Exception as exc:                              # noqa: BLE001
            raise _Skip(stage, Reason.FEED_ERROR, f"{what}: {exc}") from exc

    # ───── one tick ─────────────────────────────────────────────────
    def on_tick(self, tick: Quote) -> TickOutcome:
        try:
            outcome = self._run(tick)
        except _Skip as skip:
            outcome = TickOutcome(skip.stage, skip.reason, skip.detail)
        self._report(outcome)
        return outcome

    def _run(self, tick: Quote) -> TickOutcome:
        stage = Stage.IDLE
        # 1 – 3: gates
        if not self._read(stage, self.permission, "permission"):
            raise _Skip(stage, Reason.TRADING_DISABLED)
        if self.state.traded_on(tick.time):
            raise _Skip(stage, Reason.ALREADY_TRADED_TODAY,
                        f"last trade {self.state.last_trade_at.isoformat()}")
        if self._read(stage, lambda: self.account.has_open_position(self.symbol, self.cfg.magic),
                      "positions"):
            raise _Skip(stage, Reason.POSITION_OPEN)

        # 4: signal
        stage = Stage.AWAITING_SIGNAL
        bars = self._read(stage, lambda: self.feed.series(OSC_BARS), "series")
        if not evaluate(bars):
            raise _Skip(stage, Reason.NO_SIGNAL)

        # 5 – 6: volatility → SL / TP, ATR of the same closed bar as the signal
        atr = bars.atr[0] if bars.atr else math.nan
        if not math.isfinite(atr) or not atr > EPSILON:
            raise _Skip(stage, Reason.INVALID_VOLATILITY, f"atr={atr}")
        meta = self._read(stage, lambda: self.account.instrument_meta(self.symbol), "instrument")
        self.state.instrument = meta
        params = R.compute_trade_params(atr, tick.ask, meta, self.cfg.sl_atr_mult, self.cfg.reward_ratio)
        if not params.ok:
            raise _Skip(stage, params.reason, params.detail)
        p = params.value

        # 7: size
        stage = Stage.PARAMETERS_COMPUTED
        equity = self._read(stage, self.account.equity, "equity")
        sized = size_position(equity, self.cfg.risk_percent, p.sl_distance, meta)
        if not sized.ok:
            raise _Skip(stage, sized.reason, sized.detail)

        # 8: re-check against the latest quote
        stage = Stage.SIZED
        fresh = self._read(stage, self.prices.quote, "quote")
        if not fresh.valid:
            raise _Skip(stage, Reason.INVALID_QUOTE, f"bid={fresh.bid} ask={fresh.ask}")
        if not R.validate_stop_levels(fresh.ask, fresh.bid, p.stop_loss, p.take_profit,
                                      meta.stops_level, meta.point):
            raise _Skip(stage, Reason.STOP_LEVEL_VIOLATION,
                        f"ask={fresh.ask} sl={p.stop_loss} tp={p.take_profit} "
                        f"stops_level={meta.stops_level}")

        # 9: submit
        stage = Stage.VALIDATED
        intent = TradeIntent(
            symbol=self.symbol,
            size=sized.value,
            entry_price_hint=fresh.ask,
            stop_loss=p.stop_loss,
            take_profit=p.take_profit,
            max_slippage=self.cfg.slippage_points,
            client_tag=self.cfg.magic,
            comment=f"macd-pullback {self.cfg.magic}",
        )
        try:
            result = self.gateway.submit(intent)
        except Exception as exc:                              # noqa: BLE001
            return TickOutcome(Stage.REJECTED, Reason.ORDER_REJECTED, f"submit raised: {exc}", intent)

        if not result.accepted:
            return TickOutcome(Stage.REJECTED, Reason.ORDER_REJECTED,
                               f"{result.reject_code.value} retcode={result.retcode} {result.comment}",
                               intent, result)

        self.state.last_trade_at = tick.time
        fill_px = result.fill_price or intent.entry_price_hint
        if self.markers is not None:
            try:
                self.markers.record(self.symbol, tick.time, fill_px, intent)
            except Exception as exc:                          # noqa: BLE001
                log.error("%s fill marker failed – %s", self.symbol, exc)
        return TickOutcome(Stage.FILLED, intent=intent, result=result)

    # ───── diagnostics ──────────────────────────────────────────────
    def _report(self, out: TickOutcome) -> None:
        if out.traded:
            i = out.intent
            log.info("%s → BUY %.2f @ %.5f sl=%.5f tp=%.5f",
                     self.symbol, i.size, out.result.fill_price or i.entry_price_hint,
                     i.stop_loss, i.take_profit,
                     extra={"ctx": {"symbol": self.symbol, "stage": out.stage.value}})
            return
        reason = out.reason
        log.log(reason.category.log_level, "%s no trade – %s %s",
                self.symbol, reason.value, out.detail,
                extra={"ctx": {"symbol": self.symbol, "stage": out.stage.value,
                               "reason": reason.value, "category": reason.category.value}})


# ─── WIRING ───────────────────────────────────────────────────────────
def build_services(cfg: StrategyConfig, client: Any) -> Dict[str, DecisionService]:
    from data_loader.feed import MT5Feed
    from trade_executor.gateway import MT5Gateway
    from .markers import RedisMarkerSink

    gateway = MT5Gateway(client)
    markers = RedisMarkerSink()

    def permission() -> bool:
        return not trading_paused() and client.trading_allowed()

    services = {}
    for sym in cfg.symbols:
        feed = MT5Feed(client, sym, cfg)
        services[sym] = DecisionService(
            sym, cfg, feed=feed, prices=feed, account=client,
            gateway=gateway, permission=permission, markers=markers,
        )
    return services


# ─── MAIN LOOP ────────────────────────────────────────────────────────
def main() -> None:
    try:
        cfg = load_strategy_config()
    except ConfigError as exc:
        log.error("invalid configuration – %s", exc)
        raise SystemExit(2) from exc

    from trade_executor.mt5_client import MT5Client

    with MT5Client() as client:
        services = build_services(cfg, client)
        log.info("decision_service up – watching %d symbols on %s", len(services), cfg.timeframe)
        last_msc: Dict[str, int] = {}

        heartbeat("decision_service")
        while True:
            t0 = time.time()
            for sym, svc in services.items():
                try:
                    tick = client.tick(sym)
                    if last_msc.get(sym) == tick.time_msc:     # already processed
                        continue
                    last_msc[sym] = tick.time_msc
                    svc.on_tick(tick)
                except Exception as exc:                       # noqa: BLE001
                    log.error("%s – %s", sym, exc)

            heartbeat("decision_service")
            time.sleep(max(0.0, cfg.poll_ms / 1000 - (time.time() - t0)))


if __name__ == "__main__":
    main()
