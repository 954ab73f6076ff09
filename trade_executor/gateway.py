#!/usr/bin/env python3
"""
gateway.py – TradeIntent → MT5 market BUY → OrderResult
-------------------------------------------------------
* Price is re-read from the terminal at send time (latest ask).
* `deviation` = the intent's max slippage in points.
* DONE / DONE_PARTIAL count as accepted; every other retcode is mapped
  to a RejectCode so the orchestrator can log why.
* DRY_RUN=1 logs the order and reports it filled at the hint price.
"""

from __future__ import annotations

from typing import Dict

from shared.errors import FeedError
from shared.logging import get_logger
from decision_service.models import OrderResult, RejectCode, TradeIntent

from .mt5_client import MT5Client

log = get_logger("trade_executor")

# MQL5 trade server return codes
RETCODE_DONE         = 10009
RETCODE_DONE_PARTIAL = 10010
ACCEPTED = {RETCODE_DONE, RETCODE_DONE_PARTIAL}

REJECT_CODES: Dict[int, RejectCode] = {
    10004: RejectCode.REQUOTE,
    10006: RejectCode.REJECTED,
    10007: RejectCode.REJECTED,        # cancelled by trader
    10012: RejectCode.TIMEOUT,
    10014: RejectCode.INVALID_VOLUME,
    10015: RejectCode.INVALID_PRICE,
    10016: RejectCode.INVALID_STOPS,
    10017: RejectCode.TRADE_DISABLED,
    10018: RejectCode.MARKET_CLOSED,
    10019: RejectCode.NO_MONEY,
    10020: RejectCode.PRICE_CHANGED,
    10021: RejectCode.PRICE_OFF,
    10027: RejectCode.TRADE_DISABLED,  # autotrading disabled in terminal
    10031: RejectCode.CONNECTION,
}


class MT5Gateway:
    def __init__(self, client: MT5Client) -> None:
        self.client = client

    def submit(self, intent: TradeIntent) -> OrderResult:
        log.info("OPEN %s %s %.2f  sl=%.5f tp=%.5f",
                 intent.symbol, intent.side.value, intent.size,
                 intent.stop_loss, intent.take_profit)
        if self.client.dry_run:
            return OrderResult(True, fill_price=intent.entry_price_hint,
                               retcode=RETCODE_DONE, comment="dry-run", volume=intent.size)

        api = self.client.api
        try:
            price = self.client.tick(intent.symbol).ask
            filling = self.client.filling_mode(intent.symbol)
        except FeedError as exc:
            log.error("pre-send read failed – %s", exc)
            return OrderResult(False, reject_code=RejectCode.CONNECTION, comment=str(exc))

        req = {
            "action":    api.TRADE_ACTION_DEAL,
            "symbol":    intent.symbol,
            "volume":    intent.size,
            "type":      api.ORDER_TYPE_BUY,
            "price":     price,
            "sl":        intent.stop_loss,
            "tp":        intent.take_profit,
            "deviation": intent.max_slippage,
            "magic":     intent.client_tag,
            "comment":   intent.comment,
            "type_time": api.ORDER_TIME_GTC,
            "type_filling": filling,
        }
        res = self.client.send(req)
        if res is None:
            return OrderResult(False, reject_code=RejectCode.CONNECTION,
                               comment=str(self.client.last_error()))

        retcode = int(res.retcode)
        if retcode in ACCEPTED:
            fill = float(getattr(res, "price", 0.0) or 0.0) or price
            return OrderResult(True, fill_price=fill, retcode=retcode,
                               comment=str(getattr(res, "comment", "")),
                               volume=float(getattr(res, "volume", intent.size) or intent.size),
                               ticket=int(getattr(res, "order", 0) or 0))

        code = REJECT_CODES.get(retcode, RejectCode.OTHER)
        log.error("order_send failed – retcode=%d (%s) %s",
                  retcode, code.value, getattr(res, "comment", ""))
        return OrderResult(False, reject_code=code, retcode=retcode,
                           comment=str(getattr(res, "comment", "")))
