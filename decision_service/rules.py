"""
rules.py  – SL/TP placement and broker stop-level checks
========================================================
Pure-function utilities only; no Redis, no side-effects.
"""

from __future__ import annotations

import math

from shared.utils import is_finite_positive, round_price

from .models import InstrumentMeta, Reason, Result, TradeParams

# fraction of one point treated as "zero distance" / boundary noise
POINT_FRACTION = 0.1


def compute_trade_params(volatility: float, ask: float, meta: InstrumentMeta,
                         sl_mult: float, reward_ratio: float) -> Result[TradeParams]:
    """
    ATR-scaled stop below the ask and a reward-multiple target above it,
    both rounded half-away-from-zero to the symbol's digits.
    """
    if not math.isfinite(volatility) or volatility <= 0:
        return Result.fail(Reason.INVALID_VOLATILITY, f"atr={volatility}")
    if not is_finite_positive(ask):
        return Result.fail(Reason.INVALID_ASK, f"ask={ask}")

    sl_dist = volatility * sl_mult
    tp_dist = sl_dist * reward_ratio
    floor = meta.point * POINT_FRACTION
    if not (math.isfinite(sl_dist) and math.isfinite(tp_dist)):
        return Result.fail(Reason.DEGENERATE_LEVELS, f"sl={sl_dist} tp={tp_dist} not finite")
    if sl_dist <= floor or tp_dist <= floor:
        return Result.fail(Reason.DISTANCE_TOO_SMALL,
                           f"sl={sl_dist:.10f} tp={tp_dist:.10f} point={meta.point}")

    sl = round_price(ask - sl_dist, meta.digits)
    tp = round_price(ask + tp_dist, meta.digits)
    if sl >= ask or tp <= ask:
        return Result.fail(Reason.DEGENERATE_LEVELS, f"sl={sl} ask={ask} tp={tp}")

    return Result.success(TradeParams(sl_dist, tp_dist, sl, tp))


def validate_stop_levels(ask: float, bid: float, stop_loss: float, take_profit: float,
                         stops_level: int, point: float) -> bool:
    """
    Broker minimum-distance check for a BUY.  A tenth of a point of slack
    keeps levels sitting exactly on the limit from being rejected.
    """
    if not all(is_finite_positive(x) for x in (ask, bid, stop_loss, take_profit)):
        return False
    if stop_loss >= ask or take_profit <= ask:
        return False
    if stops_level <= 0:
        return True

    min_dist = stops_level * point
    tol = point * POINT_FRACTION
    if (ask - stop_loss) < min_dist - tol:
        return False
    if (take_profit - ask) < min_dist - tol:
        return False
    return True
