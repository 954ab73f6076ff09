"""Risk-percent position sizing in broker lots."""

from __future__ import annotations

import math

from shared.constants import EPSILON
from shared.utils import floor_to_step, is_finite_positive, step_digits

from .models import InstrumentMeta, Reason, Result
from .rules import POINT_FRACTION


def size_position(equity: float, risk_percent: float, sl_distance: float,
                  meta: InstrumentMeta) -> Result[float]:
    """
    Lots whose stop-out loss stays within `risk_percent` of equity.

    The raw size is floored to `volume_step` before it is capped at
    `volume_max`; a budget that cannot buy `volume_min` is rejected
    rather than rounded up.
    """
    if not is_finite_positive(equity):
        return Result.fail(Reason.INVALID_EQUITY, f"equity={equity}")

    risk_amount = equity * risk_percent / 100.0
    if not math.isfinite(risk_amount) or risk_amount <= 0:
        return Result.fail(Reason.INVALID_RISK, f"risk_amount={risk_amount}")

    if not math.isfinite(sl_distance) or sl_distance <= meta.point * POINT_FRACTION:
        return Result.fail(Reason.INVALID_STOP_DISTANCE, f"sl_distance={sl_distance}")

    if meta.tick_size <= 0 or meta.tick_value <= 0 or meta.volume_step <= 0:
        return Result.fail(Reason.DEGENERATE_INSTRUMENT_META,
                           f"tick_size={meta.tick_size} tick_value={meta.tick_value} "
                           f"step={meta.volume_step}")

    loss_per_lot = sl_distance * meta.tick_value / meta.tick_size
    if loss_per_lot <= EPSILON:
        return Result.fail(Reason.DEGENERATE_INSTRUMENT_META, f"loss_per_lot={loss_per_lot}")

    raw = risk_amount / loss_per_lot
    lots = min(floor_to_step(raw, meta.volume_step), meta.volume_max)
    if lots < meta.volume_min:
        return Result.fail(Reason.BELOW_MINIMUM_VOLUME,
                           f"raw={raw:.6f} min={meta.volume_min} risk={risk_amount:.2f}")

    lots = round(lots, step_digits(meta.volume_step))
    if lots <= 0:
        return Result.fail(Reason.BELOW_MINIMUM_VOLUME, f"raw={raw:.6f}")
    return Result.success(lots)
