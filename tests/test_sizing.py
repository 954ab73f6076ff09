import itertools
import math
from dataclasses import replace

import pytest

from decision_service.models import Reason
from decision_service.sizing import size_position


def test_reference_size(meta):
    res = size_position(10_000, 2.0, 1.5, meta)
    assert res.ok
    assert res.value == 1.33            # 200 / 150 = 1.333… floored to the step


def test_floor_never_rounds_up(meta):
    # raw = 200 / 120 = 1.6666… → 1.66, not 1.67
    assert size_position(10_000, 2.0, 1.2, meta).value == 1.66


def test_coarser_step_changes_precision(meta):
    m = replace(meta, volume_step=0.1, volume_min=0.1)
    assert size_position(10_000, 2.0, 1.5, m).value == 1.3


@pytest.mark.parametrize("equity", [0.0, -5.0, math.nan])
def test_invalid_equity(meta, equity):
    assert size_position(equity, 2.0, 1.5, meta).reason is Reason.INVALID_EQUITY


@pytest.mark.parametrize("risk", [0.0, -1.0])
def test_invalid_risk(meta, risk):
    assert size_position(10_000, risk, 1.5, meta).reason is Reason.INVALID_RISK


def test_stop_distance_under_a_tenth_point(meta):
    assert size_position(10_000, 2.0, 0.001, meta).reason is Reason.INVALID_STOP_DISTANCE


@pytest.mark.parametrize("field", ["tick_size", "tick_value", "volume_step"])
def test_degenerate_instrument(meta, field):
    m = replace(meta, **{field: 0.0})
    assert size_position(10_000, 2.0, 1.5, m).reason is Reason.DEGENERATE_INSTRUMENT_META


def test_budget_below_one_minimum_lot(meta):
    res = size_position(100, 1.0, 1.5, meta)          # 1.0 / 150 → 0.0066 lots
    assert res.reason is Reason.BELOW_MINIMUM_VOLUME
    assert not res.ok


def test_capped_at_volume_max(meta):
    assert size_position(1e9, 2.0, 1.5, meta).value == meta.volume_max


def test_size_respects_step_bounds_and_budget(meta):
    for equity, risk, sl in itertools.product(
        [50.0, 1_000.0, 12_345.0, 250_000.0], [0.25, 1.0, 2.0, 5.0], [0.05, 0.5, 1.5, 7.3]
    ):
        res = size_position(equity, risk, sl, meta)
        if not res.ok:
            assert res.reason is Reason.BELOW_MINIMUM_VOLUME
            continue
        lots = res.value
        steps = lots / meta.volume_step
        assert abs(steps - round(steps)) < 1e-6
        assert meta.volume_min <= lots <= meta.volume_max
        loss = lots * sl * meta.tick_value / meta.tick_size
        step_loss = meta.volume_step * sl * meta.tick_value / meta.tick_size
        assert loss <= equity * risk / 100 + step_loss + 1e-9
