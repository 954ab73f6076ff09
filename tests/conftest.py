import pytest

from decision_service.models import BarSeries, InstrumentMeta
from shared.redis_client import rds
from tests.fakes import FakeMT5, StubRedis, signal_rows


@pytest.fixture
def stub_redis(monkeypatch):
    stub = StubRedis()
    monkeypatch.setattr(rds, "_client", stub)
    return stub


@pytest.fixture
def fake_mt5(monkeypatch):
    monkeypatch.delenv("DRY_RUN", raising=False)
    monkeypatch.delenv("MT5_LOGIN", raising=False)
    return FakeMT5()


@pytest.fixture
def meta():
    return InstrumentMeta(
        point=0.01, digits=2, tick_size=0.01, tick_value=1.0,
        volume_min=0.01, volume_max=100.0, volume_step=0.01, stops_level=0,
    )


@pytest.fixture
def bullish_series():
    return BarSeries.from_rows(signal_rows())
