from datetime import timezone

import numpy as np
import pandas as pd
import pytest

import data_loader.feed as feed_mod
from data_loader.feed import MT5Feed
from shared.config import StrategyConfig
from shared.errors import FeedError, InsufficientHistory
from trade_executor.mt5_client import MT5Client
from tests.fakes import make_rates

SMALL = StrategyConfig(macd_fast=3, macd_slow=6, macd_signal=3, trend_period=10,
                       atr_period=5, history_bars=40)


@pytest.fixture
def feed(fake_mt5):
    # 40 closed bars plus one still forming
    closes = list(np.linspace(100, 110, 40)) + [500.0]
    fake_mt5.rates["EURUSD"] = make_rates(closes)
    return MT5Feed(MT5Client(api=fake_mt5), "EURUSD", SMALL)


def _ts(epoch):
    return pd.Timestamp(epoch, unit="s").to_pydatetime()


def test_forming_bar_is_never_read(feed, fake_mt5):
    bars = feed.series(3)
    newest_closed = fake_mt5.rates["EURUSD"][-2]
    assert bars.times[0] == _ts(newest_closed["time"])
    assert bars.closes[0] == pytest.approx(110.0)
    assert 500.0 not in bars.closes
    sym, tf, start, count = fake_mt5.rate_calls[0]
    assert (sym, tf, start, count) == ("EURUSD", fake_mt5.TIMEFRAME_H1, 1, 40)


def test_series_is_newest_first(feed):
    bars = feed.series(3)
    assert bars.times[0] > bars.times[1] > bars.times[2]
    assert len(bars) == 3


def test_short_history_raises(fake_mt5):
    fake_mt5.rates["EURUSD"] = make_rates([100.0] * 10)
    feed = MT5Feed(MT5Client(api=fake_mt5), "EURUSD", SMALL)
    with pytest.raises(InsufficientHistory):
        feed.series(3)


def test_more_warm_bars_than_available(feed):
    with pytest.raises(InsufficientHistory, match="warm bars"):
        feed.series(100)


def test_indicators_recomputed_only_on_new_bar(feed, fake_mt5, monkeypatch):
    calls = []
    real = feed_mod.compute_indicators

    def counting(df, cfg):
        calls.append(len(df))
        return real(df, cfg)

    monkeypatch.setattr(feed_mod, "compute_indicators", counting)
    feed.series(3)
    feed.volatility()
    feed.series(3)
    assert len(calls) == 1

    bars = fake_mt5.rates["EURUSD"]
    fake_mt5.rates["EURUSD"] = make_rates(list(bars["close"]) + [111.0])
    feed.series(3)
    assert len(calls) == 2


def test_volatility_reads_last_closed_atr(fake_mt5):
    fake_mt5.rates["EURUSD"] = make_rates([100.0] * 41)
    feed = MT5Feed(MT5Client(api=fake_mt5), "EURUSD", SMALL)
    assert feed.volatility() == pytest.approx(1.0)


def test_volatility_not_warm(fake_mt5):
    cfg = StrategyConfig(macd_fast=3, macd_slow=6, macd_signal=3, trend_period=10,
                         atr_period=50, history_bars=40)
    fake_mt5.rates["EURUSD"] = make_rates([100.0] * 41)
    feed = MT5Feed(MT5Client(api=fake_mt5), "EURUSD", cfg)
    with pytest.raises(InsufficientHistory, match="ATR"):
        feed.volatility()


def test_quote_and_bar(feed, fake_mt5):
    q = feed.quote()
    assert (q.bid, q.ask) == (1.10000, 1.10010)
    assert q.time.tzinfo is timezone.utc
    assert q.time_msc == 1_700_003_600_000
    assert q.valid

    b = feed.bar(1)
    assert b.close == pytest.approx(110.0)
    assert b.time == _ts(fake_mt5.rates["EURUSD"][-2]["time"])


def test_bar_without_data(fake_mt5):
    feed = MT5Feed(MT5Client(api=fake_mt5), "GBPUSD", SMALL)
    with pytest.raises(FeedError):
        feed.bar()
