"""
data_loader
===========

Closed-bar market data for the decision service, read straight from the
MT5 terminal.

Modules
-------
feed.py       – MT5Feed: indicator feed (BarSeries, ATR) + price feed (quote, bar)
augmenter.py  – indicator columns (MACD main/signal, EMA trend, ATR) via `ta`
"""
