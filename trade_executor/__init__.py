"""
trade_executor
==============

Bridges the decision service with a MetaTrader 5 (MT5) account.

* `MT5Client` – scoped terminal connection, account / symbol / position
  queries, raw `order_send`.
* `MT5Gateway` – turns a TradeIntent into a market BUY and maps the
  trade-server retcode onto an OrderResult (accepted or RejectCode).
"""
