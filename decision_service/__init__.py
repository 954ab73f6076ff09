"""
decision_service
================

Long-only MACD pullback entries with ATR stops and risk-percent sizing.

Data-flow (once per tick, per symbol)
-------------------------------------
1. Gates: trading permitted, no trade yet today, no open position.
2. signals.evaluate() on one closed-bar snapshot.
3. rules.compute_trade_params()  – ATR × mult stop, reward-multiple target.
4. sizing.size_position()        – lots risking RISK_PERCENT of equity.
5. rules.validate_stop_levels()  – against a *fresh* quote.
6. OrderGateway.submit(); on fill remember the day and drop a marker.

Modules
-------
models.py            value objects, Reason / Category taxonomy, StrategyState
ports.py             protocols for the feed / account / gateway / marker sink
signals.py           entry signal
rules.py             SL/TP calculator + stop-level validator
sizing.py            risk sizer
markers.py           Redis fill markers
decision_service.py  DecisionService orchestrator + service main loop
"""
