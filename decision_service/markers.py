"""
markers.py – record fills so the retainer / trade_manager can see them
----------------------------------------------------------------------
live:fills          LIST  JSON per fill (drained to CSV by data_retainer)
live:fills:last     HASH  symbol → JSON of the newest fill
"""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any

from shared.constants import KEY_FILLS, KEY_LAST_FILL
from shared.redis_client import rds

from .models import TradeIntent


class RedisMarkerSink:
    def __init__(self, client: Any = None) -> None:
        self.client = client if client is not None else rds

    def record(self, symbol: str, when: datetime, price: float, intent: TradeIntent) -> None:
        row = {
            "symbol": symbol,
            "timestamp": when.isoformat(),
            "side": intent.side.value,
            "fill_px": price,
            "volume": intent.size,
            "sl_px": intent.stop_loss,
            "tp_px": intent.take_profit,
            "magic": intent.client_tag,
        }
        raw = json.dumps(row)
        pipe = self.client.pipeline()
        pipe.rpush(KEY_FILLS, raw)
        pipe.hset(KEY_LAST_FILL, symbol, raw)
        pipe.execute()
