"""
logging.py – JSON/std-out logger for every service

Pass structured fields with `extra={"ctx": {...}}`; they are merged into
the emitted JSON object next to ts/lvl/src/msg (never overwriting them).
The decision service tags every tick outcome this way with `symbol`,
`stage`, `reason` and `category`, and logs it at the level of the
reason's category, so a log shipper can filter "no signal" chatter
(debug) from invalid inputs and broker rejections (warning).  Values
that json cannot encode (datetimes, enums) are written with `str()`.
"""

from __future__ import annotations
import json, logging, os, sys
from datetime import datetime, timezone
from typing import Mapping, Any

# root config (no 'stream=' dup error)
_log_level = os.getenv("LOG_LEVEL", "INFO").upper()
logging.basicConfig(level=_log_level, handlers=[])

class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:          # noqa: D401
        msg: dict[str, Any] = {
            "ts":  datetime.now(tz=timezone.utc).isoformat(timespec="seconds"),
            "lvl": record.levelname,
            "src": record.name,
            "msg": record.getMessage(),
        }
        ctx = getattr(record, "ctx", None)
        if isinstance(ctx, Mapping):
            msg.update({k: v for k, v in ctx.items() if k not in msg})
        if record.exc_info:
            msg["exc"] = self.formatException(record.exc_info)
        return json.dumps(msg, ensure_ascii=False, default=str)

def get_logger(name: str) -> logging.Logger:
    logger = logging.getLogger(name)
    if not logger.handlers:                       # only add once / logger
        h = logging.StreamHandler(sys.stdout)
        h.setFormatter(JsonFormatter())
        logger.addHandler(h)
        logger.setLevel(_log_level)
        logger.propagate = False
    return logger
