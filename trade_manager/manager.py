#!/usr/bin/env python3
"""
manager.py – supervisor / kill-switch for the decision service
--------------------------------------------------------------
Owns `flags:trading_paused`, the permission gate every decision tick
checks first.

Environment
-----------
REDIS_URL        redis://host:port/db        (default: redis://redis:6379/0)
HEARTBEAT_MAX    seconds without a ping      (default: 90)
CHECK_INTERVAL   seconds between checks      (default: 30)
API_PORT         expose REST API (0=off)     (default: 8000)
"""

from __future__ import annotations

import json
import logging
import os
import time
from typing import Any, Dict, List

import uvicorn
from fastapi import FastAPI

from shared.constants import KEY_HEARTBEAT, KEY_LAST_FILL, KEY_PAUSE_FLAG, SERVICES
from shared.redis_client import auto_paused, rds, set_trading_paused

# ───── CONFIG ──────────────────────────────────────────────────────────
HEARTBEAT_MAX = float(os.getenv("HEARTBEAT_MAX", 90))
CHECK_INT     = int(os.getenv("CHECK_INTERVAL", 30))
API_PORT      = int(os.getenv("API_PORT", 8000))

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO"),
    format="%(asctime)s [%(levelname)s] trade_manager: %(message)s",
)
log = logging.getLogger("trade_manager")

# ───── SMALL HELPERS ──────────────────────────────────────────────────
def is_paused() -> bool:
    return rds.get(KEY_PAUSE_FLAG) == "1"


def heartbeats() -> Dict[str, float]:
    return {svc: float(rds.get(KEY_HEARTBEAT.format(svc)) or 0) for svc in SERVICES}


def stale_services(now: float | None = None) -> List[str]:
    now = time.time() if now is None else now
    return [svc for svc, last in heartbeats().items() if now - last > HEARTBEAT_MAX]


def last_fills() -> Dict[str, Any]:
    return {sym: json.loads(raw) for sym, raw in (rds.hgetall(KEY_LAST_FILL) or {}).items()}


def set_pause(flag: bool, reason: str = "", *, auto: bool = False) -> None:
    set_trading_paused(flag, auto=auto)
    if flag:
        log.error("TRADING PAUSED – %s", reason)
    else:
        log.info("trading resumed – %s", reason or "manual")


def check_once(now: float | None = None) -> bool:
    """One supervisor pass; returns the pause flag after enforcement."""
    paused = is_paused()
    dead = stale_services(now)
    if dead:
        log.warning("Missing heartbeat: %s", ", ".join(dead))
        if not paused:
            set_pause(True, f"heartbeat lost ({', '.join(dead)})", auto=True)
        return True
    if paused and auto_paused():
        # only undo pauses the supervisor itself set
        set_pause(False, "heartbeats back")
        return False
    return paused


# ───── SUPERVISOR LOOP ────────────────────────────────────────────────
def supervisor_loop() -> None:
    log.info("trade_manager running (interval %d s)", CHECK_INT)
    while True:
        try:
            check_once()
        except Exception as exc:  # noqa: BLE001
            log.error("supervisor error – %s", exc)
        time.sleep(CHECK_INT)


# ───── OPTIONAL REST API ──────────────────────────────────────────────
app = FastAPI(title="Trade Manager", docs_url=None, redoc_url=None)


@app.get("/status")
def status():
    return {
        "paused": is_paused(),
        "heartbeats": heartbeats(),
        "last_fills": last_fills(),
    }


@app.post("/pause")
def pause():
    set_pause(True, "manual REST call")
    return {"paused": True}


@app.post("/resume")
def resume():
    set_pause(False, "manual REST call")
    return {"paused": False}


def main() -> None:
    if API_PORT:
        # Run REST API + supervisor in one process using uvicorn’s loop
        import threading

        th = threading.Thread(target=supervisor_loop, daemon=True)
        th.start()
        uvicorn.run(app, host="0.0.0.0", port=API_PORT, log_level="warning")
    else:
        supervisor_loop()


if __name__ == "__main__":
    main()
