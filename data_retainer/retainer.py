#!/usr/bin/env python3
"""
retainer.py – persist fill markers to disk
==========================================
Every cycle pops whatever the decision service pushed onto `live:fills`
and appends it to `<HISTORY_DIR>/fills/fill_log.csv` (one row per fill),
then heartbeats so trade_manager knows the archive is alive.
"""

from __future__ import annotations
import json, logging, os, time
from pathlib import Path
from typing import Any, Dict

import pandas as pd

from shared.constants    import KEY_FILLS
from shared.redis_client import rds, heartbeat

# ─── CONFIG ──────────────────────────────────────────────────────────
CHECK_EVERY = int(os.getenv("CHECK_INTERVAL", 15))          # s
HIST_DIR    = Path(os.getenv("HISTORY_DIR", "./history")).resolve()

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO"),
    format="%(asctime)s [%(levelname)s] retainer: %(message)s",
)
log = logging.getLogger("data_retainer")

# ─── HELPERS ─────────────────────────────────────────────────────────
def fill_log_path(hist_dir: Path = HIST_DIR) -> Path:
    out = hist_dir / "fills"
    out.mkdir(parents=True, exist_ok=True)
    return out / "fill_log.csv"

def _append_row(csv_path: Path, row: Dict[str, Any]) -> None:
    df = pd.DataFrame([row])
    df.to_csv(csv_path, mode="a", index=False, header=not csv_path.exists())

def drain_fills(hist_dir: Path = HIST_DIR) -> int:
    """
    Copy queued fill markers into the CSV log, oldest first; returns rows written.

    Markers leave `live:fills` only after their row is on disk.  A failed
    write stops the batch and keeps it and everything behind it queued for
    the next cycle.  The decision service only appends at the tail, so
    trimming the head never drops a marker pushed meanwhile.
    """
    queued = rds.lrange(KEY_FILLS, 0, -1)
    if not queued:
        return 0

    csv_path = fill_log_path(hist_dir)
    consumed = written = 0
    for raw in queued:
        try:
            row = json.loads(raw)
        except ValueError as exc:
            log.error("dropping malformed fill marker – %s", exc)
            consumed += 1
            continue
        try:
            _append_row(csv_path, row)
        except OSError as exc:
            log.error("fill_log write error – %s (%d marker(s) left queued)",
                      exc, len(queued) - consumed)
            break
        consumed += 1
        written += 1

    if consumed:
        rds.ltrim(KEY_FILLS, consumed, -1)
    log.info("Archived %d fill(s) → %s", written, csv_path.name)
    return written

# ─── MAIN LOOP ────────────────────────────────────────────────────────
def main() -> None:
    log.info("retainer up – archiving to %s", HIST_DIR)
    heartbeat("data_retainer")

    while True:
        t0 = time.time()
        try:
            drain_fills()
        except Exception as exc:                # noqa: BLE001
            log.error("cycle error: %s", exc)

        heartbeat("data_retainer")
        time.sleep(max(1, CHECK_EVERY - (time.time() - t0)))

if __name__ == "__main__":
    main()
