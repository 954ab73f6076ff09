"""
constants.py – single source of hard-coded names
"""

EPSILON        = 1e-10        # "tiny" value: ATR / loss-per-lot at or below → invalid
STEP_TOLERANCE = 1e-9         # fraction of a volume step absorbed when flooring

# Redis keys / templates
KEY_FILLS       = "live:fills"            # LIST  JSON fill markers (drained by retainer)
KEY_LAST_FILL   = "live:fills:last"       # HASH  symbol → JSON of newest fill
KEY_HEARTBEAT   = "heartbeat:{}"          # service-specific
KEY_PAUSE_FLAG  = "flags:trading_paused"
KEY_AUTO_PAUSE  = "flags:trading_paused:auto"   # set when the supervisor paused

SERVICES = (
    "decision_service",
    "data_retainer",
)
