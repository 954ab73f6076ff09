"""
shared – tiny helpers imported by every service
-----------------------------------------------
Modules
-------
config.py         → loads `.env` once per process, builds StrategyConfig
logging.py        → consistent JSON/stdout logger
constants.py      → Redis key names, numeric tolerances
errors.py         → ConfigError / FeedError / InsufficientHistory
redis_client.py   → lazy Redis singleton + heartbeat + pause flag
utils.py          → price / volume rounding one-liners
"""
