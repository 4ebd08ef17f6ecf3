"""
shared – tiny helpers imported by every service
-----------------------------------------------
Modules
-------
config.py         → loads `.env` once per process, BotSettings / EngineConfig
logging.py        → consistent JSON/stdout logger
constants.py      → window sizes, Deriv endpoints, Redis key names
models.py         → Tick, Trade, Advisory and the enums around them
redis_client.py   → lazy Redis + heartbeat / kill-switch helpers
utils.py          → misc one-liners that don’t belong elsewhere
"""
