"""
constants.py – single source of hard-coded names
"""

BUFFER_CAPACITY = 60          # ticks kept in the rolling window
RSI_NEUTRAL     = 50.0        # RSI warm-up value
SMA_NOT_READY   = 0.0         # SMA warm-up sentinel

SEED_AMPLITUDE  = 1.0         # synthetic history: price += U(-1,1) * 1.0
SYNTH_STEP      = 3.0         # synthetic live ticks: price += (U(0,1)-0.5) * 3

MOMENTUM_LOOKBACK = 5         # offline advisory: last vs. 5 ticks back

# Deriv websocket
DERIV_APP_ID    = 1089        # public test app id
DERIV_WS_URL    = f"wss://ws.binaryws.com/websockets/v3?app_id={DERIV_APP_ID}"
DERIV_PING_SEC  = 30
DERIV_RETRY_SEC = 2
CONTRACT_DURATION_TICKS = 5
CONTRACT_CURRENCY       = "USD"

# asset label → Deriv symbol
ASSET_SYMBOLS = {
    "Volatility 10":  "R_10",
    "Volatility 25":  "R_25",
    "Volatility 50":  "R_50",
    "Volatility 75":  "R_75",
    "Volatility 100": "R_100",
}

GEMINI_URL = "https://generativelanguage.googleapis.com/v1beta/models/{}:generateContent"

# Redis keys / templates
KEY_HEARTBEAT  = "heartbeat:{}"        # service-specific
KEY_PAUSE_FLAG = "flags:trading_paused"
