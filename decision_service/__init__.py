"""
decision_service
================

Turns ticks into trades.

Data-flow
---------
1. A tick source calls `Engine.on_tick`.
2. The rolling window is updated and RSI / SMA(5) / SMA(10) recomputed
   from scratch (`rules.py`).
3. A pending trade is settled once its hold period has passed; with no
   pending trade the selected strategy (`decision.py`) may open one:
     • RSI_REVERSAL   – fade RSI extremes (75 / 25 by default)
     • SMA_CROSSOVER  – fast/slow SMA crossing heuristic
     • AI_GEMINI      – latest oracle advisory above the confidence bar
4. Opened trades are mirrored to the broker fire-and-forget.

Modules
-------
rules.py     – pure indicator functions
decision.py  – strategy evaluation
engine.py    – run-state machine and per-tick orchestration
"""
