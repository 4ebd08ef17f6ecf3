"""
model_service
=============

Advisory side-channel for the AI strategy.  Every 5 s (while the bot is
trading with `AI_GEMINI`) the newest 20 prices are sent to an oracle;
the answer lands in an `AdvisoryCell` that the decision service reads on
the next tick.

Failures never propagate: timeout, HTTP error, malformed JSON or a
missing API key all publish `HOLD` with confidence 0.
"""
