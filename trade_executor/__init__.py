"""
trade_executor
==============

Bridges the engine with a Deriv account.

* `DerivClient` keeps one websocket open: it authorizes with the
  configured token, streams ticks into the engine and carries `buy`
  requests out.  Reconnect/back-off lives here, not in the engine.
* `OrderExecutor` submits orders fire-and-forget: the engine settles
  trades locally on its own clock and never awaits the broker.
* Without a token the executor runs in DRY-RUN mode and only logs.
"""
