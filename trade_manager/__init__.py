"""
trade_manager
=============

Trade lifecycle + operator surface:

• `TradeBook` owns the single pending slot, the session's trade history
  and the balance; settles binary payouts after the hold period.
• `manager.py` serves a small REST API (status, trades, stats,
  start/stop, settings) and is the process entry-point.
"""
