"""
data_loader
===========

Holds the rolling tick window the indicators are computed from, and the
offline tick source used when no live Deriv credential is configured.

Modules
-------
buffer.py     – RollingBuffer (capacity 60, FIFO) + synthetic seeding
synthetic.py  – SyntheticFeed, one random-walk tick per interval
"""
