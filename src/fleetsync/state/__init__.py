"""State layer.

This package is the single source of truth for how snapshots pushed by the
remote store are reconciled into one deterministic, uniquely keyed view.
"""
