"""State/store layer.

This package is the single source of truth for live athlete state: how
decoded state records are stored and aggregated, when they go stale, and
how results are fanned out to subscribers.
"""
