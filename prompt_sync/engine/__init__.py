"""Reconciliation engine.

This package provides the pieces a run is assembled from:
- Mapping expansion: config rules and skill trees into (source, target) pairs
- Classification: read-only status of one pair on disk
- Decisions: pure table from (status, command, flags) to an action
- Reconciliation: performing the chosen action and reporting the outcome
"""
