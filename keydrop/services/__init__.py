"""Eviction, traffic accounting and metrics."""
