"""Merge request aggregation, reconciliation and refresh cycles."""
