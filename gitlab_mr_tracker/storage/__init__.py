"""Persistence of tracker state."""
