"""Immutable domain value objects for the economy."""
