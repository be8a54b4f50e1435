"""Laundry courier route dispatch engine."""

__version__ = "0.1.0"
