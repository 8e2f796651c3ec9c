"""Midtrans payment notification handler for premium quiz results."""

__version__ = "1.0.0"
