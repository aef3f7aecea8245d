"""Pharmacy rota assignment engine."""

__version__ = "0.1.0"
