"""Verman - runtime version manager."""

__version__ = "0.4.0"
