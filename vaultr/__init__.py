"""Vaultr breach-check proxy and client-side session guard."""

__version__ = "1.0.0"
