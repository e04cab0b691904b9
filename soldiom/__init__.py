"""Soldiom — streaming conversational assistant client."""

__version__ = "0.1.0"
