"""Keysmith: translation key extraction and locale reconciliation."""

__version__ = "0.4.0"
