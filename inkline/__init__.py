"""Inkline: an editing client that keeps documents in sync with a language server."""

__version__ = "0.1.0"
