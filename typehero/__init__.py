"""Typehero - challenge and solution comment threads."""

__version__ = "0.1.0"
