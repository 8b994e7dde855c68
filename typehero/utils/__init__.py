"""Utility modules for Typehero."""

from typehero.utils.relative_time import relative_time


__all__ = ["relative_time"]
