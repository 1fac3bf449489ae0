"""Command-line interface.

Usage:
    timetravel-press generate 1964-10-10 --style showa --test-mode
    timetravel-press pricing
    timetravel-press verify-payment pi_...
"""

from .app import app, main

__all__ = ["app", "main"]
