"""Exception types raised by lazyfinder components."""

from __future__ import annotations


class LazyfinderError(Exception):
    """Base class for errors raised by lazyfinder."""


class ScreenClosedError(LazyfinderError):
    """Raised when a closed screen is asked to draw or read input."""


class SearchCommandError(LazyfinderError):
    """Raised when the filtering engine cannot produce matches."""
