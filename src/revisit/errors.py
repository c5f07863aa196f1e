"""Exceptions raised at the public API boundary."""

from __future__ import annotations


class VisitsError(Exception):
    """Base class for all revisit errors."""


class EmptyArgument(VisitsError, ValueError):
    """A path, cwd or flag that must be a non-empty string was empty."""


class InvalidType(VisitsError, TypeError):
    """A value has the wrong type (non-string key, non-callable filter, ...)."""


class InvalidIndex(VisitsError, ValueError):
    """A visit index violates its structural invariants."""


class InvalidOption(VisitsError, ValueError):
    """An option value is out of its allowed range."""
