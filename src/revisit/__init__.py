"""revisit: track path visits per working directory and rank them by frecency."""

__version__ = "0.1.0"
