"""ReelScout - filename-driven movie and TV metadata with offline caching."""

__version__ = "0.1.0"
