"""Data models for ReelScout."""
