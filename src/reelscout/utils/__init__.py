"""Shared utilities for ReelScout."""
