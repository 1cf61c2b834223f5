"""Metadata resolution components for ReelScout.

This package contains the filename parsers, match selection, the TMDB
client, the on-disk metadata and artwork caches, and the resolver that
ties them together.
"""

from reelscout.metadata.resolver import MediaFile, MetadataResolver, ResolveResult

__all__ = ["MediaFile", "MetadataResolver", "ResolveResult"]
