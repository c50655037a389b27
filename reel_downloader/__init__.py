"""Resolve social video URLs into metadata and proxy the media download."""

__version__ = "1.0.0"
