"""PDF question answering over a flat JSON embedding store."""

__version__ = "0.1.0"
