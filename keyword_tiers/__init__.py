"""Keyword tier research: webhook enrichment, suggestions and persistence."""

__version__ = "0.1.0"
