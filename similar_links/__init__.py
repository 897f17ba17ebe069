"""Embedding-based similar-links for an annotated document corpus."""

__version__ = "0.1.0"
