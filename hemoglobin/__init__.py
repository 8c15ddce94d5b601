"""Hemoglobin: in-memory card search with a small structured query language."""

__version__ = "0.1.0"
