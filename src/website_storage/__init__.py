"""Persist website projects behind pluggable storage connectors."""

__version__ = "0.1.0"
