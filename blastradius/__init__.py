"""Blast-radius impact analysis for changed source files."""

__version__ = "0.3.0"
