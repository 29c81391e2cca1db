"""Detect the Python version a project targets from its files."""

__version__ = "0.1.0"
