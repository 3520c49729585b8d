"""Patch transformer for structured configuration documents."""

__version__ = "0.1.0"
